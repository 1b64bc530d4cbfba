"""Exception taxonomy shared by the mutation path and the sync engine."""

from __future__ import annotations


class LarderError(Exception):
    """Base class for all Larder errors."""


class ValidationError(LarderError, ValueError):
    """Invalid input to a mutation; raised before anything is written."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class NoHouseholdSelected(LarderError):
    """A mutation was attempted without a household id."""

    def __init__(self) -> None:
        super().__init__("No household selected")


class RecordNotFound(LarderError, LookupError):
    """The record does not exist locally or has been deleted."""

    def __init__(self, kind: str, record_id: str) -> None:
        super().__init__(f"{kind} {record_id} not found")
        self.kind = kind
        self.record_id = record_id


class RemoteStoreError(LarderError):
    """Base class for failures reported by a remote store client."""


class RemoteUnavailable(RemoteStoreError):
    """The remote store could not be reached (timeout, network, 5xx)."""


class RemoteRejected(RemoteStoreError):
    """The remote store refused the request (auth, validation, 4xx)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class FatalSyncFailure(LarderError):
    """Unexpected internal error during a sync pass; reported as retryable."""

    def __init__(self, household_id: str, cause: BaseException) -> None:
        super().__init__(f"Sync pass for household {household_id} failed: {cause!r}")
        self.household_id = household_id
        self.cause = cause


__all__ = [
    "LarderError",
    "ValidationError",
    "NoHouseholdSelected",
    "RecordNotFound",
    "RemoteStoreError",
    "RemoteUnavailable",
    "RemoteRejected",
    "FatalSyncFailure",
]
