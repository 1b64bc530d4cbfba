"""Shared plumbing for the mutation API: validation, stamping, and sync requests."""

from __future__ import annotations

import logging
import math
import uuid
from typing import Any, Optional, TypeVar

from larder.db.repository import LocalDatabase
from larder.errors import NoHouseholdSelected, RecordNotFound, ValidationError
from larder.metrics import MUTATIONS
from larder.sync.scheduler import NullScheduler, SyncRequester
from larder.timeutils import advance, utcnow

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT")

def new_id() -> str:
    return str(uuid.uuid4())


def require_household(household_id: Optional[str]) -> str:
    if household_id is None or not str(household_id).strip():
        raise NoHouseholdSelected()
    return str(household_id).strip()


def require_name(value: Optional[str], field: str = "name") -> str:
    if value is None or not str(value).strip():
        raise ValidationError(field, "must not be empty")
    return " ".join(str(value).split())


def require_positive(value: Any, field: str) -> float:
    number = _as_number(value, field)
    if number <= 0:
        raise ValidationError(field, "must be positive")
    return number


def require_non_negative(value: Any, field: str) -> float:
    number = _as_number(value, field)
    if number < 0:
        raise ValidationError(field, "must not be negative")
    return number


def optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_number(value: Any, field: str) -> float:
    if value is None or isinstance(value, bool):
        raise ValidationError(field, "is required")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(field, "must be a number") from None
    if not math.isfinite(number):
        raise ValidationError(field, "must be finite")
    return number


class MutationService:
    """Base class for services that write through the local store and request a sync."""

    entity = "record"

    def __init__(
        self,
        *,
        database: Optional[LocalDatabase] = None,
        scheduler: Optional[SyncRequester] = None,
    ) -> None:
        self._database = database
        self._scheduler: SyncRequester = scheduler or NullScheduler()

    def new_record_stamp(self) -> dict[str, Any]:
        now = utcnow()
        return {
            "created_at": now,
            "updated_at": now,
            "is_synced": False,
            "is_deleted": False,
            "revision": 1,
        }

    def dirty_copy(self, record: RecordT, **changes: Any) -> RecordT:
        """Return ``record`` with ``changes`` applied, marked dirty, and its clock advanced."""

        changes.update(
            updated_at=advance(record.updated_at),  # type: ignore[attr-defined]
            is_synced=False,
            revision=record.revision + 1,  # type: ignore[attr-defined]
        )
        return record.model_copy(update=changes)  # type: ignore[attr-defined]

    @staticmethod
    def ensure_in_household(record: Any, household_id: str, kind: str) -> None:
        if record.household_id != household_id:
            raise RecordNotFound(kind, record.id)

    def request_sync(self, household_id: str) -> None:
        """Ask the scheduler for a pass; failures here never undo the local write."""

        try:
            self._scheduler.request_sync(household_id)
        except Exception:
            logger.exception(
                "Unable to request sync for household %s", household_id,
                extra={"household_id": household_id},
            )

    def recorded(self, operation: str, household_id: str, record_id: str) -> None:
        MUTATIONS.labels(self.entity, operation).inc()
        logger.debug(
            "%s %s %s in household %s",
            operation,
            self.entity,
            record_id,
            household_id,
            extra={"household_id": household_id},
        )


__all__ = [
    "MutationService",
    "new_id",
    "optional_text",
    "require_household",
    "require_name",
    "require_non_negative",
    "require_positive",
]
