"""Bidirectional reconciliation between the local store and the remote document store."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Generic, Iterable, List, Optional, Set, Tuple, TypeVar

from larder.db.grocery import GroceryStore
from larder.db.households import HouseholdStore
from larder.db.pantry import PantryStore
from larder.db.repository import LocalDatabase
from larder.db.store import LocalStore
from larder.errors import FatalSyncFailure, RemoteStoreError
from larder.metrics import SYNC_PASS_DURATION, SYNC_PASSES, SYNC_RECORDS
from larder.models.grocery import GroceryEntry
from larder.models.household import Household
from larder.models.pantry import PantryItem
from larder.models.sync import CollectionReport, SyncOutcome, SyncReport
from larder.remote.base import (
    Document,
    RemoteStore,
    grocery_entries_collection,
    grocery_entry_path,
    grocery_lists_collection,
    household_path,
    item_path,
    items_collection,
)
from larder.sync import mapper
from larder.timeutils import utcnow

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT")


class RemoteListingFailed(Exception):
    """A remote collection could not be enumerated; its pull did not run."""


@dataclass
class _Counters:
    collection: str
    pushed: int = 0
    deleted: int = 0
    pulled: int = 0
    skipped: int = 0
    pruned: int = 0
    failed: int = 0

    def freeze(self) -> CollectionReport:
        return CollectionReport(
            collection=self.collection,
            pushed=self.pushed,
            deleted=self.deleted,
            pulled=self.pulled,
            skipped=self.skipped,
            pruned=self.pruned,
            failed=self.failed,
        )


@dataclass
class _Collection(Generic[RecordT]):
    """How one entity kind is addressed remotely and converted."""

    name: str
    store: LocalStore[RecordT]
    document_path: Callable[[RecordT], str]
    to_document: Callable[[RecordT], Document]
    fetch_remote: Callable[[str, _Counters], List[RecordT]]
    prune_missing: bool = True


@dataclass
class _HouseholdState:
    last_report: Optional[SyncReport] = None
    last_synced_at: Optional[datetime] = None
    rerun_requested: bool = False


class SyncEngine:
    """Reconcile one household at a time: push dirty local records, then pull remote documents.

    Conflict rule: a pulled document replaces the local record only when the local record
    is absent or has no unconfirmed edits. Dirty local records win and are pushed on the
    next pass, so a slow push is never clobbered by a pull racing ahead of it.

    Passes are single-flight per household. A request arriving while a pass for the same
    household is running is coalesced into one follow-up pass.
    """

    def __init__(
        self,
        remote: RemoteStore,
        *,
        database: Optional[LocalDatabase] = None,
        pantry: Optional[PantryStore] = None,
        grocery: Optional[GroceryStore] = None,
        households: Optional[HouseholdStore] = None,
        is_authenticated: Optional[Callable[[], bool]] = None,
    ) -> None:
        self._remote = remote
        self.pantry = pantry or PantryStore(database)
        self.grocery = grocery or GroceryStore(database)
        self.households = households or HouseholdStore(database)
        self._is_authenticated = is_authenticated or (lambda: True)
        self._lock = threading.Lock()
        self._in_flight: Set[str] = set()
        self._state: Dict[str, _HouseholdState] = {}
        self._collections: Tuple[_Collection[Any], ...] = (
            _Collection(
                name="households",
                store=self.households,
                document_path=lambda household: household_path(household.id),
                to_document=mapper.household_to_document,
                fetch_remote=self._fetch_household,
                prune_missing=False,
            ),
            _Collection(
                name="items",
                store=self.pantry,
                document_path=lambda item: item_path(item.household_id, item.id),
                to_document=mapper.item_to_document,
                fetch_remote=self._fetch_items,
            ),
            _Collection(
                name="groceryEntries",
                store=self.grocery,
                document_path=lambda entry: grocery_entry_path(
                    entry.household_id, entry.list_id, entry.id
                ),
                to_document=mapper.entry_to_document,
                fetch_remote=self._fetch_grocery_entries,
            ),
        )

    # scheduler entry point ---------------------------------------------------------

    def run_sync_pass(self, household_id: Optional[str]) -> SyncOutcome:
        """Reconcile a household and report ``SUCCESS`` or ``RETRY`` to the scheduler."""

        if not household_id:
            logger.warning("No household id provided, skipping sync")
            return SyncOutcome.SUCCESS
        if not self._is_authenticated():
            logger.warning(
                "No authenticated session, skipping sync", extra={"household_id": household_id}
            )
            return SyncOutcome.SUCCESS

        with self._lock:
            state = self._state.setdefault(household_id, _HouseholdState())
            if household_id in self._in_flight:
                state.rerun_requested = True
                logger.debug("Sync already running for household %s, coalescing", household_id)
                return SyncOutcome.SUCCESS
            self._in_flight.add(household_id)

        try:
            while True:
                outcome = self._run_once(household_id)
                with self._lock:
                    rerun = state.rerun_requested
                    state.rerun_requested = False
                if not rerun or outcome is SyncOutcome.RETRY:
                    return outcome
                logger.debug("Running coalesced follow-up pass for household %s", household_id)
        finally:
            with self._lock:
                self._in_flight.discard(household_id)

    def is_syncing(self, household_id: str) -> bool:
        with self._lock:
            return household_id in self._in_flight

    def last_report(self, household_id: str) -> Optional[SyncReport]:
        with self._lock:
            state = self._state.get(household_id)
            return state.last_report if state else None

    def last_synced_at(self, household_id: str) -> Optional[datetime]:
        with self._lock:
            state = self._state.get(household_id)
            return state.last_synced_at if state else None

    # phases ------------------------------------------------------------------------

    def push_phase(self, household_id: str) -> List[CollectionReport]:
        reports = []
        for collection in self._collections:
            counters = _Counters(collection.name)
            self._push(collection, household_id, counters)
            reports.append(counters.freeze())
        return reports

    def pull_phase(self, household_id: str) -> List[CollectionReport]:
        """Pull every collection; one that cannot be listed is counted as failed and skipped."""

        counters = [_Counters(collection.name) for collection in self._collections]
        self._pull_all(household_id, counters)
        return [counter.freeze() for counter in counters]

    def _abandoned(self, household_id: str) -> bool:
        return self.households.database.is_abandoned(household_id)

    def _run_once(self, household_id: str) -> SyncOutcome:
        if self._abandoned(household_id):
            logger.info(
                "Household %s was abandoned on this device, skipping sync",
                household_id,
                extra={"household_id": household_id},
            )
            return SyncOutcome.SUCCESS

        started_at = utcnow()
        outcome = SyncOutcome.SUCCESS
        error: Optional[str] = None
        counters = [_Counters(collection.name) for collection in self._collections]

        with SYNC_PASS_DURATION.time():
            try:
                for collection, counter in zip(self._collections, counters):
                    self._push(collection, household_id, counter)
                listing_errors = self._pull_all(household_id, counters)
                if listing_errors:
                    outcome = SyncOutcome.RETRY
                    error = "; ".join(listing_errors)
            except Exception as exc:
                failure = FatalSyncFailure(household_id, exc)
                outcome = SyncOutcome.RETRY
                error = str(failure)
                logger.exception("Sync failed", extra={"household_id": household_id})

        report = SyncReport(
            household_id=household_id,
            outcome=outcome,
            started_at=started_at,
            finished_at=utcnow(),
            collections=[counter.freeze() for counter in counters],
            error=error,
        )
        with self._lock:
            state = self._state.setdefault(household_id, _HouseholdState())
            state.last_report = report
            if outcome is SyncOutcome.SUCCESS:
                state.last_synced_at = report.finished_at
        SYNC_PASSES.labels(outcome=outcome.value).inc()
        logger.info(
            "Sync pass finished household=%s outcome=%s failed=%s",
            household_id,
            outcome.value,
            report.failed,
            extra={"household_id": household_id},
        )
        return outcome

    def _push(self, collection: _Collection[Any], household_id: str, counters: _Counters) -> None:
        for record in collection.store.list_dirty(household_id):
            path = collection.document_path(record)
            try:
                if record.is_deleted:
                    self._remote.delete(path)
                    collection.store.mark_synced(record.id, record.revision)
                    collection.store.hard_delete(record.id, record.revision)
                    counters.deleted += 1
                    SYNC_RECORDS.labels(collection.name, "push", "deleted").inc()
                    logger.debug("Deleted %s from remote: %s", collection.name, record.id)
                else:
                    self._remote.set(path, collection.to_document(record))
                    if not collection.store.mark_synced(record.id, record.revision):
                        logger.debug(
                            "Record %s changed during push; leaving it dirty", record.id
                        )
                    counters.pushed += 1
                    SYNC_RECORDS.labels(collection.name, "push", "ok").inc()
                    logger.debug("Pushed %s to remote: %s", collection.name, record.id)
            except RemoteStoreError as exc:
                counters.failed += 1
                SYNC_RECORDS.labels(collection.name, "push", "failed").inc()
                logger.warning(
                    "Push failed for %s %s: %s",
                    collection.name,
                    record.id,
                    exc,
                    extra={"household_id": household_id},
                )

    def _pull_all(self, household_id: str, counters: List[_Counters]) -> List[str]:
        """Pull each collection independently and return the listing errors."""

        errors = []
        for collection, counter in zip(self._collections, counters):
            try:
                self._pull(collection, household_id, counter)
            except RemoteListingFailed as exc:
                counter.failed += 1
                errors.append(str(exc))
                logger.warning(
                    "Pull incomplete for household %s: %s",
                    household_id,
                    exc,
                    extra={"household_id": household_id},
                )
        return errors

    def _pull(self, collection: _Collection[Any], household_id: str, counters: _Counters) -> None:
        malformed_before = counters.failed
        try:
            records = collection.fetch_remote(household_id, counters)
        except RemoteStoreError as exc:
            SYNC_RECORDS.labels(collection.name, "pull", "failed").inc()
            raise RemoteListingFailed(f"{collection.name}: {exc}") from exc

        seen: Set[str] = set()
        for record in records:
            if self._abandoned(household_id):
                logger.debug("Household %s abandoned mid-pull, stopping", household_id)
                return
            seen.add(record.id)
            if collection.store.apply_remote(record):
                counters.pulled += 1
                SYNC_RECORDS.labels(collection.name, "pull", "ok").inc()
            else:
                counters.skipped += 1
                SYNC_RECORDS.labels(collection.name, "pull", "skipped").inc()
                logger.debug("Skipping %s %s (local changes pending)", collection.name, record.id)

        if not collection.prune_missing or counters.failed > malformed_before:
            return
        for record_id in collection.store.list_synced_ids(household_id) - seen:
            if collection.store.hard_delete(record_id, synced_only=True):
                counters.pruned += 1
                SYNC_RECORDS.labels(collection.name, "pull", "pruned").inc()
                logger.debug("Removed %s %s deleted on another device", collection.name, record_id)

    # remote readers ----------------------------------------------------------------

    @staticmethod
    def _map_each(
        documents: Iterable[Document],
        convert: Callable[[Document], RecordT],
        counters: _Counters,
    ) -> List[RecordT]:
        records = []
        for document in documents:
            try:
                records.append(convert(document))
            except ValueError as exc:
                counters.failed += 1
                logger.warning("Ignoring malformed %s document: %s", counters.collection, exc)
        return records

    def _fetch_household(self, household_id: str, counters: _Counters) -> List[Household]:
        document = self._remote.get(household_path(household_id))
        if document is None:
            return []
        return self._map_each(
            [document],
            lambda doc: mapper.document_to_household(doc, household_id),
            counters,
        )

    def _fetch_items(self, household_id: str, counters: _Counters) -> List[PantryItem]:
        documents = self._remote.list_documents(items_collection(household_id))
        return self._map_each(
            documents,
            lambda doc: mapper.document_to_item(doc, household_id),
            counters,
        )

    def _fetch_grocery_entries(self, household_id: str, counters: _Counters) -> List[GroceryEntry]:
        entries: List[GroceryEntry] = []
        for list_id in self._remote.list_document_ids(grocery_lists_collection(household_id)):
            documents = self._remote.list_documents(
                grocery_entries_collection(household_id, list_id)
            )
            entries.extend(
                self._map_each(
                    documents,
                    lambda doc, list_id=list_id: mapper.document_to_entry(
                        doc, household_id, list_id
                    ),
                    counters,
                )
            )
        return entries


__all__ = ["RemoteListingFailed", "SyncEngine"]
