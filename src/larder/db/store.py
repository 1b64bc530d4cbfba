"""Generic household-scoped local store shared by every synchronized table."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Generic, List, Optional, Sequence, Set, Type, TypeVar

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from larder.db.live import ChangeEvent, LiveQuery
from larder.db.repository import LocalDatabase, get_database
from larder.errors import RecordNotFound

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


class LocalStore(Generic[ModelT]):
    """Insert-or-replace storage keyed by ``id`` with soft deletes and dirty tracking.

    Subclasses bind the ORM class and provide the row/model conversions plus the
    ordering used by :meth:`list_active`.
    """

    orm: Type[Any]
    kind: str = "record"

    def __init__(self, database: Optional[LocalDatabase] = None) -> None:
        self._database = database

    @property
    def database(self) -> LocalDatabase:
        return self._database or get_database()

    @property
    def table(self) -> str:
        return self.orm.__tablename__

    # conversion hooks --------------------------------------------------------------

    def _scope_column(self):
        return self.orm.household_id

    def _scope_of(self, row: Any) -> str:
        return row.household_id

    def _order_by(self) -> Sequence[Any]:
        return (self.orm.created_at.asc(),)

    def _to_model(self, row: Any) -> ModelT:
        raise NotImplementedError

    def _apply(self, row: Any, record: ModelT) -> None:
        raise NotImplementedError

    # queries -----------------------------------------------------------------------

    def _select_active(self, household_id: str):
        return (
            select(self.orm)
            .where(self._scope_column() == household_id, self.orm.is_deleted.is_(False))
            .order_by(*self._order_by())
        )

    def _fetch(self, statement) -> List[ModelT]:
        with self.database.session_scope() as session:
            rows = session.execute(statement).scalars().all()
            return [self._to_model(row) for row in rows]

    def list_active(self, household_id: str) -> List[ModelT]:
        """Return non-deleted records of the household in display order."""

        return self._fetch(self._select_active(household_id))

    def watch_active(
        self,
        household_id: str,
        callback: Optional[Callable[[List[ModelT]], None]] = None,
    ) -> LiveQuery[List[ModelT]]:
        """Subscribe to :meth:`list_active`; ``callback`` receives every later result."""

        return LiveQuery(
            self.database.changes,
            table=self.table,
            household_id=household_id,
            query=lambda: self.list_active(household_id),
            callback=callback,
        )

    def get(self, record_id: str) -> Optional[ModelT]:
        with self.database.session_scope() as session:
            row = session.get(self.orm, record_id)
            if row is None:
                return None
            return self._to_model(row)

    def list_dirty(self, household_id: Optional[str] = None) -> List[ModelT]:
        """Return records with unconfirmed local changes, tombstones included."""

        statement = select(self.orm).where(self.orm.is_synced.is_(False))
        if household_id is not None:
            statement = statement.where(self._scope_column() == household_id)
        return self._fetch(statement.order_by(self.orm.updated_at.asc()))

    def list_synced_ids(self, household_id: str) -> Set[str]:
        with self.database.session_scope() as session:
            rows = session.execute(
                select(self.orm.id).where(
                    self._scope_column() == household_id,
                    self.orm.is_synced.is_(True),
                )
            ).all()
            return {row[0] for row in rows}

    # writes ------------------------------------------------------------------------

    def _event(self, household_id: Optional[str], *record_ids: str) -> ChangeEvent:
        return ChangeEvent(table=self.table, household_id=household_id, record_ids=record_ids)

    def _write_row(self, session: Session, record: ModelT) -> Any:
        row = session.get(self.orm, record.id)  # type: ignore[attr-defined]
        if row is None:
            row = self.orm(id=record.id)  # type: ignore[attr-defined]
            session.add(row)
        self._apply(row, record)
        session.flush()
        return row

    def upsert(self, record: ModelT) -> ModelT:
        """Insert or replace the record keyed by its id."""

        with self.database.write_scope() as (session, events):
            row = self._write_row(session, record)
            result = self._to_model(row)
            events.append(self._event(self._scope_of(row), row.id))
        return result

    def modify(self, record_id: str, updater: Callable[[ModelT], ModelT]) -> ModelT:
        """Atomically read a live record, transform it, and write it back."""

        with self.database.write_scope() as (session, events):
            row = session.get(self.orm, record_id)
            if row is None or row.is_deleted:
                raise RecordNotFound(self.kind, record_id)
            updated = updater(self._to_model(row))
            self._apply(row, updated)
            session.flush()
            result = self._to_model(row)
            events.append(self._event(self._scope_of(row), row.id))
        return result

    def soft_delete(self, record_id: str, timestamp: datetime, *, mark_dirty: bool = False) -> bool:
        """Tombstone a record. ``is_synced`` is only cleared when ``mark_dirty`` is set."""

        with self.database.write_scope() as (session, events):
            row = session.get(self.orm, record_id)
            if row is None:
                return False
            row.is_deleted = True
            row.updated_at = timestamp
            if mark_dirty:
                row.is_synced = False
                row.revision = (row.revision or 0) + 1
            events.append(self._event(self._scope_of(row), row.id))
        return True

    def mark_synced(self, record_id: str, revision: Optional[int] = None) -> bool:
        """Flag a record as confirmed remotely; a missing record or newer revision is a no-op."""

        statement = update(self.orm).where(self.orm.id == record_id)
        if revision is not None:
            statement = statement.where(self.orm.revision == revision)
        with self.database.write_scope() as (session, events):
            result = session.execute(statement.values(is_synced=True))
            applied = bool(result.rowcount)
            if applied:
                events.append(self._event(None, record_id))
        if not applied and revision is not None:
            logger.debug(
                "Skipped stale acknowledgment for %s %s revision=%s", self.kind, record_id, revision
            )
        return applied

    def hard_delete(
        self,
        record_id: str,
        revision: Optional[int] = None,
        *,
        synced_only: bool = False,
    ) -> bool:
        """Remove the row; ``revision`` and ``synced_only`` make the delete conditional."""

        statement = delete(self.orm).where(self.orm.id == record_id)
        if revision is not None:
            statement = statement.where(self.orm.revision == revision)
        if synced_only:
            statement = statement.where(self.orm.is_synced.is_(True))
        with self.database.write_scope() as (session, events):
            result = session.execute(statement)
            applied = bool(result.rowcount)
            if applied:
                events.append(self._event(None, record_id))
        return applied

    def purge_household(self, household_id: str) -> int:
        """Hard delete every record of the household regardless of sync state."""

        with self.database.write_scope() as (session, events):
            result = session.execute(delete(self.orm).where(self._scope_column() == household_id))
            events.append(self._event(household_id))
            return int(result.rowcount or 0)

    def apply_remote(self, record: ModelT) -> bool:
        """Write a pulled record unless the local copy has unconfirmed edits.

        The local revision counter is preserved so that acknowledgments issued before the
        pull stay comparable. Records of an abandoned household are refused.
        """

        with self.database.write_scope() as (session, events):
            if self.database.is_abandoned(self._scope_of(record)):
                logger.debug("Refusing pulled %s %s for abandoned household", self.kind, record.id)
                return False
            row = session.get(self.orm, record.id)  # type: ignore[attr-defined]
            if row is not None and not row.is_synced:
                return False
            revision = row.revision if row is not None else 0
            row = self._write_row(session, record)
            row.revision = revision
            row.is_synced = True
            row.is_deleted = False
            events.append(self._event(self._scope_of(row), row.id))
        return True


__all__ = ["LocalStore"]
