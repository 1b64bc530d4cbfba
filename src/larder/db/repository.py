"""Database engine and session management."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, List, Optional, Set

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from larder.config import get_settings
from larder.db.live import ChangeEvent, ChangeNotifier
from larder.db.models import Base

logger = logging.getLogger(__name__)


def _enable_sqlite_pragmas(dbapi_connection, _record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA busy_timeout=5000")
    cursor.close()


class LocalDatabase:
    """One on-device SQLite database: engine, sessions, write serialization, change feed."""

    def __init__(self, database_path: Path | str) -> None:
        self.path = Path(database_path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.engine: Engine = create_engine(
            f"sqlite:///{self.path}",
            future=True,
            echo=False,
            connect_args={"check_same_thread": False},
        )
        event.listen(self.engine, "connect", _enable_sqlite_pragmas)
        try:
            Base.metadata.create_all(self.engine)
        except OperationalError as exc:
            if "already exists" in str(exc).lower():
                logger.debug("Database schema already initialized: %s", exc)
            else:
                raise
        self._session_factory: sessionmaker[Session] = sessionmaker(
            bind=self.engine, autoflush=False, autocommit=False, future=True
        )
        self._write_lock = threading.RLock()
        self._abandoned: Set[str] = set()
        self.changes = ChangeNotifier()

    def get_session(self) -> Session:
        """Return a new SQLAlchemy session."""

        return self._session_factory()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Context manager yielding a session with automatic commit/rollback."""

        session = self.get_session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def write_scope(self) -> Generator[tuple[Session, List[ChangeEvent]], None, None]:
        """Serialized write transaction; queued change events are published after commit."""

        events: List[ChangeEvent] = []
        with self._write_lock:
            with self.session_scope() as session:
                yield session, events
        for change in events:
            self.changes.publish(change)

    def mark_abandoned(self, household_id: str) -> None:
        """Refuse pulled writes for the household until :meth:`clear_abandoned` is called.

        Taken under the write lock, so a pull that lands after this call cannot bring
        purged rows back.
        """

        with self._write_lock:
            self._abandoned.add(household_id)

    def clear_abandoned(self, household_id: str) -> None:
        with self._write_lock:
            self._abandoned.discard(household_id)

    def is_abandoned(self, household_id: Optional[str]) -> bool:
        with self._write_lock:
            return household_id in self._abandoned

    def dispose(self) -> None:
        self.engine.dispose()


_database: Optional[LocalDatabase] = None
_database_lock = threading.Lock()


def get_database(database_path: Path | None = None) -> LocalDatabase:
    """Return the shared process database configured from settings."""

    global _database

    with _database_lock:
        if _database is None:
            settings = get_settings()
            _database = LocalDatabase(database_path or settings.database_path)
        return _database


def session_scope():
    """Session scope on the shared process database."""

    return get_database().session_scope()


def reset_repository_state() -> None:
    """Reset cached database state (intended for testing)."""

    global _database
    with _database_lock:
        if _database is not None:
            _database.dispose()
        _database = None


__all__ = [
    "LocalDatabase",
    "get_database",
    "reset_repository_state",
    "session_scope",
]
