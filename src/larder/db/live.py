"""Change notification and live query subscriptions for the local store.

Writers publish a :class:`ChangeEvent` after each committed write. A :class:`LiveQuery`
re-runs its query whenever an event touches its table and household, and hands the fresh
result to the subscriber callback.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Dict, Generic, List, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT")

ChangeListener = Callable[["ChangeEvent"], None]


@dataclass(frozen=True)
class ChangeEvent:
    """A committed write to one table; ``household_id`` is ``None`` for cross-household writes."""

    table: str
    household_id: Optional[str]
    record_ids: Tuple[str, ...] = ()

    def touches(self, table: str, household_id: Optional[str]) -> bool:
        if self.table != table:
            return False
        if self.household_id is None or household_id is None:
            return True
        return self.household_id == household_id


class ChangeNotifier:
    """Thread-safe publish/subscribe hub keyed by table name."""

    def __init__(self) -> None:
        self._listeners: Dict[str, List[ChangeListener]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, table: str, listener: ChangeListener) -> None:
        with self._lock:
            if listener not in self._listeners[table]:
                self._listeners[table].append(listener)

    def unsubscribe(self, table: str, listener: ChangeListener) -> None:
        with self._lock:
            try:
                self._listeners[table].remove(listener)
            except ValueError:
                pass

    def publish(self, event: ChangeEvent) -> None:
        with self._lock:
            listeners = list(self._listeners.get(event.table, []))
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Change listener failed for table=%s", event.table)


class LiveQuery(Generic[ResultT]):
    """Subscription that yields the current result now and again after every relevant write."""

    def __init__(
        self,
        notifier: ChangeNotifier,
        *,
        table: str,
        household_id: Optional[str],
        query: Callable[[], ResultT],
        callback: Optional[Callable[[ResultT], None]] = None,
    ) -> None:
        self._notifier = notifier
        self._table = table
        self._household_id = household_id
        self._query = query
        self._callback = callback
        self._lock = threading.Lock()
        self._closed = False
        self._current: ResultT
        self._issued = 0
        self._applied = 0
        notifier.subscribe(table, self._on_change)
        try:
            self._load()
        except Exception:
            notifier.unsubscribe(table, self._on_change)
            raise

    @property
    def current(self) -> ResultT:
        with self._lock:
            return self._current

    @property
    def closed(self) -> bool:
        return self._closed

    def refresh(self) -> ResultT:
        """Re-run the query, store the result, and notify the subscriber."""

        result = self._load()
        if self._callback is not None:
            self._callback(result)
        return result

    def _load(self) -> ResultT:
        # A result only replaces one from a query that started earlier.
        with self._lock:
            self._issued += 1
            ticket = self._issued
        result = self._query()
        with self._lock:
            if ticket > self._applied:
                self._applied = ticket
                self._current = result
            return self._current

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._notifier.unsubscribe(self._table, self._on_change)

    def _on_change(self, event: ChangeEvent) -> None:
        if self._closed or not event.touches(self._table, self._household_id):
            return
        self.refresh()

    def __enter__(self) -> "LiveQuery[ResultT]":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["ChangeEvent", "ChangeNotifier", "LiveQuery"]
