"""Wire the local store, sync engine, scheduler, and mutation services together."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from larder.config import Settings, get_settings
from larder.db.grocery import GroceryStore
from larder.db.households import HouseholdStore
from larder.db.pantry import PantryStore
from larder.db.repository import LocalDatabase, get_database
from larder.logging_utils import configure_logging
from larder.mutations import GroceryMutations, HouseholdMutations, PantryMutations
from larder.remote.base import RemoteStore
from larder.remote.http import HttpRemoteStore
from larder.sync.engine import SyncEngine
from larder.sync.scheduler import ImmediateScheduler, NullScheduler, SyncRequester, SyncScheduler

logger = logging.getLogger(__name__)


@dataclass
class Larder:
    """One device's view of the inventory: local tables plus the sync machinery."""

    database: LocalDatabase
    pantry_store: PantryStore
    grocery_store: GroceryStore
    household_store: HouseholdStore
    engine: Optional[SyncEngine]
    scheduler: SyncRequester
    pantry: PantryMutations
    grocery: GroceryMutations
    households: HouseholdMutations
    remote: Optional[RemoteStore] = None

    def request_sync(self, household_id: str) -> None:
        self.pantry.request_sync(household_id)

    def start(self) -> None:
        if isinstance(self.scheduler, SyncScheduler):
            for household in self.household_store.list_known():
                self.scheduler.register(household.id)
            self.scheduler.start()

    def close(self) -> None:
        if isinstance(self.scheduler, SyncScheduler):
            self.scheduler.stop()
        if self.remote is not None:
            self.remote.close()


def create_larder(
    remote: Optional[RemoteStore] = None,
    *,
    database: Optional[LocalDatabase] = None,
    settings: Optional[Settings] = None,
    background: bool = True,
    is_authenticated: Optional[Callable[[], bool]] = None,
    configure_logs: bool = False,
) -> Larder:
    """Build a :class:`Larder`.

    Without an explicit ``remote`` the HTTP client is used when ``remote_base_url`` is
    configured; otherwise the instance runs local-only and sync requests are dropped.
    ``background=False`` runs passes synchronously on the caller's thread.
    """

    if database is None:
        database = get_database() if settings is None else LocalDatabase(settings.database_path)
    settings = settings or get_settings()
    if configure_logs:
        configure_logging(settings.log_level, settings.log_format, [settings.remote_token or ""])

    if remote is None and settings.remote_base_url:
        remote = HttpRemoteStore(settings.remote_base_url, settings.remote_token)

    pantry_store = PantryStore(database)
    grocery_store = GroceryStore(database)
    household_store = HouseholdStore(database)

    engine: Optional[SyncEngine] = None
    scheduler: SyncRequester
    if remote is None:
        logger.info("No remote store configured; running local-only")
        scheduler = NullScheduler()
    else:
        engine = SyncEngine(
            remote,
            database=database,
            pantry=pantry_store,
            grocery=grocery_store,
            households=household_store,
            is_authenticated=is_authenticated,
        )
        if background:
            scheduler = SyncScheduler(engine.run_sync_pass)
        else:
            scheduler = ImmediateScheduler(engine.run_sync_pass)

    return Larder(
        database=database,
        pantry_store=pantry_store,
        grocery_store=grocery_store,
        household_store=household_store,
        engine=engine,
        scheduler=scheduler,
        pantry=PantryMutations(database=database, scheduler=scheduler, store=pantry_store),
        grocery=GroceryMutations(
            database=database, scheduler=scheduler, store=grocery_store, pantry=pantry_store
        ),
        households=HouseholdMutations(
            database=database,
            scheduler=scheduler,
            store=household_store,
            pantry=pantry_store,
            grocery=grocery_store,
        ),
        remote=remote,
    )


__all__ = ["Larder", "create_larder"]
