"""Shared pytest fixtures for the Larder test suite."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import pytest

from larder.config import get_settings
from larder.db.grocery import GroceryStore
from larder.db.households import HouseholdStore
from larder.db.pantry import PantryStore
from larder.db.repository import LocalDatabase, reset_repository_state
from larder.mutations import GroceryMutations, HouseholdMutations, PantryMutations
from larder.remote.memory import InMemoryRemoteStore
from larder.sync.engine import SyncEngine
from larder.sync.scheduler import NullScheduler


@dataclass
class Device:
    """One simulated device: its own database, stores, engine, and mutation services."""

    database: LocalDatabase
    pantry_store: PantryStore
    grocery_store: GroceryStore
    household_store: HouseholdStore
    scheduler: NullScheduler
    engine: SyncEngine
    pantry: PantryMutations
    grocery: GroceryMutations
    households: HouseholdMutations

    def sync(self, household_id: str):
        return self.engine.run_sync_pass(household_id)


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Ensure each test uses an isolated SQLite database location."""

    db_path = tmp_path / "test_larder.db"
    monkeypatch.setenv("LARDER_DATABASE_PATH", str(db_path))
    monkeypatch.delenv("LARDER_REMOTE_BASE_URL", raising=False)
    monkeypatch.delenv("LARDER_REMOTE_TOKEN", raising=False)
    get_settings.cache_clear()
    reset_repository_state()
    yield
    reset_repository_state()
    monkeypatch.delenv("LARDER_DATABASE_PATH", raising=False)
    get_settings.cache_clear()


@pytest.fixture()
def database(tmp_path):
    db = LocalDatabase(tmp_path / "device.db")
    yield db
    db.dispose()


@pytest.fixture()
def remote() -> InMemoryRemoteStore:
    return InMemoryRemoteStore()


@pytest.fixture()
def make_device(tmp_path, remote) -> Callable[..., Device]:
    """Build devices that share the ``remote`` store but keep separate local databases."""

    created: list[LocalDatabase] = []

    def _factory(name: str = "phone", remote_store=None) -> Device:
        database = LocalDatabase(tmp_path / f"{name}.db")
        created.append(database)
        scheduler = NullScheduler()
        pantry_store = PantryStore(database)
        grocery_store = GroceryStore(database)
        household_store = HouseholdStore(database)
        engine = SyncEngine(
            remote_store or remote,
            database=database,
            pantry=pantry_store,
            grocery=grocery_store,
            households=household_store,
        )
        return Device(
            database=database,
            pantry_store=pantry_store,
            grocery_store=grocery_store,
            household_store=household_store,
            scheduler=scheduler,
            engine=engine,
            pantry=PantryMutations(database=database, scheduler=scheduler, store=pantry_store),
            grocery=GroceryMutations(
                database=database,
                scheduler=scheduler,
                store=grocery_store,
                pantry=pantry_store,
            ),
            households=HouseholdMutations(
                database=database,
                scheduler=scheduler,
                store=household_store,
                pantry=pantry_store,
                grocery=grocery_store,
            ),
        )

    yield _factory
    for database in created:
        database.dispose()


@pytest.fixture()
def device(make_device) -> Device:
    return make_device()
