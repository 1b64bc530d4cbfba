"""Local SQLite store for synchronized records."""

from larder.db.grocery import GroceryStore
from larder.db.households import HouseholdStore
from larder.db.live import ChangeEvent, ChangeNotifier, LiveQuery
from larder.db.pantry import PantryStore
from larder.db.repository import LocalDatabase, get_database, reset_repository_state

__all__ = [
    "ChangeEvent",
    "ChangeNotifier",
    "GroceryStore",
    "HouseholdStore",
    "LiveQuery",
    "LocalDatabase",
    "PantryStore",
    "get_database",
    "reset_repository_state",
]
