"""Pydantic models defining the synchronized entity records."""

from larder.models.grocery import GroceryEntry
from larder.models.household import Household
from larder.models.pantry import PantryItem
from larder.models.sync import CollectionReport, SyncOutcome, SyncReport

__all__ = [
    "CollectionReport",
    "GroceryEntry",
    "Household",
    "PantryItem",
    "SyncOutcome",
    "SyncReport",
]
