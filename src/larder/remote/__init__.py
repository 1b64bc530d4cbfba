"""Remote document store clients."""

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
from larder.remote.http import HttpRemoteStore
from larder.remote.memory import InMemoryRemoteStore

__all__ = [
    "Document",
    "HttpRemoteStore",
    "InMemoryRemoteStore",
    "RemoteStore",
    "grocery_entries_collection",
    "grocery_entry_path",
    "grocery_lists_collection",
    "household_path",
    "item_path",
    "items_collection",
]
