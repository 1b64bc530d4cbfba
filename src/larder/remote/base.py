"""Remote document store interface and path helpers.

Documents live in a hierarchy of collections:

- ``household/{household_id}``
- ``household/{household_id}/items/{item_id}``
- ``household/{household_id}/groceryEntries/{list_id}/entries/{entry_id}``
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

Document = Dict[str, Any]

HOUSEHOLD_COLLECTION = "household"
ITEMS_COLLECTION = "items"
GROCERY_LISTS_COLLECTION = "groceryEntries"
GROCERY_ENTRIES_COLLECTION = "entries"


def household_path(household_id: str) -> str:
    return f"{HOUSEHOLD_COLLECTION}/{household_id}"


def items_collection(household_id: str) -> str:
    return f"{household_path(household_id)}/{ITEMS_COLLECTION}"


def item_path(household_id: str, item_id: str) -> str:
    return f"{items_collection(household_id)}/{item_id}"


def grocery_lists_collection(household_id: str) -> str:
    return f"{household_path(household_id)}/{GROCERY_LISTS_COLLECTION}"


def grocery_entries_collection(household_id: str, list_id: str) -> str:
    return f"{grocery_lists_collection(household_id)}/{list_id}/{GROCERY_ENTRIES_COLLECTION}"


def grocery_entry_path(household_id: str, list_id: str, entry_id: str) -> str:
    return f"{grocery_entries_collection(household_id, list_id)}/{entry_id}"


class RemoteStore(ABC):
    """Hierarchical document store shared by every device of a household.

    Implementations raise :class:`~larder.errors.RemoteUnavailable` for transient failures
    and :class:`~larder.errors.RemoteRejected` when the store refuses a request.
    """

    @abstractmethod
    def list_documents(self, collection_path: str) -> List[Document]:
        """Return every document directly inside the collection."""

    @abstractmethod
    def list_document_ids(self, collection_path: str) -> List[str]:
        """Return ids of documents in the collection.

        Parents that only hold subcollections count as documents here.
        """

    @abstractmethod
    def get(self, document_path: str) -> Optional[Document]:
        """Return the document or ``None`` when it does not exist."""

    @abstractmethod
    def set(self, document_path: str, data: Document) -> None:
        """Replace the whole document."""

    @abstractmethod
    def delete(self, document_path: str) -> None:
        """Delete the document; deleting a missing document succeeds."""

    def close(self) -> None:
        """Release client resources."""


__all__ = [
    "Document",
    "RemoteStore",
    "grocery_entries_collection",
    "grocery_entry_path",
    "grocery_lists_collection",
    "household_path",
    "item_path",
    "items_collection",
]
