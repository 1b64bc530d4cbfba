"""Conversion between local records and remote documents.

Remote documents use camelCase keys and ISO 8601 UTC timestamps. Conversions are pure:
optional fields that are absent on one side are omitted on the other, and a missing
remote timestamp (for example a server-assigned time not yet populated) becomes the
current time. Records built from remote documents are always synced and live.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from larder.models.grocery import SOURCE_MANUAL, GroceryEntry
from larder.models.household import Household
from larder.models.pantry import PantryItem
from larder.remote.base import Document
from larder.timeutils import format_timestamp, parse_date, parse_timestamp, utcnow

logger = logging.getLogger(__name__)


def _put(document: Dict[str, Any], key: str, value: Any) -> None:
    if value is not None:
        document[key] = value


def _as_float(value: Any, default: float) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.debug("Ignoring non-numeric value %r", value)
        return default


def _as_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _timestamps(document: Document) -> Dict[str, Any]:
    now = utcnow()
    return {
        "created_at": parse_timestamp(document.get("createdAt")) or now,
        "updated_at": parse_timestamp(document.get("updatedAt")) or now,
    }


def _document_id(document: Document, fallback: Optional[str]) -> str:
    value = document.get("id") or fallback
    if not value:
        raise ValueError("Remote document has no id")
    return str(value)


def item_to_document(item: PantryItem) -> Document:
    document: Dict[str, Any] = {
        "id": item.id,
        "householdId": item.household_id,
        "name": item.name,
        "quantity": item.quantity,
        "lowStockThreshold": item.low_stock_threshold,
        "createdAt": format_timestamp(item.created_at),
        "updatedAt": format_timestamp(item.updated_at),
    }
    _put(document, "unit", item.unit)
    _put(document, "expiryDate", item.expiry_date.isoformat() if item.expiry_date else None)
    _put(document, "location", item.location)
    _put(document, "barcode", item.barcode)
    _put(document, "notes", item.notes)
    _put(document, "photoUrl", item.photo_url)
    _put(document, "addedBy", item.added_by)
    if item.nutrition:
        document["nutrition"] = dict(item.nutrition)
    return document


def document_to_item(
    document: Document,
    household_id: str,
    document_id: Optional[str] = None,
) -> PantryItem:
    nutrition = document.get("nutrition")
    return PantryItem(
        id=_document_id(document, document_id),
        household_id=household_id,
        name=str(document.get("name") or ""),
        quantity=_as_float(document.get("quantity"), 0.0),
        unit=_as_str(document.get("unit")),
        expiry_date=parse_date(document.get("expiryDate")),
        location=_as_str(document.get("location")),
        barcode=_as_str(document.get("barcode")),
        low_stock_threshold=_as_float(document.get("lowStockThreshold"), 0.0),
        notes=_as_str(document.get("notes")),
        photo_url=_as_str(document.get("photoUrl")),
        added_by=_as_str(document.get("addedBy")),
        nutrition=dict(nutrition) if isinstance(nutrition, dict) and nutrition else None,
        is_synced=True,
        is_deleted=False,
        **_timestamps(document),
    )


def entry_to_document(entry: GroceryEntry) -> Document:
    document: Dict[str, Any] = {
        "id": entry.id,
        "householdId": entry.household_id,
        "listId": entry.list_id,
        "name": entry.name,
        "quantity": entry.quantity,
        "source": entry.source,
        "isChecked": entry.is_checked,
        "createdAt": format_timestamp(entry.created_at),
        "updatedAt": format_timestamp(entry.updated_at),
    }
    _put(document, "itemRef", entry.item_ref)
    _put(document, "unit", entry.unit)
    return document


def document_to_entry(
    document: Document,
    household_id: str,
    list_id: str,
    document_id: Optional[str] = None,
) -> GroceryEntry:
    return GroceryEntry(
        id=_document_id(document, document_id),
        household_id=household_id,
        list_id=str(document.get("listId") or list_id),
        item_ref=_as_str(document.get("itemRef")),
        name=str(document.get("name") or ""),
        quantity=_as_float(document.get("quantity"), 0.0),
        unit=_as_str(document.get("unit")),
        source=str(document.get("source") or SOURCE_MANUAL),
        is_checked=bool(document.get("isChecked", False)),
        is_synced=True,
        is_deleted=False,
        **_timestamps(document),
    )


def household_to_document(household: Household) -> Document:
    return {
        "id": household.id,
        "name": household.name,
        "ownerId": household.owner_id,
        "members": sorted(household.member_ids),
        "createdAt": format_timestamp(household.created_at),
        "updatedAt": format_timestamp(household.updated_at),
    }


def document_to_household(document: Document, household_id: str) -> Household:
    members = document.get("members") or []
    if not isinstance(members, (list, tuple, set)):
        members = []
    return Household(
        id=str(document.get("id") or household_id),
        name=str(document.get("name") or ""),
        owner_id=str(document.get("ownerId") or ""),
        member_ids=frozenset(str(member) for member in members),
        is_synced=True,
        is_deleted=False,
        **_timestamps(document),
    )


__all__ = [
    "document_to_entry",
    "document_to_household",
    "document_to_item",
    "entry_to_document",
    "household_to_document",
    "item_to_document",
]
