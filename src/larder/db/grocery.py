"""Grocery list persistence helpers."""

from __future__ import annotations

from typing import List, Optional

from larder.models.grocery import GroceryEntry
from larder.timeutils import ensure_utc

from .models import GroceryEntryORM
from .store import LocalStore


def normalize_name(name: str) -> str:
    return " ".join(name.lower().split())


class GroceryStore(LocalStore[GroceryEntry]):
    """Local table of grocery entries (unchecked first, newest first)."""

    orm = GroceryEntryORM
    kind = "Grocery entry"

    def _order_by(self):
        return (
            GroceryEntryORM.is_checked.asc(),
            GroceryEntryORM.created_at.desc(),
        )

    def _to_model(self, row: GroceryEntryORM) -> GroceryEntry:
        return GroceryEntry.model_validate(
            {
                "id": row.id,
                "household_id": row.household_id,
                "list_id": row.list_id,
                "item_ref": row.item_ref,
                "name": row.name,
                "quantity": row.quantity,
                "unit": row.unit,
                "source": row.source,
                "is_checked": row.is_checked,
                "created_at": ensure_utc(row.created_at),
                "updated_at": ensure_utc(row.updated_at),
                "is_synced": row.is_synced,
                "is_deleted": row.is_deleted,
                "revision": row.revision,
            }
        )

    def _apply(self, row: GroceryEntryORM, record: GroceryEntry) -> None:
        row.household_id = record.household_id
        row.list_id = record.list_id
        row.item_ref = record.item_ref
        row.name = record.name
        row.quantity = float(record.quantity)
        row.unit = record.unit
        row.source = record.source
        row.is_checked = record.is_checked
        row.created_at = ensure_utc(record.created_at).replace(tzinfo=None)
        row.updated_at = ensure_utc(record.updated_at).replace(tzinfo=None)
        row.is_synced = record.is_synced
        row.is_deleted = record.is_deleted
        row.revision = record.revision

    def list_by_list(self, household_id: str, list_id: str) -> List[GroceryEntry]:
        return self._fetch(
            self._select_active(household_id).where(GroceryEntryORM.list_id == list_id)
        )

    def list_checked(self, household_id: str) -> List[GroceryEntry]:
        return self._fetch(
            self._select_active(household_id).where(GroceryEntryORM.is_checked.is_(True))
        )

    def find_active_by_name(self, household_id: str, name: str) -> Optional[GroceryEntry]:
        """Return a live entry whose name matches case- and whitespace-insensitively."""

        target = normalize_name(name)
        for entry in self.list_active(household_id):
            if normalize_name(entry.name) == target:
                return entry
        return None

    def active_names(self, household_id: str) -> set[str]:
        return {normalize_name(entry.name) for entry in self.list_active(household_id)}


__all__ = ["GroceryStore", "normalize_name"]
