"""Grocery list mutations, including entries generated from the pantry."""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from larder.config import get_settings
from larder.db.grocery import GroceryStore, normalize_name
from larder.db.pantry import PantryStore
from larder.db.repository import LocalDatabase
from larder.errors import RecordNotFound, ValidationError
from larder.models.grocery import (
    SOURCE_EXPIRING,
    SOURCE_LOW_STOCK,
    SOURCE_MANUAL,
    SOURCES,
    GroceryEntry,
)
from larder.models.pantry import PantryItem
from larder.sync.scheduler import SyncRequester
from larder.timeutils import days_from_today

from .base import (
    MutationService,
    new_id,
    optional_text,
    require_household,
    require_name,
    require_positive,
)

_UNSET: Any = object()


def _source(value: Optional[str]) -> str:
    source = optional_text(value) or SOURCE_MANUAL
    if source not in SOURCES:
        raise ValidationError("source", f"must be one of {', '.join(SOURCES)}")
    return source


class GroceryMutations(MutationService):
    """Mutations for the household grocery lists."""

    entity = "grocery_entry"

    def __init__(
        self,
        *,
        database: Optional[LocalDatabase] = None,
        scheduler: Optional[SyncRequester] = None,
        store: Optional[GroceryStore] = None,
        pantry: Optional[PantryStore] = None,
    ) -> None:
        super().__init__(database=database, scheduler=scheduler)
        self.store = store or GroceryStore(database)
        self.pantry = pantry or PantryStore(database)

    def _build_entry(
        self,
        household_id: str,
        *,
        name: str,
        quantity: Any,
        unit: Optional[str],
        list_id: Optional[str],
        item_ref: Optional[str],
        source: Optional[str],
        entry_id: Optional[str] = None,
    ) -> GroceryEntry:
        return GroceryEntry(
            id=entry_id or new_id(),
            household_id=household_id,
            list_id=optional_text(list_id) or get_settings().default_list_id,
            item_ref=optional_text(item_ref),
            name=require_name(name),
            quantity=require_positive(quantity, "quantity"),
            unit=optional_text(unit),
            source=_source(source),
            is_checked=False,
            **self.new_record_stamp(),
        )

    def create_entry(
        self,
        household_id: Optional[str],
        *,
        name: str,
        quantity: float = 1.0,
        unit: Optional[str] = None,
        list_id: Optional[str] = None,
        item_ref: Optional[str] = None,
        source: Optional[str] = None,
        entry_id: Optional[str] = None,
    ) -> GroceryEntry:
        household_id = require_household(household_id)
        entry = self._build_entry(
            household_id,
            name=name,
            quantity=quantity,
            unit=unit,
            list_id=list_id,
            item_ref=item_ref,
            source=source,
            entry_id=entry_id,
        )
        if self.store.get(entry.id) is not None:
            raise ValidationError("id", f"{entry.id} is already in use")
        saved = self.store.upsert(entry)
        self.recorded("create", household_id, saved.id)
        self.request_sync(household_id)
        return saved

    def update_entry(
        self,
        household_id: Optional[str],
        entry_id: str,
        *,
        name: str | object = _UNSET,
        quantity: float | object = _UNSET,
        unit: Optional[str] | object = _UNSET,
        is_checked: bool | object = _UNSET,
    ) -> GroceryEntry:
        household_id = require_household(household_id)
        changes: Dict[str, Any] = {}
        if name is not _UNSET:
            changes["name"] = require_name(name)  # type: ignore[arg-type]
        if quantity is not _UNSET:
            changes["quantity"] = require_positive(quantity, "quantity")
        if unit is not _UNSET:
            changes["unit"] = optional_text(unit)  # type: ignore[arg-type]
        if is_checked is not _UNSET:
            changes["is_checked"] = bool(is_checked)
        return self._modify(household_id, entry_id, "update", changes)

    def set_checked(
        self, household_id: Optional[str], entry_id: str, checked: bool = True
    ) -> GroceryEntry:
        household_id = require_household(household_id)
        return self._modify(household_id, entry_id, "check", {"is_checked": bool(checked)})

    def delete_entry(self, household_id: Optional[str], entry_id: str) -> None:
        household_id = require_household(household_id)
        self._modify(household_id, entry_id, "delete", {"is_deleted": True})

    def _modify(
        self, household_id: str, entry_id: str, operation: str, changes: Dict[str, Any]
    ) -> GroceryEntry:
        def _update(entry: GroceryEntry) -> GroceryEntry:
            self.ensure_in_household(entry, household_id, self.store.kind)
            return self.dirty_copy(entry, **changes)

        saved = self.store.modify(entry_id, _update)
        self.recorded(operation, household_id, saved.id)
        self.request_sync(household_id)
        return saved

    def clear_checked(self, household_id: Optional[str]) -> int:
        """Tombstone every checked entry of the household and return how many were removed."""

        household_id = require_household(household_id)
        removed = 0
        for entry in self.store.list_checked(household_id):
            try:
                self.store.modify(
                    entry.id, lambda current: self.dirty_copy(current, is_deleted=True)
                )
            except RecordNotFound:
                # Deleted since the listing.
                continue
            self.recorded("delete", household_id, entry.id)
            removed += 1
        if removed:
            self.request_sync(household_id)
        return removed

    # generated entries -------------------------------------------------------------

    def generate_from_expiring(
        self,
        household_id: Optional[str],
        days: Optional[int] = None,
        *,
        today: Optional[date] = None,
    ) -> List[GroceryEntry]:
        """Add an entry for every item expiring within ``days`` (expired items included).

        Items whose name already has a live entry are skipped, so running this again
        without pantry changes creates nothing.
        """

        household_id = require_household(household_id)
        window = get_settings().expiry_window_days if days is None else int(days)
        if window < 0:
            raise ValidationError("days", "must not be negative")
        cutoff = days_from_today(window, today=today)
        items = self.pantry.list_expiring(household_id, cutoff)
        return self._generate(household_id, items, SOURCE_EXPIRING)

    def generate_from_low_stock(self, household_id: Optional[str]) -> List[GroceryEntry]:
        """Add an entry for every item at or below its low-stock threshold."""

        household_id = require_household(household_id)
        items = self.pantry.list_low_stock(household_id)
        return self._generate(household_id, items, SOURCE_LOW_STOCK)

    def _generate(
        self, household_id: str, items: Iterable[PantryItem], source: str
    ) -> List[GroceryEntry]:
        taken = self.store.active_names(household_id)
        created: List[GroceryEntry] = []
        for item in items:
            key = normalize_name(item.name)
            if key in taken:
                continue
            taken.add(key)
            entry = self._build_entry(
                household_id,
                name=item.name,
                quantity=item.quantity if item.quantity > 0 else 1.0,
                unit=item.unit,
                list_id=None,
                item_ref=item.id,
                source=source,
            )
            created.append(self.store.upsert(entry))
            self.recorded("generate", household_id, entry.id)
        if created:
            self.request_sync(household_id)
        return created


__all__ = ["GroceryMutations"]
