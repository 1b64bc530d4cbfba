"""Pantry item mutations."""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional

from larder.db.pantry import PantryStore
from larder.db.repository import LocalDatabase
from larder.errors import ValidationError
from larder.models.pantry import LOCATIONS, PantryItem
from larder.sync.scheduler import SyncRequester

from .base import (
    MutationService,
    new_id,
    optional_text,
    require_household,
    require_name,
    require_non_negative,
    require_positive,
)

_UNSET: Any = object()


def _location(value: Optional[str]) -> Optional[str]:
    text = optional_text(value)
    if text is None:
        return None
    normalized = text.lower()
    if normalized not in LOCATIONS:
        raise ValidationError("location", f"must be one of {', '.join(LOCATIONS)}")
    return normalized


def _expiry(value: Any) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError:
            raise ValidationError("expiry_date", "must be an ISO date") from None
    raise ValidationError("expiry_date", "must be a date")


def _nutrition(value: Any) -> Optional[Dict[str, Any]]:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ValidationError("nutrition", "must be a mapping")
    return dict(value) or None


class PantryMutations(MutationService):
    """Create, update, and delete pantry items for a household."""

    entity = "item"

    def __init__(
        self,
        *,
        database: Optional[LocalDatabase] = None,
        scheduler: Optional[SyncRequester] = None,
        store: Optional[PantryStore] = None,
    ) -> None:
        super().__init__(database=database, scheduler=scheduler)
        self.store = store or PantryStore(database)

    def create_item(
        self,
        household_id: Optional[str],
        *,
        name: str,
        quantity: float = 1.0,
        unit: Optional[str] = None,
        expiry_date: Optional[date] = None,
        location: Optional[str] = None,
        barcode: Optional[str] = None,
        low_stock_threshold: float = 0.0,
        notes: Optional[str] = None,
        photo_url: Optional[str] = None,
        added_by: Optional[str] = None,
        nutrition: Optional[Dict[str, Any]] = None,
        item_id: Optional[str] = None,
    ) -> PantryItem:
        household_id = require_household(household_id)
        item = PantryItem(
            id=item_id or new_id(),
            household_id=household_id,
            name=require_name(name),
            quantity=require_positive(quantity, "quantity"),
            unit=optional_text(unit),
            expiry_date=_expiry(expiry_date),
            location=_location(location),
            barcode=optional_text(barcode),
            low_stock_threshold=require_non_negative(low_stock_threshold, "low_stock_threshold"),
            notes=optional_text(notes),
            photo_url=optional_text(photo_url),
            added_by=optional_text(added_by),
            nutrition=_nutrition(nutrition),
            **self.new_record_stamp(),
        )
        if self.store.get(item.id) is not None:
            raise ValidationError("id", f"{item.id} is already in use")
        saved = self.store.upsert(item)
        self.recorded("create", household_id, saved.id)
        self.request_sync(household_id)
        return saved

    def update_item(
        self,
        household_id: Optional[str],
        item_id: str,
        *,
        name: str | object = _UNSET,
        quantity: float | object = _UNSET,
        unit: Optional[str] | object = _UNSET,
        expiry_date: Optional[date] | object = _UNSET,
        location: Optional[str] | object = _UNSET,
        barcode: Optional[str] | object = _UNSET,
        low_stock_threshold: float | object = _UNSET,
        notes: Optional[str] | object = _UNSET,
        photo_url: Optional[str] | object = _UNSET,
        nutrition: Optional[Dict[str, Any]] | object = _UNSET,
    ) -> PantryItem:
        """Apply the given field changes; omitted fields keep their value."""

        household_id = require_household(household_id)
        changes: Dict[str, Any] = {}
        if name is not _UNSET:
            changes["name"] = require_name(name)  # type: ignore[arg-type]
        if quantity is not _UNSET:
            changes["quantity"] = require_non_negative(quantity, "quantity")
        if unit is not _UNSET:
            changes["unit"] = optional_text(unit)  # type: ignore[arg-type]
        if expiry_date is not _UNSET:
            changes["expiry_date"] = _expiry(expiry_date)
        if location is not _UNSET:
            changes["location"] = _location(location)  # type: ignore[arg-type]
        if barcode is not _UNSET:
            changes["barcode"] = optional_text(barcode)  # type: ignore[arg-type]
        if low_stock_threshold is not _UNSET:
            changes["low_stock_threshold"] = require_non_negative(
                low_stock_threshold, "low_stock_threshold"
            )
        if notes is not _UNSET:
            changes["notes"] = optional_text(notes)  # type: ignore[arg-type]
        if photo_url is not _UNSET:
            changes["photo_url"] = optional_text(photo_url)  # type: ignore[arg-type]
        if nutrition is not _UNSET:
            changes["nutrition"] = _nutrition(nutrition)

        def _update(item: PantryItem) -> PantryItem:
            self.ensure_in_household(item, household_id, self.store.kind)
            return self.dirty_copy(item, **changes)

        saved = self.store.modify(item_id, _update)
        self.recorded("update", household_id, saved.id)
        self.request_sync(household_id)
        return saved

    def adjust_quantity(
        self, household_id: Optional[str], item_id: str, delta: float
    ) -> PantryItem:
        """Add ``delta`` (negative to consume); the quantity never drops below zero."""

        household_id = require_household(household_id)
        try:
            amount = float(delta)
        except (TypeError, ValueError):
            raise ValidationError("delta", "must be a number") from None

        def _update(item: PantryItem) -> PantryItem:
            self.ensure_in_household(item, household_id, self.store.kind)
            return self.dirty_copy(item, quantity=max(0.0, item.quantity + amount))

        saved = self.store.modify(item_id, _update)
        self.recorded("adjust", household_id, saved.id)
        self.request_sync(household_id)
        return saved

    def delete_item(self, household_id: Optional[str], item_id: str) -> None:
        """Tombstone the item; it disappears from queries and is purged once the remote confirms."""

        household_id = require_household(household_id)

        def _delete(item: PantryItem) -> PantryItem:
            self.ensure_in_household(item, household_id, self.store.kind)
            return self.dirty_copy(item, is_deleted=True)

        self.store.modify(item_id, _delete)
        self.recorded("delete", household_id, item_id)
        self.request_sync(household_id)


__all__ = ["PantryMutations"]
