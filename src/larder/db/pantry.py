"""Pantry item data access helpers."""

from __future__ import annotations

import json
import logging
from datetime import date
from typing import Any, Dict, List, Optional

from larder.models.pantry import PantryItem
from larder.timeutils import ensure_utc

from .models import PantryItemORM
from .store import LocalStore

logger = logging.getLogger(__name__)


def _payload_to_dict(payload: Optional[str]) -> Optional[Dict[str, Any]]:
    if payload is None:
        return None
    try:
        parsed = json.loads(payload)
    except json.JSONDecodeError:
        logger.warning("Discarding unreadable nutrition payload")
        return None
    if isinstance(parsed, dict):
        return parsed
    return {"raw": parsed}


def _dict_to_payload(nutrition: Optional[Dict[str, Any]]) -> Optional[str]:
    if not nutrition:
        return None
    return json.dumps(nutrition, separators=(",", ":"), sort_keys=True)


class PantryStore(LocalStore[PantryItem]):
    """Local table of pantry items ordered by ascending expiry date (undated last)."""

    orm = PantryItemORM
    kind = "Pantry item"

    def _order_by(self):
        return (
            PantryItemORM.expiry_date.is_(None).asc(),
            PantryItemORM.expiry_date.asc(),
            PantryItemORM.name.asc(),
        )

    def _to_model(self, row: PantryItemORM) -> PantryItem:
        return PantryItem.model_validate(
            {
                "id": row.id,
                "household_id": row.household_id,
                "name": row.name,
                "quantity": row.quantity,
                "unit": row.unit,
                "expiry_date": row.expiry_date,
                "location": row.location,
                "barcode": row.barcode,
                "low_stock_threshold": row.low_stock_threshold,
                "notes": row.notes,
                "photo_url": row.photo_url,
                "added_by": row.added_by,
                "nutrition": _payload_to_dict(row.nutrition_json),
                "created_at": ensure_utc(row.created_at),
                "updated_at": ensure_utc(row.updated_at),
                "is_synced": row.is_synced,
                "is_deleted": row.is_deleted,
                "revision": row.revision,
            }
        )

    def _apply(self, row: PantryItemORM, record: PantryItem) -> None:
        row.household_id = record.household_id
        row.name = record.name
        row.quantity = float(record.quantity)
        row.unit = record.unit
        row.expiry_date = record.expiry_date
        row.location = record.location
        row.barcode = record.barcode
        row.low_stock_threshold = float(record.low_stock_threshold)
        row.notes = record.notes
        row.photo_url = record.photo_url
        row.added_by = record.added_by
        row.nutrition_json = _dict_to_payload(record.nutrition)
        row.created_at = ensure_utc(record.created_at).replace(tzinfo=None)
        row.updated_at = ensure_utc(record.updated_at).replace(tzinfo=None)
        row.is_synced = record.is_synced
        row.is_deleted = record.is_deleted
        row.revision = record.revision

    def list_by_location(self, household_id: str, location: str) -> List[PantryItem]:
        return self._fetch(
            self._select_active(household_id).where(PantryItemORM.location == location)
        )

    def list_expiring(self, household_id: str, before: date) -> List[PantryItem]:
        """Return live items whose expiry date is on or before ``before``."""

        return self._fetch(
            self._select_active(household_id).where(
                PantryItemORM.expiry_date.is_not(None),
                PantryItemORM.expiry_date <= before,
            )
        )

    def list_low_stock(self, household_id: str) -> List[PantryItem]:
        return self._fetch(
            self._select_active(household_id).where(
                PantryItemORM.quantity <= PantryItemORM.low_stock_threshold
            )
        )

    def find_by_barcode(self, household_id: str, barcode: str) -> Optional[PantryItem]:
        items = self._fetch(
            self._select_active(household_id).where(PantryItemORM.barcode == barcode).limit(1)
        )
        return items[0] if items else None


__all__ = ["PantryStore"]
