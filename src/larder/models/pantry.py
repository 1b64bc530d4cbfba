"""Pantry item models."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

LOCATIONS = ("fridge", "freezer", "pantry", "other")


class PantryItem(BaseModel):
    """Item stored somewhere in the household (fridge, freezer, pantry, other)."""

    id: str
    household_id: str
    name: str
    quantity: float = Field(default=1.0)
    unit: Optional[str] = Field(default=None)
    expiry_date: Optional[date] = Field(default=None)
    location: Optional[str] = Field(default=None)
    barcode: Optional[str] = Field(default=None)
    low_stock_threshold: float = Field(default=0.0)
    notes: Optional[str] = Field(default=None)
    photo_url: Optional[str] = Field(default=None)
    added_by: Optional[str] = Field(default=None)
    nutrition: Optional[Dict[str, Any]] = Field(default=None)
    created_at: datetime
    updated_at: datetime
    is_synced: bool = Field(default=False)
    is_deleted: bool = Field(default=False)
    revision: int = Field(default=0)

    model_config = ConfigDict(frozen=True)

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.low_stock_threshold


__all__ = ["LOCATIONS", "PantryItem"]
