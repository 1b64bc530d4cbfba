"""Grocery list models."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

SOURCE_MANUAL = "manual"
SOURCE_EXPIRING = "expiring"
SOURCE_LOW_STOCK = "low-stock"
SOURCE_AI = "ai"

SOURCES = (SOURCE_MANUAL, SOURCE_EXPIRING, SOURCE_LOW_STOCK, SOURCE_AI)


class GroceryEntry(BaseModel):
    """Single entry on one of the household grocery lists."""

    id: str
    household_id: str
    list_id: str = Field(default="default")
    item_ref: Optional[str] = Field(default=None)
    name: str
    quantity: float = Field(default=1.0)
    unit: Optional[str] = Field(default=None)
    source: str = Field(default=SOURCE_MANUAL)
    is_checked: bool = Field(default=False)
    created_at: datetime
    updated_at: datetime
    is_synced: bool = Field(default=False)
    is_deleted: bool = Field(default=False)
    revision: int = Field(default=0)

    model_config = ConfigDict(frozen=True)


__all__ = [
    "GroceryEntry",
    "SOURCES",
    "SOURCE_AI",
    "SOURCE_EXPIRING",
    "SOURCE_LOW_STOCK",
    "SOURCE_MANUAL",
]
