"""SQLAlchemy models representing Larder persistence tables."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from sqlalchemy import Boolean, Date, DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base class for Larder ORM models."""


class SyncColumnsMixin:
    """Bookkeeping columns shared by every synchronized table."""

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    is_synced: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    revision: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class PantryItemORM(SyncColumnsMixin, Base):
    """Pantry item persisted in the SQLite database."""

    __tablename__ = "items"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    household_id: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    unit: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    expiry_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    barcode: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    low_stock_threshold: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    photo_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    added_by: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    nutrition_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_items_household_synced", "household_id", "is_synced"),
        Index("ix_items_household_expiry", "household_id", "expiry_date"),
        Index("ix_items_barcode", "barcode"),
    )


class GroceryEntryORM(SyncColumnsMixin, Base):
    """Grocery list entry."""

    __tablename__ = "grocery_entries"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    household_id: Mapped[str] = mapped_column(String(64), nullable=False)
    list_id: Mapped[str] = mapped_column(String(64), nullable=False, default="default")
    item_ref: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    unit: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    source: Mapped[str] = mapped_column(String(32), nullable=False, default="manual")
    is_checked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("ix_grocery_household_synced", "household_id", "is_synced"),
        Index("ix_grocery_list", "list_id"),
    )


class HouseholdORM(SyncColumnsMixin, Base):
    """Household the device has joined or created."""

    __tablename__ = "households"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    owner_id: Mapped[str] = mapped_column(String(128), nullable=False)
    members_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")


__all__ = [
    "Base",
    "GroceryEntryORM",
    "HouseholdORM",
    "PantryItemORM",
]
