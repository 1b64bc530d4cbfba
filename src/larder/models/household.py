"""Household models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class Household(BaseModel):
    """Sharing boundary: every pantry item and grocery entry belongs to one household."""

    id: str
    name: str
    owner_id: str
    member_ids: frozenset[str] = Field(default_factory=frozenset)
    created_at: datetime
    updated_at: datetime
    is_synced: bool = Field(default=False)
    is_deleted: bool = Field(default=False)
    revision: int = Field(default=0)

    model_config = ConfigDict(frozen=True)

    @property
    def household_id(self) -> str:
        return self.id


__all__ = ["Household"]
