"""Sync pass outcome and reporting models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SyncOutcome(str, Enum):
    """Result reported to the scheduler for one sync pass."""

    SUCCESS = "success"
    RETRY = "retry"


class CollectionReport(BaseModel):
    """Per-collection counters collected during a pass."""

    collection: str
    pushed: int = 0
    deleted: int = 0
    pulled: int = 0
    skipped: int = 0
    pruned: int = 0
    failed: int = 0

    model_config = ConfigDict(frozen=True)


class SyncReport(BaseModel):
    """Summary of a completed sync pass."""

    household_id: str
    outcome: SyncOutcome
    started_at: datetime
    finished_at: datetime
    collections: list[CollectionReport] = Field(default_factory=list)
    error: Optional[str] = Field(default=None)

    model_config = ConfigDict(frozen=True)

    @property
    def failed(self) -> int:
        return sum(report.failed for report in self.collections)


__all__ = ["CollectionReport", "SyncOutcome", "SyncReport"]
