"""Household persistence helpers."""

from __future__ import annotations

import json
from typing import List

from sqlalchemy import select

from larder.models.household import Household
from larder.timeutils import ensure_utc

from .models import HouseholdORM
from .store import LocalStore


class HouseholdStore(LocalStore[Household]):
    """Households known to this device; the household id is its own scope."""

    orm = HouseholdORM
    kind = "Household"

    def _scope_column(self):
        return HouseholdORM.id

    def _scope_of(self, row: HouseholdORM) -> str:
        return row.id

    def _order_by(self):
        return (HouseholdORM.name.asc(),)

    def _to_model(self, row: HouseholdORM) -> Household:
        try:
            members = json.loads(row.members_json or "[]")
        except json.JSONDecodeError:
            members = []
        return Household.model_validate(
            {
                "id": row.id,
                "name": row.name,
                "owner_id": row.owner_id,
                "member_ids": frozenset(str(member) for member in members),
                "created_at": ensure_utc(row.created_at),
                "updated_at": ensure_utc(row.updated_at),
                "is_synced": row.is_synced,
                "is_deleted": row.is_deleted,
                "revision": row.revision,
            }
        )

    def _apply(self, row: HouseholdORM, record: Household) -> None:
        row.name = record.name
        row.owner_id = record.owner_id
        row.members_json = json.dumps(sorted(record.member_ids))
        row.created_at = ensure_utc(record.created_at).replace(tzinfo=None)
        row.updated_at = ensure_utc(record.updated_at).replace(tzinfo=None)
        row.is_synced = record.is_synced
        row.is_deleted = record.is_deleted
        row.revision = record.revision

    def list_known(self) -> List[Household]:
        """Return every live household stored on this device."""

        return self._fetch(
            select(HouseholdORM)
            .where(HouseholdORM.is_deleted.is_(False))
            .order_by(*self._order_by())
        )


__all__ = ["HouseholdStore"]
