"""Household membership mutations."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from larder.db.grocery import GroceryStore
from larder.db.households import HouseholdStore
from larder.db.pantry import PantryStore
from larder.db.repository import LocalDatabase
from larder.errors import ValidationError
from larder.models.household import Household
from larder.sync.scheduler import SyncRequester

from .base import MutationService, new_id, require_household, require_name

logger = logging.getLogger(__name__)


def _member(value: Optional[str], field: str = "member_id") -> str:
    if value is None or not str(value).strip():
        raise ValidationError(field, "must not be empty")
    return str(value).strip()


class HouseholdMutations(MutationService):
    """Create and share households; the owner is always a member."""

    entity = "household"

    def __init__(
        self,
        *,
        database: Optional[LocalDatabase] = None,
        scheduler: Optional[SyncRequester] = None,
        store: Optional[HouseholdStore] = None,
        pantry: Optional[PantryStore] = None,
        grocery: Optional[GroceryStore] = None,
    ) -> None:
        super().__init__(database=database, scheduler=scheduler)
        self.store = store or HouseholdStore(database)
        self.pantry = pantry or PantryStore(database)
        self.grocery = grocery or GroceryStore(database)

    def create_household(
        self,
        *,
        name: str,
        owner_id: str,
        member_ids: Iterable[str] = (),
        household_id: Optional[str] = None,
    ) -> Household:
        owner = _member(owner_id, "owner_id")
        members = {_member(member) for member in member_ids}
        members.add(owner)
        household = Household(
            id=household_id or new_id(),
            name=require_name(name),
            owner_id=owner,
            member_ids=frozenset(members),
            **self.new_record_stamp(),
        )
        if self.store.get(household.id) is not None:
            raise ValidationError("id", f"{household.id} is already in use")
        self.store.database.clear_abandoned(household.id)
        saved = self.store.upsert(household)
        self.recorded("create", saved.id, saved.id)
        self.request_sync(saved.id)
        return saved

    def rename_household(self, household_id: Optional[str], name: str) -> Household:
        household_id = require_household(household_id)
        new_name = require_name(name)
        return self._modify(
            household_id, "rename", lambda household: self.dirty_copy(household, name=new_name)
        )

    def add_member(self, household_id: Optional[str], member_id: str) -> Household:
        household_id = require_household(household_id)
        member = _member(member_id)

        def _add(household: Household) -> Household:
            if member in household.member_ids:
                return household
            return self.dirty_copy(household, member_ids=household.member_ids | {member})

        return self._modify(household_id, "add_member", _add)

    def remove_member(self, household_id: Optional[str], member_id: str) -> Household:
        household_id = require_household(household_id)
        member = _member(member_id)

        def _remove(household: Household) -> Household:
            if member == household.owner_id:
                raise ValidationError("member_id", "the owner cannot be removed")
            if member not in household.member_ids:
                return household
            return self.dirty_copy(household, member_ids=household.member_ids - {member})

        return self._modify(household_id, "remove_member", _remove)

    def _modify(self, household_id: str, operation: str, updater) -> Household:
        before = self.store.get(household_id)
        saved = self.store.modify(household_id, updater)
        if before is not None and saved.revision == before.revision:
            return saved
        self.recorded(operation, household_id, household_id)
        self.request_sync(household_id)
        return saved

    def abandon_household(self, household_id: Optional[str]) -> int:
        """Forget the household on this device without touching the remote copy.

        Every local item, grocery entry, and the household row are purged, including
        records that were never synced. Pulls still in flight for the household are refused
        from here on, until it is created again. Returns the number of rows removed.
        """

        household_id = require_household(household_id)
        self.store.database.mark_abandoned(household_id)
        removed = self.pantry.purge_household(household_id)
        removed += self.grocery.purge_household(household_id)
        removed += self.store.purge_household(household_id)
        forget = getattr(self._scheduler, "forget", None)
        if callable(forget):
            forget(household_id)
        self.recorded("abandon", household_id, household_id)
        logger.info(
            "Abandoned household %s locally (%s rows purged)",
            household_id,
            removed,
            extra={"household_id": household_id},
        )
        return removed


__all__ = ["HouseholdMutations"]
