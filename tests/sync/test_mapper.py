from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from larder.models import GroceryEntry, Household, PantryItem
from larder.sync import mapper

CREATED = datetime(2030, 3, 1, 9, 0, tzinfo=timezone.utc)
UPDATED = datetime(2030, 3, 2, 18, 30, 15, 250000, tzinfo=timezone.utc)


def test_item_document_uses_camel_case_and_omits_absent_fields():
    item = PantryItem(
        id="A",
        household_id="H",
        name="Milk",
        quantity=1.0,
        expiry_date=date(2030, 3, 3),
        low_stock_threshold=0.5,
        created_at=CREATED,
        updated_at=UPDATED,
        is_synced=False,
        revision=3,
    )

    document = mapper.item_to_document(item)

    assert document == {
        "id": "A",
        "householdId": "H",
        "name": "Milk",
        "quantity": 1.0,
        "lowStockThreshold": 0.5,
        "expiryDate": "2030-03-03",
        "createdAt": "2030-03-01T09:00:00Z",
        "updatedAt": "2030-03-02T18:30:15.250000Z",
    }


def test_document_to_item_is_synced_and_scoped_to_the_pulled_household():
    item = PantryItem(
        id="A",
        household_id="H",
        name="Milk",
        unit="l",
        location="fridge",
        notes="organic",
        photo_url="https://img.example.test/a.png",
        added_by="alice",
        nutrition={"kcal": 64},
        created_at=CREATED,
        updated_at=UPDATED,
        revision=7,
    )
    document = mapper.item_to_document(item)
    document["householdId"] = "somewhere-else"

    restored = mapper.document_to_item(document, "H")

    assert restored == item.model_copy(update={"is_synced": True, "revision": 0})


def test_document_to_item_tolerates_loose_remote_values():
    document = {
        "name": "Flour",
        "quantity": "2",
        "lowStockThreshold": None,
        "expiryDate": int(datetime(2030, 4, 1, tzinfo=timezone.utc).timestamp() * 1000),
        "updatedAt": 1893456000000,
    }

    item = mapper.document_to_item(document, "H", document_id="B")

    assert item.id == "B"
    assert item.quantity == 2.0
    assert item.low_stock_threshold == 0.0
    assert item.expiry_date == date(2030, 4, 1)
    assert item.updated_at == datetime(2030, 1, 1, tzinfo=timezone.utc)
    # Missing server timestamps are filled with the current time.
    assert item.created_at.year >= 2024


def test_document_without_id_is_rejected():
    with pytest.raises(ValueError):
        mapper.document_to_item({"name": "Ghost"}, "H")


def test_entry_document_keeps_list_and_reference():
    entry = GroceryEntry(
        id="E",
        household_id="H",
        list_id="weekly",
        item_ref="A",
        name="Milk",
        quantity=2.0,
        source="expiring",
        is_checked=True,
        created_at=CREATED,
        updated_at=UPDATED,
    )

    document = mapper.entry_to_document(entry)
    restored = mapper.document_to_entry(document, "H", "fallback")

    assert document["listId"] == "weekly"
    assert document["itemRef"] == "A"
    assert document["isChecked"] is True
    assert "unit" not in document
    assert restored == entry.model_copy(update={"is_synced": True})


def test_entry_list_id_defaults_to_the_collection_it_was_read_from():
    entry = mapper.document_to_entry({"id": "E", "name": "Eggs"}, "H", "weekly")

    assert entry.list_id == "weekly"
    assert entry.source == "manual"
    assert entry.quantity == 0.0
    assert entry.is_checked is False


def test_household_document_round_trip():
    household = Household(
        id="H",
        name="Flat 3",
        owner_id="alice",
        member_ids=frozenset({"bob", "alice"}),
        created_at=CREATED,
        updated_at=UPDATED,
        revision=2,
    )

    document = mapper.household_to_document(household)
    restored = mapper.document_to_household(document, "H")

    assert document["members"] == ["alice", "bob"]
    assert document["ownerId"] == "alice"
    assert restored == household.model_copy(update={"is_synced": True, "revision": 0})
