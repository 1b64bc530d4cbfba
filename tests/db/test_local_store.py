from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from larder.db.grocery import GroceryStore
from larder.db.households import HouseholdStore
from larder.db.models import PantryItemORM
from larder.db.pantry import PantryStore
from larder.errors import RecordNotFound
from larder.models import GroceryEntry, Household, PantryItem

NOW = datetime(2030, 3, 1, 9, 0, tzinfo=timezone.utc)


def _item(item_id: str, name: str, **overrides) -> PantryItem:
    fields = {
        "id": item_id,
        "household_id": "H",
        "name": name,
        "created_at": NOW,
        "updated_at": NOW,
        "revision": 1,
    }
    fields.update(overrides)
    return PantryItem(**fields)


def _entry(entry_id: str, name: str, **overrides) -> GroceryEntry:
    fields = {
        "id": entry_id,
        "household_id": "H",
        "name": name,
        "created_at": NOW,
        "updated_at": NOW,
        "revision": 1,
    }
    fields.update(overrides)
    return GroceryEntry(**fields)


def test_upsert_round_trips_every_field(database):
    store = PantryStore(database)
    item = _item(
        "A",
        "Milk",
        quantity=2.5,
        unit="l",
        expiry_date=date(2030, 3, 4),
        location="fridge",
        barcode="4001234",
        low_stock_threshold=1.0,
        notes="semi-skimmed",
        photo_url="https://img.example.test/milk.png",
        added_by="user-1",
        nutrition={"kcal": 64, "fat": {"total": 3.5}},
    )

    store.upsert(item)
    loaded = store.get("A")

    assert loaded == item
    assert loaded.created_at.tzinfo is not None
    assert store.get("missing") is None


def test_upsert_replaces_existing_row(database):
    store = PantryStore(database)
    store.upsert(_item("A", "Milk"))
    store.upsert(_item("A", "Oat milk", quantity=3))

    with database.session_scope() as session:
        assert session.query(PantryItemORM).count() == 1
    assert store.get("A").name == "Oat milk"


def test_list_active_orders_by_expiry_with_undated_last(database):
    store = PantryStore(database)
    store.upsert(_item("1", "Rice"))
    store.upsert(_item("2", "Yoghurt", expiry_date=date(2030, 3, 5)))
    store.upsert(_item("3", "Milk", expiry_date=date(2030, 3, 2)))
    store.upsert(_item("4", "Beans"))
    store.upsert(_item("5", "Cheese", expiry_date=date(2030, 3, 3), is_deleted=True))
    store.upsert(_item("6", "Bread", household_id="other"))

    names = [item.name for item in store.list_active("H")]

    assert names == ["Milk", "Yoghurt", "Beans", "Rice"]


def test_soft_delete_leaves_sync_flag_untouched(database):
    store = PantryStore(database)
    store.upsert(_item("A", "Milk", is_synced=True))
    later = NOW + timedelta(minutes=1)

    assert store.soft_delete("A", later)

    tombstone = store.get("A")
    assert tombstone.is_deleted
    assert tombstone.is_synced
    assert tombstone.updated_at == later
    assert store.list_active("H") == []
    assert store.soft_delete("missing", later) is False


def test_list_dirty_spans_households_and_includes_tombstones(database):
    store = PantryStore(database)
    store.upsert(_item("A", "Milk"))
    store.upsert(_item("B", "Eggs", household_id="other"))
    store.upsert(_item("C", "Flour", is_deleted=True))
    store.upsert(_item("D", "Salt", is_synced=True))

    assert {item.id for item in store.list_dirty()} == {"A", "B", "C"}
    assert {item.id for item in store.list_dirty("H")} == {"A", "C"}


def test_mark_synced_is_conditional_on_revision(database):
    store = PantryStore(database)
    store.upsert(_item("A", "Milk", revision=3))

    assert store.mark_synced("A", revision=2) is False
    assert store.get("A").is_synced is False

    assert store.mark_synced("A", revision=3) is True
    assert store.get("A").is_synced is True

    # Acknowledging a record that no longer exists is silently ignored.
    assert store.mark_synced("gone") is False


def test_hard_delete_conditions(database):
    store = PantryStore(database)
    store.upsert(_item("A", "Milk", revision=2))
    store.upsert(_item("B", "Eggs"))

    assert store.hard_delete("A", revision=1) is False
    assert store.hard_delete("B", synced_only=True) is False
    assert store.hard_delete("A", revision=2) is True
    assert store.get("A") is None
    assert store.get("B") is not None


def test_modify_rejects_missing_and_deleted_records(database):
    store = PantryStore(database)
    store.upsert(_item("A", "Milk", is_deleted=True))

    with pytest.raises(RecordNotFound):
        store.modify("A", lambda item: item)
    with pytest.raises(RecordNotFound):
        store.modify("missing", lambda item: item)


def test_apply_remote_skips_dirty_rows_and_keeps_revision(database):
    store = PantryStore(database)
    store.upsert(_item("dirty", "Milk", revision=4))
    store.upsert(_item("clean", "Eggs", revision=5, is_synced=True))

    remote_dirty = _item("dirty", "Remote milk", is_synced=True, revision=0)
    remote_clean = _item("clean", "Remote eggs", is_synced=True, revision=0)
    remote_new = _item("new", "Remote flour", is_synced=True, revision=0)

    assert store.apply_remote(remote_dirty) is False
    assert store.apply_remote(remote_clean) is True
    assert store.apply_remote(remote_new) is True

    assert store.get("dirty").name == "Milk"
    clean = store.get("clean")
    assert clean.name == "Remote eggs"
    assert clean.is_synced
    assert clean.revision == 5
    assert store.get("new").is_synced


def test_apply_remote_refuses_abandoned_households(database):
    store = PantryStore(database)
    database.mark_abandoned("H")

    assert store.apply_remote(_item("A", "Milk", is_synced=True)) is False
    assert store.apply_remote(_item("B", "Eggs", household_id="other", is_synced=True)) is True
    assert store.get("A") is None

    database.clear_abandoned("H")

    assert store.apply_remote(_item("A", "Milk", is_synced=True)) is True


def test_purge_household_removes_everything_in_scope(database):
    store = PantryStore(database)
    store.upsert(_item("A", "Milk"))
    store.upsert(_item("B", "Eggs", is_deleted=True))
    store.upsert(_item("C", "Flour", household_id="other"))

    assert store.purge_household("H") == 2
    assert store.get("A") is None
    assert store.get("C") is not None


def test_pantry_domain_queries(database):
    store = PantryStore(database)
    store.upsert(_item("A", "Milk", expiry_date=date(2030, 3, 2), location="fridge"))
    store.upsert(_item("B", "Peas", expiry_date=date(2030, 6, 1), location="freezer"))
    store.upsert(_item("C", "Rice", quantity=0.5, low_stock_threshold=1.0, barcode="123"))
    store.upsert(_item("D", "Old jam", expiry_date=date(2030, 2, 1), is_deleted=True))

    assert [item.id for item in store.list_by_location("H", "fridge")] == ["A"]
    assert [item.id for item in store.list_expiring("H", date(2030, 3, 8))] == ["A"]
    assert [item.id for item in store.list_low_stock("H")] == ["C"]
    assert store.find_by_barcode("H", "123").id == "C"
    assert store.find_by_barcode("other", "123") is None


def test_grocery_ordering_and_name_lookup(database):
    store = GroceryStore(database)
    store.upsert(_entry("1", "Milk", is_checked=True))
    store.upsert(_entry("2", "Eggs", created_at=NOW + timedelta(minutes=1)))
    store.upsert(_entry("3", "Bread", created_at=NOW + timedelta(minutes=2)))
    store.upsert(_entry("4", "Butter", is_deleted=True))

    assert [entry.name for entry in store.list_active("H")] == ["Bread", "Eggs", "Milk"]
    assert [entry.id for entry in store.list_checked("H")] == ["1"]
    assert store.find_active_by_name("H", "  bREAD ").id == "3"
    assert store.find_active_by_name("H", "butter") is None
    assert store.active_names("H") == {"milk", "eggs", "bread"}


def test_household_store_scopes_by_its_own_id(database):
    store = HouseholdStore(database)
    household = Household(
        id="H",
        name="Flat 3",
        owner_id="alice",
        member_ids=frozenset({"alice", "bob"}),
        created_at=NOW,
        updated_at=NOW,
    )
    store.upsert(household)

    assert store.get("H") == household
    assert [record.id for record in store.list_active("H")] == ["H"]
    assert [record.id for record in store.list_dirty("H")] == ["H"]
    assert [record.id for record in store.list_known()] == ["H"]
    assert store.purge_household("H") == 1
