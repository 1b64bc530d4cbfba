from __future__ import annotations

from datetime import datetime, timezone

from larder.db.live import ChangeEvent, ChangeNotifier, LiveQuery
from larder.db.pantry import PantryStore
from larder.models import PantryItem

NOW = datetime(2030, 3, 1, 9, 0, tzinfo=timezone.utc)


def _item(item_id: str, name: str, household_id: str = "H") -> PantryItem:
    return PantryItem(
        id=item_id,
        household_id=household_id,
        name=name,
        created_at=NOW,
        updated_at=NOW,
        revision=1,
    )


def test_live_query_yields_snapshot_then_updates(database):
    store = PantryStore(database)
    store.upsert(_item("A", "Milk"))
    seen: list[list[str]] = []

    live = store.watch_active("H", lambda items: seen.append([item.name for item in items]))

    assert [item.name for item in live.current] == ["Milk"]
    assert seen == []

    store.upsert(_item("B", "Eggs"))
    store.soft_delete("A", NOW)

    assert seen == [["Eggs", "Milk"], ["Eggs"]]
    assert [item.name for item in live.current] == ["Eggs"]


def test_live_query_ignores_other_households_and_stops_after_close(database):
    store = PantryStore(database)
    seen: list[int] = []

    with store.watch_active("H", lambda items: seen.append(len(items))) as live:
        store.upsert(_item("X", "Bread", household_id="other"))
        assert seen == []
        store.upsert(_item("A", "Milk"))
        assert seen == [1]

    assert live.closed
    store.upsert(_item("B", "Eggs"))
    assert seen == [1]
    # A closed query can still be consulted on demand.
    assert len(live.refresh()) == 2


def test_notifier_keeps_publishing_when_a_listener_fails():
    notifier = ChangeNotifier()
    received: list[ChangeEvent] = []

    def broken(_event: ChangeEvent) -> None:
        raise RuntimeError("boom")

    notifier.subscribe("items", broken)
    notifier.subscribe("items", received.append)
    event = ChangeEvent(table="items", household_id="H", record_ids=("A",))

    notifier.publish(event)

    assert received == [event]


def test_cross_household_events_touch_every_subscriber():
    event = ChangeEvent(table="items", household_id=None)

    assert event.touches("items", "H")
    assert not event.touches("grocery_entries", "H")
    assert not ChangeEvent(table="items", household_id="other").touches("items", "H")


def test_write_committed_while_taking_the_first_snapshot_is_delivered():
    notifier = ChangeNotifier()
    names = ["Milk"]
    seen: list[list[str]] = []

    def query() -> list[str]:
        snapshot = list(names)
        if names == ["Milk"]:
            # Another writer commits before the first snapshot is stored.
            names.append("Eggs")
            notifier.publish(ChangeEvent(table="items", household_id="H", record_ids=("B",)))
        return snapshot

    live = LiveQuery(notifier, table="items", household_id="H", query=query, callback=seen.append)

    assert seen == [["Milk", "Eggs"]]
    assert live.current == ["Milk", "Eggs"]
    live.close()
