from __future__ import annotations

from prometheus_client import REGISTRY


def _sample(name: str, labels: dict[str, str]) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


def test_sync_and_mutation_counters_increment(device):
    passes_before = _sample("larder_sync_passes_total", {"outcome": "success"})
    creates_before = _sample(
        "larder_mutations_total", {"entity": "item", "operation": "create"}
    )
    pushes_before = _sample(
        "larder_sync_records_total",
        {"collection": "items", "direction": "push", "result": "ok"},
    )

    device.pantry.create_item("H", name="Milk")
    device.sync("H")

    assert _sample("larder_sync_passes_total", {"outcome": "success"}) == passes_before + 1
    assert (
        _sample("larder_mutations_total", {"entity": "item", "operation": "create"})
        == creates_before + 1
    )
    assert (
        _sample(
            "larder_sync_records_total",
            {"collection": "items", "direction": "push", "result": "ok"},
        )
        == pushes_before + 1
    )
