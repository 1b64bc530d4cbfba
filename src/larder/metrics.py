"""Prometheus metrics definitions for Larder."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

SYNC_PASSES = Counter(
    "larder_sync_passes_total",
    "Number of sync passes executed by outcome",
    ["outcome"],
)

SYNC_PASS_DURATION = Histogram(
    "larder_sync_pass_duration_seconds",
    "Duration of sync passes",
)

SYNC_RECORDS = Counter(
    "larder_sync_records_total",
    "Per-record sync results by collection, direction, and result",
    ["collection", "direction", "result"],
)

MUTATIONS = Counter(
    "larder_mutations_total",
    "Local mutations recorded by entity and operation",
    ["entity", "operation"],
)

__all__ = [
    "SYNC_PASSES",
    "SYNC_PASS_DURATION",
    "SYNC_RECORDS",
    "MUTATIONS",
]
