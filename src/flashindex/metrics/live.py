"""Live derived metrics from the event store - orders per block, active partitions."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from flashindex.storage.event_store import EventStore

SERIES_WINDOW = 50
ACTIVE_WINDOW = 100


def orders_per_block_series(store: EventStore, window: int = SERIES_WINDOW) -> list[int]:
    """Order counts for the most recent `window` distinct blocks that had orders, oldest first.

    Sparse: blocks without orders are absent, so consecutive entries need not be
    consecutive blocks.
    """
    if window <= 0:
        return []
    return [count for _, count in store.block_counts()[-window:]]


def active_partition_count(store: EventStore, recent: int = ACTIVE_WINDOW) -> int:
    """Distinct partition_index values among the last `recent` admitted orders."""
    return len(set(store.order_partitions(recent)))


def average_orders_per_block(series: list[int]) -> float:
    """Mean of an orders-per-block series (0.0 when empty)."""
    if not series:
        return 0.0
    return sum(series) / len(series)
