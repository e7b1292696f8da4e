"""Bounded, deduplicated in-memory record of ingested contract events."""

from __future__ import annotations

from collections import deque
from itertools import islice
from threading import Lock

from flashindex.models.events import OrderRecord, SettlementRecord

MAX_EVENTS = 1000
DEFAULT_BLOCK_WINDOW = 1000


class BlockCountWindow:
    """Order count per block number, keeping only the highest `capacity` blocks.

    Entries are evicted lowest-block-first once capacity is exceeded. A block
    below the eviction floor is not re-inserted (it would be evicted at once).
    """

    def __init__(self, capacity: int = DEFAULT_BLOCK_WINDOW) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self._counts: dict[int, int] = {}
        self._floor = -1  # highest block number evicted so far
        self.distinct_blocks = 0  # blocks ever observed with >= 1 order

    def hit(self, block_number: int) -> None:
        current = self._counts.get(block_number)
        if current is not None:
            self._counts[block_number] = current + 1
            return
        self.distinct_blocks += 1
        if block_number <= self._floor:
            return
        self._counts[block_number] = 1
        while len(self._counts) > self.capacity:
            oldest = min(self._counts)
            del self._counts[oldest]
            self._floor = max(self._floor, oldest)

    def items(self) -> list[tuple[int, int]]:
        """(block_number, count) sorted by block ascending."""
        return sorted(self._counts.items())

    def get(self, block_number: int) -> int:
        return self._counts.get(block_number, 0)

    def __len__(self) -> int:
        return len(self._counts)


class EventStore:
    """Orders and settlements with dedup, capped retention and cumulative counters.

    totals (orders, volume) and the per-block counts are cumulative: they are
    never reduced when a record is evicted from the capped sequences.
    """

    def __init__(self, max_events: int = MAX_EVENTS, block_window: int = DEFAULT_BLOCK_WINDOW) -> None:
        if max_events < 1:
            raise ValueError("max_events must be >= 1")
        self.max_events = max_events
        self.orders: deque[OrderRecord] = deque()
        self.settlements: deque[SettlementRecord] = deque()
        self.seen_order_ids: set[str] = set()
        self.seen_settlement_ids: set[str] = set()
        self.orders_per_block = BlockCountWindow(block_window)
        self.total_orders = 0
        self.total_volume = 0
        self.last_processed_block = 0
        self._lock = Lock()

    def admit_order(self, record: OrderRecord) -> bool:
        """Admit an order. Return False if its id was already seen."""
        with self._lock:
            if record.id in self.seen_order_ids:
                return False
            self.seen_order_ids.add(record.id)
            self.orders.append(record)
            self.total_orders += 1
            self.total_volume += record.amount
            self.orders_per_block.hit(record.block_number)
            if len(self.orders) > self.max_events:
                evicted = self.orders.popleft()
                self.seen_order_ids.discard(evicted.id)
            return True

    def admit_settlement(self, record: SettlementRecord) -> bool:
        """Admit a settlement keyed by (tx hash, partition, epoch). Return False if duplicate."""
        key = record.dedup_key
        with self._lock:
            if key in self.seen_settlement_ids:
                return False
            self.seen_settlement_ids.add(key)
            self.settlements.append(record)
            if len(self.settlements) > self.max_events:
                evicted = self.settlements.popleft()
                self.seen_settlement_ids.discard(evicted.dedup_key)
            return True

    def recent_orders(self, limit: int) -> list[OrderRecord]:
        """Most recently admitted orders, newest first."""
        if limit <= 0:
            return []
        with self._lock:
            return list(reversed(self.orders))[:limit]

    def recent_settlements(self, limit: int) -> list[SettlementRecord]:
        """Most recently admitted settlements, newest first."""
        if limit <= 0:
            return []
        with self._lock:
            return list(reversed(self.settlements))[:limit]

    def advance_watermark(self, block: int) -> None:
        # Monotonicity is the scheduler's contract.
        with self._lock:
            self.last_processed_block = block

    def block_counts(self) -> list[tuple[int, int]]:
        with self._lock:
            return self.orders_per_block.items()

    def order_partitions(self, last_n: int) -> list[int]:
        """partition_index of the last_n admitted orders, in insertion order."""
        if last_n <= 0:
            return []
        with self._lock:
            start = max(0, len(self.orders) - last_n)
            return [o.partition_index for o in islice(self.orders, start, None)]

    def stats(self) -> dict[str, int]:
        """Consistent snapshot of counters."""
        with self._lock:
            return {
                "total_orders": self.total_orders,
                "total_volume": self.total_volume,
                "retained_orders": len(self.orders),
                "retained_settlements": len(self.settlements),
                "distinct_blocks": self.orders_per_block.distinct_blocks,
                "last_processed_block": self.last_processed_block,
            }
