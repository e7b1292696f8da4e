"""Read-only views over an EventStore, rendered for consumers (amounts as decimal strings)."""

from __future__ import annotations

from flashindex.api.schemas import EventsResponse, MetricsResponse, OrderItem, SettlementItem
from flashindex.metrics.live import (
    ACTIVE_WINDOW,
    SERIES_WINDOW,
    active_partition_count,
    average_orders_per_block,
    orders_per_block_series,
)
from flashindex.models.events import OrderRecord, SettlementRecord
from flashindex.models.units import format_units
from flashindex.storage.event_store import EventStore


def order_item(order: OrderRecord, decimals: int = 18) -> OrderItem:
    return OrderItem(
        id=order.id,
        tick=order.partition_index,
        side=order.side,
        amount=format_units(order.amount, decimals),
        maker=order.originator,
        epoch=order.epoch,
        block_number=order.block_number,
        timestamp=order.observed_at,
    )


def settlement_item(settlement: SettlementRecord, decimals: int = 18) -> SettlementItem:
    return SettlementItem(
        tick=settlement.partition_index,
        epoch=settlement.epoch,
        yes_matched=format_units(settlement.matched_affirmative, decimals),
        no_matched=format_units(settlement.matched_negative, decimals),
        clearing_price=str(settlement.clearing_price),
        block_number=settlement.block_number,
        transaction_hash=settlement.transaction_hash,
        timestamp=settlement.observed_at,
    )


def recent_events(store: EventStore, limit: int = 50, decimals: int = 18) -> EventsResponse:
    """Newest-first orders and settlements plus the cumulative order count."""
    return EventsResponse(
        orders=[order_item(o, decimals) for o in store.recent_orders(limit)],
        settlements=[settlement_item(s, decimals) for s in store.recent_settlements(limit)],
        total=store.stats()["total_orders"],
    )


def metrics_snapshot(
    store: EventStore,
    decimals: int = 18,
    series_window: int = SERIES_WINDOW,
    active_window: int = ACTIVE_WINDOW,
) -> MetricsResponse:
    """Derived metrics, recomputed on every call."""
    series = orders_per_block_series(store, series_window)
    stats = store.stats()
    return MetricsResponse(
        orders_per_block=series,
        avg_orders_per_block=round(average_orders_per_block(series), 3),
        total_orders=stats["total_orders"],
        total_volume=format_units(stats["total_volume"], decimals),
        active_ticks=active_partition_count(store, active_window),
        blocks_processed=stats["distinct_blocks"],
        last_processed_block=stats["last_processed_block"],
    )
