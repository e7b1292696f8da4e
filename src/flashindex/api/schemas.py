"""Pydantic schemas for API responses and OpenAPI docs."""

from __future__ import annotations

from pydantic import BaseModel, Field


# --- Health ---
class HealthResponse(BaseModel):
    status: str = "ok"
    indexer: str = Field("idle", description="idle | running")
    configured: bool = False


# --- Events ---
class OrderItem(BaseModel):
    id: str
    tick: int
    side: str
    amount: str = Field(..., description="Order amount in native units")
    maker: str
    epoch: int
    block_number: int
    timestamp: int = Field(..., description="Ingestion wall clock (ms epoch)")


class SettlementItem(BaseModel):
    tick: int
    epoch: int
    yes_matched: str = Field(..., description="Matched YES amount in native units")
    no_matched: str = Field(..., description="Matched NO amount in native units")
    clearing_price: str = Field(..., description="Contract fixed-point price, integer string")
    block_number: int
    transaction_hash: str
    timestamp: int


class EventsResponse(BaseModel):
    orders: list[OrderItem]
    settlements: list[SettlementItem]
    total: int


# --- Metrics ---
class MetricsResponse(BaseModel):
    orders_per_block: list[int]
    avg_orders_per_block: float
    total_orders: int
    total_volume: str = Field(..., description="Cumulative order volume in native units")
    active_ticks: int
    blocks_processed: int = Field(..., description="Distinct blocks observed with at least one order")
    last_processed_block: int
