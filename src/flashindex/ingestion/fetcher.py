"""Chunked eth_getLogs range fetch -> decoded records -> EventStore."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Iterator

import structlog

from flashindex.ingestion.base import ORDER_PLACED, TICK_SETTLED, LogSource
from flashindex.ingestion.decode import Discard, decode_order, decode_settlement
from flashindex.models.events import OrderRecord, SettlementRecord
from flashindex.storage.event_store import EventStore

log = structlog.get_logger(__name__)

DEFAULT_CHUNK_SIZE = 2000


@dataclass
class FetchReport:
    """Outcome of one fetch_range call."""

    from_block: int
    to_block: int
    chunks_ok: int = 0
    failed_chunks: list[tuple[int, int]] = field(default_factory=list)
    orders_admitted: int = 0
    settlements_admitted: int = 0
    discarded: int = 0
    covered_through: int = -1  # highest block with every chunk up to it fetched

    def __post_init__(self) -> None:
        self.covered_through = self.from_block - 1

    @property
    def complete(self) -> bool:
        return not self.failed_chunks

    def summary(self) -> dict[str, Any]:
        return {
            "from_block": self.from_block,
            "to_block": self.to_block,
            "chunks_ok": self.chunks_ok,
            "chunks_failed": len(self.failed_chunks),
            "orders_admitted": self.orders_admitted,
            "settlements_admitted": self.settlements_admitted,
            "discarded": self.discarded,
        }


class RangeFetcher:
    """Fetches OrderPlaced and TickSettled logs over [from, to] in bounded chunks.

    A chunk whose provider call fails (error or timeout) is skipped whole and
    logged; the remaining chunks are still fetched.
    """

    def __init__(
        self,
        source: LogSource,
        store: EventStore,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        request_timeout_sec: float | None = 10.0,
    ) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        self.source = source
        self.store = store
        self.chunk_size = chunk_size
        self.request_timeout_sec = request_timeout_sec

    def chunks(self, from_block: int, to_block: int) -> Iterator[tuple[int, int]]:
        """Consecutive inclusive sub-ranges no wider than chunk_size. Empty when from > to."""
        start = max(0, from_block)
        while start <= to_block:
            end = min(start + self.chunk_size - 1, to_block)
            yield start, end
            start = end + 1

    async def _get_logs(self, event_name: str, start: int, end: int) -> list[Any]:
        call = self.source.get_logs(event_name, start, end)
        if self.request_timeout_sec:
            return await asyncio.wait_for(call, timeout=self.request_timeout_sec)
        return await call

    async def iter_events(
        self,
        from_block: int,
        to_block: int,
        report: FetchReport | None = None,
    ) -> AsyncIterator[OrderRecord | SettlementRecord]:
        """Lazily yield decoded records chunk by chunk (orders, then settlements, per chunk)."""
        report = report or FetchReport(from_block, to_block)
        for start, end in self.chunks(from_block, to_block):
            try:
                order_logs = await self._get_logs(ORDER_PLACED, start, end)
                settle_logs = await self._get_logs(TICK_SETTLED, start, end)
            except Exception as e:
                log.warning(
                    "chunk_fetch_failed",
                    from_block=start,
                    to_block=end,
                    error=str(e) or type(e).__name__,
                )
                report.failed_chunks.append((start, end))
                continue
            report.chunks_ok += 1
            if report.complete:
                report.covered_through = end
            observed_at = int(time.time() * 1000)
            for i, raw in enumerate(order_logs):
                order = decode_order(raw, i, observed_at)
                if isinstance(order, Discard):
                    report.discarded += 1
                    log.debug(
                        "log_discarded",
                        event_name=ORDER_PLACED,
                        reason=order.reason,
                        block=order.block_number,
                    )
                    continue
                yield order
            for i, raw in enumerate(settle_logs):
                settlement = decode_settlement(raw, i, observed_at)
                if isinstance(settlement, Discard):
                    report.discarded += 1
                    log.debug(
                        "log_discarded",
                        event_name=TICK_SETTLED,
                        reason=settlement.reason,
                        block=settlement.block_number,
                    )
                    continue
                yield settlement

    async def fetch_range(self, from_block: int, to_block: int) -> FetchReport:
        """Fetch [from_block, to_block] and admit every decoded record into the store."""
        report = FetchReport(from_block, to_block)
        async for record in self.iter_events(from_block, to_block, report):
            if isinstance(record, OrderRecord):
                if self.store.admit_order(record):
                    report.orders_admitted += 1
            elif self.store.admit_settlement(record):
                report.settlements_admitted += 1
        if report.failed_chunks:
            log.warning("range_fetched_with_gaps", failed=report.failed_chunks, **report.summary())
        else:
            log.debug("range_fetched", **report.summary())
        return report
