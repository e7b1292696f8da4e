"""Indexer orchestrator - one-shot backfill plus live polling into an EventStore."""

from __future__ import annotations

import asyncio
import time
from enum import Enum
from typing import TYPE_CHECKING, Any

import structlog

from flashindex.ingestion.base import LogSource
from flashindex.ingestion.fetcher import DEFAULT_CHUNK_SIZE, FetchReport, RangeFetcher
from flashindex.storage.event_store import EventStore

if TYPE_CHECKING:
    from flashindex.config.settings import Settings

log = structlog.get_logger(__name__)

ADVANCE_ALWAYS = "always"
ADVANCE_CONTIGUOUS = "contiguous"
ADVANCE_POLICIES = (ADVANCE_ALWAYS, ADVANCE_CONTIGUOUS)


class IndexerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class Indexer:
    """Tails one contract's logs: backfills a fixed window once, then polls the head.

    The watermark (store.last_processed_block) is set to the head observed at first
    activation; backfill covers [head - backfill_blocks, head] in the background while
    polling covers everything after it. advance_policy picks what a tick does when a
    chunk fails: "always" advances to the head anyway (gap left behind), "contiguous"
    advances only through the last block covered without failures and retries the rest.
    """

    def __init__(
        self,
        source: LogSource | None,
        *,
        store: EventStore | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        backfill_blocks: int = 10000,
        poll_interval_sec: float = 2.0,
        request_timeout_sec: float | None = 10.0,
        advance_policy: str = ADVANCE_ALWAYS,
    ):
        if advance_policy not in ADVANCE_POLICIES:
            raise ValueError(f"advance_policy must be one of {ADVANCE_POLICIES}, got {advance_policy!r}")
        self.source = source
        self.store = store if store is not None else EventStore()
        self.backfill_blocks = max(0, backfill_blocks)
        self.poll_interval_sec = poll_interval_sec
        self.request_timeout_sec = request_timeout_sec
        self.advance_policy = advance_policy
        self.fetcher = (
            RangeFetcher(source, self.store, chunk_size=chunk_size, request_timeout_sec=request_timeout_sec)
            if source is not None
            else None
        )
        self.state = IndexerState.IDLE
        self.backfill_task: asyncio.Task[FetchReport | None] | None = None
        self.backfill_report: FetchReport | None = None
        self._poll_task: asyncio.Task[None] | None = None
        self._stop: asyncio.Event | None = None
        self._start_lock = asyncio.Lock()
        self._warned_unconfigured = False
        self._ticks = 0
        self._start_ts: float | None = None

    @classmethod
    def from_settings(cls, settings: Settings, store: EventStore | None = None) -> Indexer:
        """Build from config. No contract address -> an indexer whose start() is a no-op."""
        if settings.block_window < settings.series_window:
            raise ValueError(
                f"indexer.block_window ({settings.block_window}) must be >= "
                f"metrics.series_window ({settings.series_window})"
            )
        source = None
        if settings.contract_address:
            from flashindex.ingestion.chain import Web3LogSource

            source = Web3LogSource(settings.rpc_url, settings.contract_address)
        return cls(
            source,
            store=store or EventStore(max_events=settings.max_events, block_window=settings.block_window),
            chunk_size=settings.chunk_size,
            backfill_blocks=settings.backfill_blocks,
            poll_interval_sec=settings.poll_interval_sec,
            request_timeout_sec=settings.request_timeout_sec,
            advance_policy=settings.advance_policy,
        )

    @property
    def configured(self) -> bool:
        return self.source is not None

    def _warn_unconfigured(self) -> None:
        if not self._warned_unconfigured:
            log.warning("indexer_not_configured", msg="No contract address configured; indexer not started.")
            self._warned_unconfigured = True

    async def _head(self) -> int:
        if self.source is None:
            raise RuntimeError("no log source configured")
        call = self.source.get_block_number()
        if self.request_timeout_sec:
            return await asyncio.wait_for(call, timeout=self.request_timeout_sec)
        return await call

    async def start(self) -> bool:
        """Activate backfill (first time only) and polling. Idempotent; return True if running."""
        async with self._start_lock:
            if self.state is IndexerState.RUNNING:
                return True
            if not self.configured:
                self._warn_unconfigured()
                return False
            try:
                head = await self._head()
            except Exception as e:
                log.error("head_read_failed", phase="start", error=str(e) or type(e).__name__)
                return False

            if self.backfill_task is None:
                if head > self.store.last_processed_block:
                    self.store.advance_watermark(head)
                self.backfill_task = asyncio.create_task(self._run_backfill(head), name="flashindex-backfill")

            self._stop = asyncio.Event()
            self._poll_task = asyncio.create_task(self._poll_loop(self._stop), name="flashindex-poll")
            self.state = IndexerState.RUNNING
            self._start_ts = time.time()
            log.info(
                "indexer_started",
                head=head,
                watermark=self.store.last_processed_block,
                poll_interval_sec=self.poll_interval_sec,
            )
            return True

    def stop(self) -> None:
        """Stop scheduling ticks. A tick already in flight finishes and its records still land."""
        if self.state is not IndexerState.RUNNING:
            return
        if self._stop is not None:
            self._stop.set()
        self.state = IndexerState.IDLE
        log.info("indexer_stopped", watermark=self.store.last_processed_block, ticks=self._ticks)

    async def close(self) -> None:
        """Stop, wait for the poll loop to drain and cancel a still-running backfill."""
        self.stop()
        if self._poll_task is not None:
            await self._poll_task
            self._poll_task = None
        if self.backfill_task is not None and not self.backfill_task.done():
            self.backfill_task.cancel()
            try:
                await self.backfill_task
            except asyncio.CancelledError:
                pass

    async def wait_backfill(self) -> FetchReport | None:
        """Await the backfill task (None if never started or if it failed)."""
        if self.backfill_task is None:
            return None
        return await self.backfill_task

    async def _run_backfill(self, head: int) -> FetchReport | None:
        if self.fetcher is None:
            self._warn_unconfigured()
            return None
        start = max(0, head - self.backfill_blocks)
        log.info("backfill_started", from_block=start, to_block=head)
        try:
            report = await self.fetcher.fetch_range(start, head)
        except Exception as e:
            log.error("backfill_failed", from_block=start, to_block=head, error=str(e) or type(e).__name__)
            return None
        self.backfill_report = report
        log.info("backfill_complete", **report.summary())
        return report

    async def poll_once(self) -> FetchReport | None:
        """One tick: fetch (watermark, head] and advance the watermark per advance_policy. None when unconfigured."""
        if self.fetcher is None:
            self._warn_unconfigured()
            return None
        try:
            head = await self._head()
        except Exception as e:
            log.warning(
                "head_read_failed",
                phase="poll",
                watermark=self.store.last_processed_block,
                error=str(e) or type(e).__name__,
            )
            return None
        self._ticks += 1
        last = self.store.last_processed_block
        if head <= last:
            return None
        report = await self.fetcher.fetch_range(last + 1, head)
        target = head if self.advance_policy == ADVANCE_ALWAYS else report.covered_through
        # Backfill never moves the watermark; only this tick does.
        if target > self.store.last_processed_block:
            self.store.advance_watermark(target)
        if report.orders_admitted or report.settlements_admitted:
            log.debug("poll_tick", head=head, **report.summary())
        return report

    async def _poll_loop(self, stop: asyncio.Event) -> None:
        while not stop.is_set():
            try:
                await asyncio.wait_for(stop.wait(), timeout=self.poll_interval_sec)
                break
            except asyncio.TimeoutError:
                pass
            try:
                await self.poll_once()
            except Exception as e:
                log.error("poll_tick_failed", error=str(e) or type(e).__name__)

    def get_status(self) -> dict[str, Any]:
        """Current state, watermark, tick count and store counters."""
        elapsed = (time.time() - self._start_ts) if self._start_ts else 0
        backfill = "not_started"
        if self.backfill_task is not None:
            backfill = "done" if self.backfill_task.done() else "running"
        return {
            "state": self.state.value,
            "configured": self.configured,
            "backfill": backfill,
            "ticks": self._ticks,
            "elapsed_sec": round(elapsed, 1),
            **self.store.stats(),
        }
