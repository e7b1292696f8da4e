"""Indexer lifecycle: activation, backfill, polling and watermark policy."""

import asyncio

import pytest

from fakes import FakeLogSource
from flashindex.config.settings import Settings
from flashindex.ingestion.manager import Indexer, IndexerState


def _indexer(source, **kwargs) -> Indexer:
    kwargs.setdefault("poll_interval_sec", 3600)
    kwargs.setdefault("chunk_size", 10)
    kwargs.setdefault("backfill_blocks", 50)
    return Indexer(source, **kwargs)


def test_unconfigured_indexer_does_not_start():
    indexer = Indexer(None)

    async def run():
        assert await indexer.start() is False
        assert await indexer.start() is False

    asyncio.run(run())
    assert indexer.state is IndexerState.IDLE
    assert indexer.backfill_task is None


def test_from_settings_without_address_is_unconfigured():
    indexer = Indexer.from_settings(Settings(chain={"contract_address": "0x" + "0" * 40}))
    assert not indexer.configured


def test_invalid_advance_policy_rejected(source):
    with pytest.raises(ValueError):
        Indexer(source, advance_policy="sometimes")


def test_start_backfills_window_and_sets_watermark():
    source = FakeLogSource(head=100)
    source.add_order(30)  # outside backfill window
    source.add_order(60)
    source.add_order(100)
    indexer = _indexer(source)

    async def run():
        assert await indexer.start() is True
        assert indexer.store.last_processed_block == 100
        report = await indexer.wait_backfill()
        await indexer.close()
        return report

    report = asyncio.run(run())
    assert (report.from_block, report.to_block) == (50, 100)
    assert {o.block_number for o in indexer.store.orders} == {60, 100}


def test_start_is_idempotent_and_backfill_runs_once():
    source = FakeLogSource(head=20)
    indexer = _indexer(source)

    async def run():
        await asyncio.gather(indexer.start(), indexer.start())
        first_task = indexer.backfill_task
        await indexer.wait_backfill()
        indexer.stop()
        assert indexer.state is IndexerState.IDLE
        assert await indexer.start() is True
        assert indexer.backfill_task is first_task
        await indexer.close()

    asyncio.run(run())
    # backfill only: two event types x chunks (0-9, 10-19, 20-20)
    assert len(source.calls) == 6


def test_start_fails_when_head_unreadable():
    source = FakeLogSource(head=10)
    source.fail_head = True
    indexer = _indexer(source)
    assert asyncio.run(indexer.start()) is False
    assert indexer.state is IndexerState.IDLE


def test_poll_once_fetches_new_blocks_and_advances():
    source = FakeLogSource(head=100)
    indexer = _indexer(source, backfill_blocks=0)

    async def run():
        await indexer.start()
        await indexer.wait_backfill()
        source.add_order(105)
        source.head = 110
        report = await indexer.poll_once()
        assert (report.from_block, report.to_block) == (101, 110)
        # no new blocks -> nothing fetched
        assert await indexer.poll_once() is None
        await indexer.close()

    asyncio.run(run())
    assert indexer.store.last_processed_block == 110
    assert indexer.store.total_orders == 1


def test_head_failure_leaves_watermark_unchanged():
    source = FakeLogSource(head=100)
    indexer = _indexer(source, backfill_blocks=0)

    async def run():
        await indexer.start()
        source.head = 120
        source.fail_head = True
        assert await indexer.poll_once() is None
        assert indexer.store.last_processed_block == 100
        source.fail_head = False
        await indexer.poll_once()
        await indexer.close()

    asyncio.run(run())
    assert indexer.store.last_processed_block == 120


def test_watermark_never_decreases_across_ticks():
    source = FakeLogSource(head=100)
    indexer = _indexer(source, backfill_blocks=0)
    marks = []

    async def run():
        await indexer.start()
        for head in [105, 103, 103, 130, 90, 131]:
            source.head = head
            await indexer.poll_once()
            marks.append(indexer.store.last_processed_block)
        await indexer.close()

    asyncio.run(run())
    assert marks == sorted(marks)
    assert marks[-1] == 131


def test_always_policy_advances_past_failed_chunk():
    source = FakeLogSource(head=100)
    indexer = _indexer(source, backfill_blocks=0)

    async def run():
        await indexer.start()
        source.add_order(105)
        source.add_order(115)
        source.fail_ranges.append((101, 110))
        source.head = 120
        await indexer.poll_once()
        await indexer.close()

    asyncio.run(run())
    assert indexer.store.last_processed_block == 120
    assert [o.block_number for o in indexer.store.orders] == [115]


def test_contiguous_policy_retries_failed_chunk():
    source = FakeLogSource(head=100)
    indexer = _indexer(source, backfill_blocks=0, advance_policy="contiguous")

    async def run():
        await indexer.start()
        source.add_order(105)
        source.add_order(115)
        source.fail_ranges.append((111, 120))
        source.head = 120
        await indexer.poll_once()
        assert indexer.store.last_processed_block == 110
        source.fail_ranges.clear()
        await indexer.poll_once()
        await indexer.close()

    asyncio.run(run())
    assert indexer.store.last_processed_block == 120
    assert sorted(o.block_number for o in indexer.store.orders) == [105, 115]


def test_poll_loop_runs_on_interval_and_stops():
    source = FakeLogSource(head=10)
    indexer = _indexer(source, backfill_blocks=0, poll_interval_sec=0.01)

    async def run():
        await indexer.start()
        source.add_order(12)
        source.head = 12
        for _ in range(100):
            if indexer.store.last_processed_block == 12:
                break
            await asyncio.sleep(0.01)
        await indexer.close()

    asyncio.run(run())
    assert indexer.store.last_processed_block == 12
    assert indexer.store.total_orders == 1
    assert indexer.get_status()["state"] == "idle"


def test_backfill_and_polling_share_store_without_duplicates():
    source = FakeLogSource(head=100)
    for block in range(60, 130, 5):
        source.add_order(block)
    indexer = _indexer(source)

    async def run():
        await indexer.start()
        source.head = 130
        await indexer.poll_once()
        await indexer.wait_backfill()
        # refetching an overlapping range admits nothing new
        await indexer.fetcher.fetch_range(90, 130)
        await indexer.close()

    asyncio.run(run())
    assert indexer.store.total_orders == 14
    assert len(indexer.store.seen_order_ids) == 14


def test_malformed_log_discarded_and_watermark_advances():
    source = FakeLogSource(head=100)
    indexer = _indexer(source, backfill_blocks=0)

    async def run():
        await indexer.start()
        await indexer.wait_backfill()
        source.add_order(105)
        del source.add_order(106)["args"]["maker"]
        source.head = 110
        report = await indexer.poll_once()
        await indexer.close()
        return report

    report = asyncio.run(run())
    assert report.discarded == 1
    assert report.orders_admitted == 1
    assert indexer.store.last_processed_block == 110
    assert indexer.store.total_orders == 1


def test_stop_lets_in_flight_tick_land():
    source = FakeLogSource(head=10)
    indexer = _indexer(source, backfill_blocks=0, poll_interval_sec=0.01)

    async def run():
        await indexer.start()
        await indexer.wait_backfill()
        source.delay = 0.2
        source.add_order(12)
        source.head = 12
        for _ in range(100):
            if any(frm == 11 for _, frm, _ in source.calls):
                break
            await asyncio.sleep(0.01)
        assert indexer.store.total_orders == 0
        indexer.stop()
        await indexer.close()

    asyncio.run(run())
    assert indexer.state is IndexerState.IDLE
    assert indexer.store.total_orders == 1
    assert indexer.store.last_processed_block == 12


def test_poll_once_on_unconfigured_indexer_is_noop():
    indexer = Indexer(None)
    assert asyncio.run(indexer.poll_once()) is None
    assert indexer.store.last_processed_block == 0
    assert indexer.fetcher is None


def test_block_window_smaller_than_series_window_rejected():
    settings = Settings(indexer={"block_window": 10})
    with pytest.raises(ValueError, match="block_window"):
        Indexer.from_settings(settings)
