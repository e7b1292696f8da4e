"""HTTP endpoints over an indexer's store."""

from fastapi.testclient import TestClient

from flashindex.api.main import create_app
from flashindex.config.settings import Settings
from flashindex.ingestion.manager import Indexer
from flashindex.models.events import OrderRecord, SettlementRecord
from flashindex.storage.event_store import EventStore


def _populated_store() -> EventStore:
    store = EventStore()
    for i, (block, tick) in enumerate([(100, 1), (100, 2), (101, 2)]):
        store.admit_order(
            OrderRecord(
                id=f"0xtx{i}-0-{block}",
                partition_index=tick,
                side="YES" if i % 2 == 0 else "NO",
                amount=5 * 10**17,
                originator="0x" + "ab" * 20,
                block_number=block,
                observed_at=1000 + i,
            )
        )
    store.admit_settlement(
        SettlementRecord(
            partition_index=2,
            epoch=4,
            matched_affirmative=10**18,
            matched_negative=25 * 10**16,
            clearing_price=123,
            block_number=102,
            transaction_hash="0xsettle",
        )
    )
    store.advance_watermark(102)
    return store


def _client() -> TestClient:
    indexer = Indexer(None, store=_populated_store())
    return TestClient(create_app(Settings(), indexer))


def test_health_reports_unconfigured_indexer():
    with _client() as client:
        r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "indexer": "idle", "configured": False}


def test_events_newest_first_with_decimal_amounts():
    with _client() as client:
        body = client.get("/events", params={"limit": 2}).json()
    assert [o["id"] for o in body["orders"]] == ["0xtx2-0-101", "0xtx1-0-100"]
    assert body["orders"][0]["amount"] == "0.5"
    assert body["total"] == 3
    s = body["settlements"][0]
    assert (s["yes_matched"], s["no_matched"], s["clearing_price"]) == ("1.0", "0.25", "123")


def test_events_limit_validated():
    with _client() as client:
        assert client.get("/events", params={"limit": 0}).status_code == 422


def test_metrics_snapshot():
    with _client() as client:
        body = client.get("/metrics").json()
    assert body["orders_per_block"] == [2, 1]
    assert body["avg_orders_per_block"] == 1.5
    assert body["total_orders"] == 3
    assert body["total_volume"] == "1.5"
    assert body["active_ticks"] == 2
    assert body["blocks_processed"] == 2
    assert body["last_processed_block"] == 102


def test_create_app_reads_config_dir_set_by_run_api(tmp_path, monkeypatch):
    import flashindex.api.main as api_main

    monkeypatch.delenv("FLASHINDEX_CONTRACT_ADDRESS", raising=False)
    (tmp_path / "default.toml").write_text("[api]\ndefault_limit = 7\n[metrics]\nseries_window = 20\n")
    monkeypatch.setattr(api_main, "_config_profile", None)
    monkeypatch.setattr(api_main, "_config_dir", tmp_path)
    app = create_app()
    assert app.state.settings.default_limit == 7
    assert app.state.settings.series_window == 20
