"""Index subcommand: start (foreground), head."""

from __future__ import annotations

import asyncio
import signal
import sys

import typer

from flashindex.api.views import metrics_snapshot
from flashindex.ingestion.manager import Indexer

app = typer.Typer(help="Run the indexer in the foreground and inspect the chain")


async def _run_until_stopped(indexer: Indexer, stop_event: asyncio.Event, status_every_sec: float, decimals: int) -> bool:
    if not await indexer.start():
        return False
    while not stop_event.is_set():
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=status_every_sec)
        except asyncio.TimeoutError:
            pass
        status = indexer.get_status()
        snap = metrics_snapshot(indexer.store, decimals=decimals)
        typer.echo(
            f"block={status['last_processed_block']} backfill={status['backfill']} "
            f"orders={snap.total_orders} volume={snap.total_volume} "
            f"settlements={status['retained_settlements']} active_ticks={snap.active_ticks}"
        )
    await indexer.close()
    return True


@app.command("start")
def start(
    ctx: typer.Context,
    status_every: float = typer.Option(10.0, "--status-every", "-s", help="Seconds between status lines"),
) -> None:
    """Backfill, then poll for new OrderPlaced / TickSettled logs until Ctrl+C."""
    settings = ctx.obj["settings"]
    if not settings.contract_address:
        typer.echo("No contract address. Set [chain].contract_address or FLASHINDEX_CONTRACT_ADDRESS.")
        raise typer.Exit(1)
    indexer = Indexer.from_settings(settings)
    stop_event = asyncio.Event()

    def shutdown() -> None:
        stop_event.set()

    loop = asyncio.new_event_loop()
    if sys.platform != "win32":
        loop.add_signal_handler(signal.SIGINT, shutdown)
        loop.add_signal_handler(signal.SIGTERM, shutdown)
    try:
        typer.echo(f"Indexing {settings.contract_address} via {settings.rpc_url} (Ctrl+C to stop)...")
        started = loop.run_until_complete(
            _run_until_stopped(indexer, stop_event, status_every, settings.native_decimals)
        )
    except KeyboardInterrupt:
        started = True
    finally:
        loop.close()
    if not started:
        typer.echo("Indexer did not start (could not read chain head).")
        raise typer.Exit(1)
    typer.echo("Stopped.")


@app.command("head")
def head(ctx: typer.Context) -> None:
    """Print the current chain head and the configured indexing window."""
    settings = ctx.obj["settings"]
    indexer = Indexer.from_settings(settings)
    if indexer.source is None:
        typer.echo("No contract address configured.")
        raise typer.Exit(1)
    try:
        block = asyncio.run(indexer.source.get_block_number())
    except Exception as e:
        typer.echo(f"Failed to read chain head: {e}")
        raise typer.Exit(1)
    typer.echo(f"Chain head: {block}")
    typer.echo(f"Backfill would cover: {max(0, block - settings.backfill_blocks)}-{block}")
    typer.echo(f"Chunk size: {settings.chunk_size} blocks, poll every {settings.poll_interval_sec}s")
