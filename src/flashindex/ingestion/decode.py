"""Decoded chain log -> OrderRecord / SettlementRecord, or a Discard."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from hexbytes import HexBytes
from pydantic import ValidationError
from web3 import Web3

from flashindex.models.events import OrderRecord, SettlementRecord


@dataclass(frozen=True)
class Discard:
    """A log that could not be turned into a record."""

    reason: str
    block_number: int | None = None
    log_index: int | None = None


def to_hex(x: Any) -> str | None:
    if x is None:
        return None
    if isinstance(x, (bytes, bytearray, HexBytes)):
        return Web3.to_hex(x)
    return str(x)


def to_addr(x: Any) -> str | None:
    if x is None:
        return None
    return Web3.to_checksum_address(x)


def _int(x: Any) -> int | None:
    if x is None:
        return None
    try:
        return int(x)
    except (TypeError, ValueError):
        return None


def _meta(log: Mapping[str, Any], position: int) -> tuple[int | None, str | None, int]:
    block = _int(log.get("blockNumber"))
    tx_hash = to_hex(log.get("transactionHash"))
    log_index = _int(log.get("logIndex"))
    return block, tx_hash, position if log_index is None else log_index


def decode_order(log: Mapping[str, Any], position: int = 0, observed_at: int = 0) -> OrderRecord | Discard:
    """OrderPlaced log -> OrderRecord.

    position is the log's index in its response, used when the provider omits logIndex.
    """
    block, tx_hash, log_index = _meta(log, position)
    args = log.get("args") or {}
    tick = _int(args.get("tick"))
    amount = _int(args.get("amount"))
    maker = args.get("maker")
    is_yes = args.get("isYes")
    if block is None or not tx_hash:
        return Discard("missing_log_meta", block, log_index)
    if tick is None or tick < 0:
        return Discard("missing_tick", block, log_index)
    if maker is None:
        return Discard("missing_maker", block, log_index)
    if amount is None or amount < 0 or is_yes is None:
        return Discard("missing_order_fields", block, log_index)
    try:
        originator = to_addr(maker)
    except (TypeError, ValueError):
        return Discard("bad_maker", block, log_index)
    try:
        return OrderRecord(
            id=OrderRecord.make_id(tx_hash, log_index, block),
            partition_index=tick,
            side="YES" if bool(is_yes) else "NO",
            amount=amount,
            originator=originator,
            block_number=block,
            epoch=_int(args.get("epoch")) or 0,
            transaction_hash=tx_hash,
            log_index=log_index,
            observed_at=observed_at,
        )
    except ValidationError:
        return Discard("invalid_order_fields", block, log_index)


def decode_settlement(log: Mapping[str, Any], position: int = 0, observed_at: int = 0) -> SettlementRecord | Discard:
    """TickSettled log -> SettlementRecord. tick and epoch are required (they form the dedup key)."""
    block, tx_hash, log_index = _meta(log, position)
    args = log.get("args") or {}
    tick = _int(args.get("tick"))
    epoch = _int(args.get("epoch"))
    if block is None or not tx_hash:
        return Discard("missing_log_meta", block, log_index)
    if tick is None or tick < 0 or epoch is None or epoch < 0:
        return Discard("missing_settlement_key", block, log_index)
    try:
        return SettlementRecord(
            partition_index=tick,
            epoch=epoch,
            matched_affirmative=_int(args.get("yesMatched")) or 0,
            matched_negative=_int(args.get("noMatched")) or 0,
            clearing_price=_int(args.get("clearingPrice")) or 0,
            block_number=block,
            transaction_hash=tx_hash,
            observed_at=observed_at,
        )
    except ValidationError:
        return Discard("invalid_settlement_fields", block, log_index)
