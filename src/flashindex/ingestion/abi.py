"""FlashGrid event ABI fragments and topics."""

from __future__ import annotations

from typing import Any

from web3 import Web3

ORDER_PLACED_ABI: dict[str, Any] = {
    "type": "event",
    "name": "OrderPlaced",
    "anonymous": False,
    "inputs": [
        {"type": "uint8", "name": "tick", "indexed": True},
        {"type": "address", "name": "maker", "indexed": True},
        {"type": "uint128", "name": "amount", "indexed": False},
        {"type": "bool", "name": "isYes", "indexed": False},
        {"type": "uint32", "name": "epoch", "indexed": False},
    ],
}

TICK_SETTLED_ABI: dict[str, Any] = {
    "type": "event",
    "name": "TickSettled",
    "anonymous": False,
    "inputs": [
        {"type": "uint8", "name": "tick", "indexed": True},
        {"type": "uint32", "name": "epoch", "indexed": False},
        {"type": "uint128", "name": "yesMatched", "indexed": False},
        {"type": "uint128", "name": "noMatched", "indexed": False},
        {"type": "uint256", "name": "clearingPrice", "indexed": False},
    ],
}

EVENTS_ABI = [ORDER_PLACED_ABI, TICK_SETTLED_ABI]


def event_signature(abi: dict[str, Any]) -> str:
    """OrderPlaced(uint8,address,uint128,bool,uint32)"""
    types = ",".join(i["type"] for i in abi["inputs"])
    return f"{abi['name']}({types})"


def event_topic(abi: dict[str, Any]) -> str:
    """topic0 (keccak256 of the signature), 0x-prefixed."""
    return Web3.to_hex(Web3.keccak(text=event_signature(abi)))


TOPICS = {abi["name"]: event_topic(abi) for abi in EVENTS_ABI}
