"""web3.py-backed LogSource over JSON-RPC (eth_blockNumber, eth_getLogs)."""

from __future__ import annotations

from typing import Any, Mapping

import structlog
from web3 import AsyncHTTPProvider, AsyncWeb3

from flashindex.ingestion.abi import EVENTS_ABI, TOPICS

log = structlog.get_logger(__name__)


class Web3LogSource:
    """Fetches and ABI-decodes one contract's OrderPlaced / TickSettled logs."""

    def __init__(self, rpc_url: str, contract_address: str, w3: AsyncWeb3 | None = None) -> None:
        self.rpc_url = rpc_url
        self.w3 = w3 or AsyncWeb3(AsyncHTTPProvider(rpc_url))
        self.address = AsyncWeb3.to_checksum_address(contract_address)
        self._contract = self.w3.eth.contract(address=self.address, abi=EVENTS_ABI)

    async def get_block_number(self) -> int:
        return int(await self.w3.eth.block_number)

    async def get_logs(self, event_name: str, from_block: int, to_block: int) -> list[Mapping[str, Any]]:
        raw_logs = await self.w3.eth.get_logs(
            {
                "address": self.address,
                "topics": [TOPICS[event_name]],
                "fromBlock": from_block,
                "toBlock": to_block,
            }
        )
        event = getattr(self._contract.events, event_name)()
        out: list[Mapping[str, Any]] = []
        for raw in raw_logs:
            try:
                decoded = event.process_log(raw)
            except Exception as e:
                # Malformed topics/data for this signature: drop the log, keep the chunk.
                log.warning(
                    "log_abi_decode_failed",
                    event_name=event_name,
                    block=raw.get("blockNumber"),
                    log_index=raw.get("logIndex"),
                    error=str(e),
                )
                continue
            out.append(
                {
                    "args": dict(decoded["args"]),
                    "blockNumber": decoded["blockNumber"],
                    "transactionHash": decoded["transactionHash"],
                    "logIndex": decoded["logIndex"],
                }
            )
        return out
