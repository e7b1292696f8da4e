"""Chain access protocol consumed by the fetcher and the indexer."""

from __future__ import annotations

from typing import Any, Mapping, Protocol

ORDER_PLACED = "OrderPlaced"
TICK_SETTLED = "TickSettled"
EVENT_NAMES = (ORDER_PLACED, TICK_SETTLED)


class LogSource(Protocol):
    """Log-query capability for one contract.

    get_logs returns ABI-decoded logs in chain delivery order (block ascending,
    then log index). Each item is a mapping with at least
    "args", "blockNumber", "transactionHash" and "logIndex".
    """

    async def get_block_number(self) -> int: ...

    async def get_logs(
        self,
        event_name: str,
        from_block: int,
        to_block: int,
    ) -> list[Mapping[str, Any]]: ...
