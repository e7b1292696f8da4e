"""Canonical schema (Pydantic) - OrderRecord, SettlementRecord."""

from flashindex.models.events import OrderRecord, SettlementRecord
from flashindex.models.units import format_units

__all__ = [
    "OrderRecord",
    "SettlementRecord",
    "format_units",
]
