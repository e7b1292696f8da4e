"""OrderRecord, SettlementRecord - decoded contract events."""

from __future__ import annotations

from pydantic import BaseModel, Field


class OrderRecord(BaseModel):
    """One decoded OrderPlaced log."""

    id: str  # "{tx_hash}-{log_index}-{block_number}"
    partition_index: int = Field(..., ge=0)
    side: str = Field(..., pattern="^(YES|NO)$")
    amount: int = Field(..., ge=0)  # base units
    originator: str
    block_number: int = Field(..., ge=0)
    epoch: int = 0
    transaction_hash: str = ""
    log_index: int = 0
    observed_at: int = 0  # ms epoch, ingestion wall clock

    @staticmethod
    def make_id(transaction_hash: str, log_index: int, block_number: int) -> str:
        return f"{transaction_hash}-{log_index}-{block_number}"


class SettlementRecord(BaseModel):
    """One decoded TickSettled log."""

    partition_index: int = Field(..., ge=0)
    epoch: int = Field(..., ge=0)
    matched_affirmative: int = Field(0, ge=0)
    matched_negative: int = Field(0, ge=0)
    clearing_price: int = Field(0, ge=0)
    block_number: int = Field(..., ge=0)
    transaction_hash: str
    observed_at: int = 0

    @property
    def dedup_key(self) -> str:
        return f"{self.transaction_hash}-{self.partition_index}-{self.epoch}"
