"""flashindex - on-chain event indexer for FlashGrid order and settlement logs."""

__version__ = "0.1.0"
