"""In-memory event storage."""
