"""Read-side metrics over the event store."""
