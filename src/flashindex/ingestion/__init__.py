"""Chain log ingestion: decoding, chunked range fetch, backfill and polling."""
