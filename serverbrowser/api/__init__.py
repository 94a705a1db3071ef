"""Read-only HTTP API over the ingestion core."""
