"""CSV ingestion."""
