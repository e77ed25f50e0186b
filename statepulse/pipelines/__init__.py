"""Command-line entry points for the ingestion pipelines."""
