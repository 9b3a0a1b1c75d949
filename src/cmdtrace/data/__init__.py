"""Transcript ingestion, in-memory query engine and persistence adapters."""
