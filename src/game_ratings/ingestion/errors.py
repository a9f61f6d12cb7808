from __future__ import annotations


class IngestionError(RuntimeError):
    """Base exception for ingestion/backfill failures."""


class FetchError(IngestionError):
    """A period could not be fetched; the result would be ambiguous, so nothing is returned."""


class StoreError(IngestionError):
    """The local store failed to read or persist competitions or ratings."""
