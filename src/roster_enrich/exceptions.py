"""Exceptions for the roster enrichment pipeline."""

from __future__ import annotations


class EnrichmentError(Exception):
    """Base exception for enrichment errors."""

    pass


class NoCandidatesError(EnrichmentError):
    """Raised when discovery found nothing to fetch or every fetch failed.

    Terminal for one enrichment attempt; the controller decides whether a
    stale cache entry can stand in.
    """

    def __init__(self, message: str, *, total: int = 0, failures: int = 0) -> None:
        super().__init__(message)
        self.total = total
        self.failures = failures


class StorageError(EnrichmentError):
    """Raised when the persistent cache store rejects a read or write."""

    pass


class StorageQuotaError(StorageError):
    """Raised when a write would push the store past its byte ceiling."""

    def __init__(self, key: str, needed: int, limit: int) -> None:
        super().__init__(f"storing {key!r} needs {needed} bytes, limit is {limit}")
        self.key = key
        self.needed = needed
        self.limit = limit


class CacheCorruptError(EnrichmentError):
    """Raised when a stored cache value cannot be decoded."""

    pass
