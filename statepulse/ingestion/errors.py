"""
Ingestion error types.

Adapters catch these at partition and batch boundaries; the orchestrator
catches anything that escapes an adapter.
"""
from typing import Optional


class IngestionError(Exception):
    """Base class for ingestion failures."""


class ExhaustedRetries(IngestionError):
    """Network or server errors persisted past the retry budget."""

    def __init__(self, url: str, attempts: int, last_error: Optional[BaseException] = None):
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
        detail = f": {last_error}" if last_error else ""
        super().__init__(f"Gave up on {url} after {attempts} attempts{detail}")


class RateLimited(IngestionError):
    """Upstream kept returning 429 after credential rotation and backoff."""

    def __init__(self, url: str, source: Optional[str] = None):
        self.url = url
        self.source = source
        super().__init__(f"Rate limited by {source or 'upstream'} at {url}")


class MalformedRecord(IngestionError):
    """An upstream record could not be mapped to a stored document."""


class MissingCredentials(IngestionError):
    """No API key configured for a source that requires one."""


class PersistenceError(IngestionError):
    """A document store write failed."""


class BackfillAborted(IngestionError):
    """The historical backfill hit its restart limit while still throttled."""
