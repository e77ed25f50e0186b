"""
Wiring shared by the pipeline entry points: logging, HTTP client,
database, fetchers and the end-of-run summary.
"""
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Optional

import httpx

from statepulse.config.constants import WATERMARK_FILE
from statepulse.config.settings import settings
from statepulse.database.connection import close_async_client, get_async_database, ping_async_database
from statepulse.database.store import LegislationStore
from statepulse.ingestion import congress_bills, openstates
from statepulse.ingestion.checkpoint import CheckpointStore, WatermarkStore
from statepulse.ingestion.credentials import CredentialRotator
from statepulse.ingestion.fetcher import RateLimitedFetcher

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False) -> None:
    """Configure root logging from settings (--verbose forces DEBUG)."""
    level = logging.DEBUG if verbose else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(level=level, format=settings.LOG_FORMAT)
    # httpx logs every request URL at INFO, including the api key parameter
    logging.getLogger("httpx").setLevel(logging.WARNING)


@dataclass
class PipelineContext:
    """Resources one CLI invocation shares between its adapters."""

    client: httpx.AsyncClient
    store: LegislationStore
    checkpoints: CheckpointStore
    watermarks: WatermarkStore


@asynccontextmanager
async def open_pipeline(data_dir: Optional[Path] = None) -> AsyncIterator[PipelineContext]:
    """
    Connect to MongoDB and open the shared HTTP client.

    Raises:
        pymongo.errors.PyMongoError: the database is unreachable
    """
    data_dir = Path(data_dir or settings.DATA_DIR)
    await ping_async_database()
    logger.info(f"Connected to MongoDB: {settings.MONGODB_DATABASE}")

    async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT, follow_redirects=True) as client:
        try:
            yield PipelineContext(
                client=client,
                store=LegislationStore(get_async_database()),
                checkpoints=CheckpointStore(data_dir),
                watermarks=WatermarkStore(data_dir / WATERMARK_FILE),
            )
        finally:
            await close_async_client()
            logger.info("Disconnected from MongoDB")


# ============================================================================
# Fetchers, one per upstream, each with its own rotator
# ============================================================================

def openstates_fetcher(client: httpx.AsyncClient, **overrides) -> RateLimitedFetcher:
    rotator = CredentialRotator(
        settings.openstates_api_keys, "OpenStates", threshold=settings.ROTATION_THRESHOLD
    ).require()
    return RateLimitedFetcher(client, rotator, key_param=openstates.KEY_PARAM, **overrides)


def congress_fetcher(client: httpx.AsyncClient, **overrides) -> RateLimitedFetcher:
    rotator = CredentialRotator(
        settings.congress_api_keys, "Congress.gov", threshold=settings.ROTATION_THRESHOLD
    ).require()
    return RateLimitedFetcher(client, rotator, key_param=congress_bills.KEY_PARAM, **overrides)


def federal_register_fetcher(client: httpx.AsyncClient, **overrides) -> RateLimitedFetcher:
    return RateLimitedFetcher(client, **overrides)


# ============================================================================
# Output
# ============================================================================

def print_banner(title: str) -> None:
    print("\n" + "=" * 60)
    print(title)
    print("=" * 60)


def print_stats(name: str, stats: dict) -> None:
    print(
        f"   ✅ {name}: {stats.get('processed', 0)} processed, "
        f"{stats.get('inserted', 0)} new, {stats.get('updated', 0)} updated, "
        f"{stats.get('filtered', 0)} filtered, {stats.get('errors', 0)} errors"
    )
