"""
MongoDB connection management.

Provides both sync (pymongo) and async (motor) clients.
- Use the async client for the ingestion pipelines
- Use the sync client for reporting CLIs
"""
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import MongoClient
from pymongo.database import Database

from statepulse.config.settings import settings


# ============================================================
# Synchronous Client (reporting, one-off inspection)
# ============================================================

_sync_client: MongoClient | None = None


def get_sync_client() -> MongoClient:
    """Get or create the synchronous MongoDB client."""
    global _sync_client
    if _sync_client is None:
        _sync_client = MongoClient(settings.MONGODB_URI, serverSelectionTimeoutMS=10_000)
    return _sync_client


def get_sync_database() -> Database:
    """Get the synchronous database instance."""
    return get_sync_client()[settings.MONGODB_DATABASE]


def close_sync_client() -> None:
    """Close the synchronous client connection."""
    global _sync_client
    if _sync_client is not None:
        _sync_client.close()
        _sync_client = None


# ============================================================
# Asynchronous Client (ingestion)
# ============================================================

_async_client: AsyncIOMotorClient | None = None


def get_async_client() -> AsyncIOMotorClient:
    """Get or create the asynchronous MongoDB client."""
    global _async_client
    if _async_client is None:
        _async_client = AsyncIOMotorClient(settings.MONGODB_URI, serverSelectionTimeoutMS=10_000)
    return _async_client


def get_async_database() -> AsyncIOMotorDatabase:
    """Get the asynchronous database instance."""
    return get_async_client()[settings.MONGODB_DATABASE]


async def close_async_client() -> None:
    """Close the asynchronous client connection."""
    global _async_client
    if _async_client is not None:
        _async_client.close()
        _async_client = None


async def ping_async_database() -> bool:
    """
    Confirm the configured MongoDB is reachable before any work starts.

    Returns:
        True if the server answered, raises otherwise.
    """
    result = await get_async_client().admin.command("ping")
    return result.get("ok") == 1.0
