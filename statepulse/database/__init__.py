"""Database module - connection management."""

from statepulse.database.connection import (
    get_sync_client,
    get_sync_database,
    close_sync_client,
    get_async_client,
    get_async_database,
    close_async_client,
    ping_async_database,
)

__all__ = [
    "get_sync_client",
    "get_sync_database",
    "close_sync_client",
    "get_async_client",
    "get_async_database",
    "close_async_client",
    "ping_async_database",
]
