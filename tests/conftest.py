"""
Shared fixtures: an in-memory stand-in for Motor collections, a recording
sleep, and httpx clients backed by MockTransport.
"""
import copy
import itertools
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from statepulse.database.store import LegislationStore
from statepulse.ingestion.checkpoint import CheckpointStore
from statepulse.ingestion.fetcher import RateLimitedFetcher


@dataclass
class UpdateResult:
    matched_count: int
    upserted_id: Optional[Any] = None


class FakeCollection:
    """Just enough of AsyncIOMotorCollection for id-keyed reads and upserts."""

    _ids = itertools.count(1)

    def __init__(self, name: str):
        self.name = name
        self.docs: Dict[str, dict] = {}

    async def find_one(self, query: dict) -> Optional[dict]:
        doc = self.docs.get(query.get("id"))
        return copy.deepcopy(doc) if doc is not None else None

    async def update_one(self, query: dict, update: dict, upsert: bool = False) -> UpdateResult:
        doc = self.docs.get(query["id"])
        if doc is not None:
            doc.update(copy.deepcopy(update.get("$set", {})))
            return UpdateResult(matched_count=1)
        if not upsert:
            return UpdateResult(matched_count=0)

        doc = {"_id": next(self._ids), "id": query["id"]}
        doc.update(copy.deepcopy(update.get("$setOnInsert", {})))
        doc.update(copy.deepcopy(update.get("$set", {})))
        self.docs[query["id"]] = doc
        return UpdateResult(matched_count=0, upserted_id=doc["_id"])

    async def count_documents(self, query: dict) -> int:
        return len(self.docs)


class FakeDatabase:
    def __init__(self):
        self.collections: Dict[str, FakeCollection] = {}

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self.collections:
            self.collections[name] = FakeCollection(name)
        return self.collections[name]


class RecordingSleep:
    """Awaitable sleep that returns immediately and remembers each delay."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def make_fetcher(handler, sleep=None, **kwargs) -> RateLimitedFetcher:
    kwargs.setdefault("throttle_delay", 120.0)
    return RateLimitedFetcher(mock_client(handler), sleep=sleep or RecordingSleep(), **kwargs)


@pytest.fixture
def db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def store(db) -> LegislationStore:
    return LegislationStore(db)


@pytest.fixture
def checkpoints(tmp_path) -> CheckpointStore:
    return CheckpointStore(tmp_path)


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def fetcher_factory():
    """Build a RateLimitedFetcher whose client answers with `handler`."""
    return make_fetcher
