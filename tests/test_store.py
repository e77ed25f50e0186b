from datetime import datetime, timedelta

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from statepulse.database.store import LegislationStore
from statepulse.ingestion.errors import PersistenceError
from statepulse.models.executive_order import ExecutiveOrderRecord
from statepulse.models.legislation import HistoryEvent, LegislativeRecord


class TickingClock:
    def __init__(self, start=datetime(2026, 1, 1)):
        self.now = start

    def __call__(self):
        self.now += timedelta(minutes=1)
        return self.now


def bill(**overrides):
    fields = dict(
        id="congress-bill-119-hr-1",
        identifier="HR 1",
        title="Artificial Intelligence Risk Act",
        jurisdiction_name="United States Congress",
    )
    fields.update(overrides)
    return LegislativeRecord(**fields)


class BrokenCollection:
    name = "legislation"

    async def update_one(self, *args, **kwargs):
        raise ServerSelectionTimeoutError("no servers")

    async def find_one(self, *args, **kwargs):
        raise ServerSelectionTimeoutError("no servers")


class TestUpsert:

    @pytest.mark.asyncio
    async def test_insert_then_update(self, db):
        store = LegislationStore(db, clock=TickingClock())

        assert await store.upsert_legislation(bill()) is True
        assert await store.upsert_legislation(bill(title="Renamed")) is False

        docs = db["legislation"].docs
        assert len(docs) == 1
        assert docs["congress-bill-119-hr-1"]["title"] == "Renamed"

    @pytest.mark.asyncio
    async def test_created_at_is_set_once(self, db):
        store = LegislationStore(db, clock=TickingClock())

        await store.upsert_legislation(bill())
        first = dict(db["legislation"].docs["congress-bill-119-hr-1"])
        await store.upsert_legislation(bill(created_at=datetime(2030, 1, 1)))
        second = db["legislation"].docs["congress-bill-119-hr-1"]

        assert second["createdAt"] == first["createdAt"]
        assert second["updatedAt"] > first["updatedAt"]

    @pytest.mark.asyncio
    async def test_upstream_created_at_used_on_insert(self, store, db):
        await store.upsert_legislation(bill(created_at=datetime(2025, 5, 1)))

        assert db["legislation"].docs["congress-bill-119-hr-1"]["createdAt"] == datetime(2025, 5, 1)

    @pytest.mark.asyncio
    async def test_documents_use_camel_case(self, store, db):
        await store.upsert_legislation(bill())
        doc = db["legislation"].docs["congress-bill-119-hr-1"]

        assert doc["jurisdictionName"] == "United States Congress"
        assert "kind" not in doc

    @pytest.mark.asyncio
    async def test_round_trip_through_find(self, store):
        await store.upsert_legislation(bill(summary="Existing", summary_source="generated"))
        found = await store.find_legislation("congress-bill-119-hr-1")

        assert found.summary == "Existing"
        assert found.summary_source == "generated"
        assert found.created_at is not None

    @pytest.mark.asyncio
    async def test_write_failure_raises_persistence_error(self, store):
        store.legislation = BrokenCollection()

        with pytest.raises(PersistenceError):
            await store.upsert_legislation(bill())
        with pytest.raises(PersistenceError):
            await store.find_legislation("congress-bill-119-hr-1")


class TestUpdateActivity:

    @pytest.mark.asyncio
    async def test_only_activity_fields_change(self, store, db):
        await store.upsert_legislation(bill(summary="Keep me"))

        refreshed = bill(
            title="Different title",
            history=[HistoryEvent(date=datetime(2025, 7, 4), action_text="Became Public Law No: 119-1.")],
        )
        await store.update_activity(refreshed)
        doc = db["legislation"].docs["congress-bill-119-hr-1"]

        assert doc["title"] == "Artificial Intelligence Risk Act"
        assert doc["summary"] == "Keep me"
        assert doc["enactedAt"] == datetime(2025, 7, 4)
        assert doc["history"][0]["actionText"] == "Became Public Law No: 119-1."

    @pytest.mark.asyncio
    async def test_does_not_create_documents(self, store, db):
        await store.update_activity(bill())
        assert db["legislation"].docs == {}


class TestGetDocument:

    @pytest.mark.asyncio
    async def test_prefers_legislation(self, store):
        await store.upsert_legislation(bill())

        found = await store.get_document("congress-bill-119-hr-1")

        assert found.identifier == "HR 1"

    @pytest.mark.asyncio
    async def test_falls_back_to_executive_orders(self, store):
        await store.upsert_executive_order(ExecutiveOrderRecord(
            id="eo-united-states-14110",
            number="14110",
            title="Safe, Secure, and Trustworthy Development and Use of Artificial Intelligence",
            summary="Abstract text",
            date_signed=datetime(2023, 10, 30),
            issuer="Joseph R. Biden Jr.",
        ))

        found = await store.get_document("eo-united-states-14110")

        assert found.identifier == "EO 14110"
        assert found.classification == ["executive-order"]
        assert found.status_text == "Signed"
        assert found.enacted_at == datetime(2023, 10, 30)

    @pytest.mark.asyncio
    async def test_unknown_id(self, store):
        assert await store.get_document("nope") is None
