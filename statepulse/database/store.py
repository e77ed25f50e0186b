"""
Upsert gateway over the document store.

Every write is keyed by the record's `id`: all fields are `$set`, and only
`createdAt` and `id` are `$setOnInsert`, so `createdAt` survives re-ingestion
while everything else is last-write-wins.
"""
import logging
from datetime import datetime
from typing import Callable, Optional

from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from statepulse.config.constants import (
    COLLECTION_EXECUTIVE_ORDERS,
    COLLECTION_LEGISLATION,
    COLLECTION_LEGISLATORS,
    COLLECTION_VOTES,
)
from statepulse.database.normalization import utcnow
from statepulse.ingestion.errors import PersistenceError
from statepulse.models.executive_order import ExecutiveOrderRecord, to_display
from statepulse.models.legislation import LegislativeRecord, StoredModel
from statepulse.models.legislator import StateLegislator
from statepulse.models.vote import StateVote

logger = logging.getLogger(__name__)

# Fields rewritten when the backfill refreshes a bill it already has
ACTIVITY_FIELDS = (
    "sponsors",
    "history",
    "enactedAt",
    "firstActionAt",
    "latestActionAt",
    "latestActionDescription",
)


class LegislationStore:
    """Reads and idempotent writes for all ingested collections."""

    def __init__(self, db: AsyncIOMotorDatabase, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock
        self.legislation: AsyncIOMotorCollection = db[COLLECTION_LEGISLATION]
        self.executive_orders: AsyncIOMotorCollection = db[COLLECTION_EXECUTIVE_ORDERS]
        self.votes: AsyncIOMotorCollection = db[COLLECTION_VOTES]
        self.legislators: AsyncIOMotorCollection = db[COLLECTION_LEGISLATORS]

    # ========================================================================
    # Generic upsert
    # ========================================================================

    async def upsert(self, collection: AsyncIOMotorCollection, item: StoredModel) -> bool:
        """
        Insert or update one document by id.

        Args:
            collection: Target collection
            item: Model to write; its created_at is used only on insert

        Returns:
            True if a new document was inserted, False if one was updated

        Raises:
            PersistenceError: the write failed
        """
        fields = item.to_document()
        doc_id = fields.pop("id")
        now = self.clock()
        created_at = fields.pop("createdAt", None) or now
        fields["updatedAt"] = now

        try:
            result = await collection.update_one(
                {"id": doc_id},
                {
                    "$set": fields,
                    "$setOnInsert": {"createdAt": created_at, "id": doc_id},
                },
                upsert=True,
            )
        except PyMongoError as e:
            raise PersistenceError(f"Failed to upsert {doc_id} into {collection.name}: {e}") from e

        return result.upserted_id is not None

    async def _find(self, collection: AsyncIOMotorCollection, doc_id: str) -> Optional[dict]:
        try:
            return await collection.find_one({"id": doc_id})
        except PyMongoError as e:
            raise PersistenceError(f"Failed to read {doc_id} from {collection.name}: {e}") from e

    # ========================================================================
    # Legislation
    # ========================================================================

    async def find_legislation(self, record_id: str) -> Optional[LegislativeRecord]:
        doc = await self._find(self.legislation, record_id)
        return LegislativeRecord.model_validate(doc) if doc else None

    async def upsert_legislation(self, record: LegislativeRecord) -> bool:
        return await self.upsert(self.legislation, record)

    async def update_activity(self, record: LegislativeRecord) -> None:
        """Refresh only sponsors, history and the fields derived from them."""
        record.derive_action_fields()
        doc = record.to_document()
        fields = {name: doc[name] for name in ACTIVITY_FIELDS}
        fields["updatedAt"] = self.clock()

        try:
            await self.legislation.update_one({"id": record.id}, {"$set": fields})
        except PyMongoError as e:
            raise PersistenceError(f"Failed to update activity for {record.id}: {e}") from e

    async def legislation_exists(self, record_id: str) -> bool:
        return await self._find(self.legislation, record_id) is not None

    # ========================================================================
    # Executive orders
    # ========================================================================

    async def find_executive_order(self, order_id: str) -> Optional[ExecutiveOrderRecord]:
        doc = await self._find(self.executive_orders, order_id)
        return ExecutiveOrderRecord.model_validate(doc) if doc else None

    async def upsert_executive_order(self, order: ExecutiveOrderRecord) -> bool:
        return await self.upsert(self.executive_orders, order)

    # ========================================================================
    # Votes and legislators
    # ========================================================================

    async def find_vote(self, vote_id: str) -> Optional[StateVote]:
        doc = await self._find(self.votes, vote_id)
        return StateVote.model_validate(doc) if doc else None

    async def upsert_vote(self, vote: StateVote) -> bool:
        return await self.upsert(self.votes, vote)

    async def find_legislator(self, person_id: str) -> Optional[StateLegislator]:
        doc = await self._find(self.legislators, person_id)
        return StateLegislator.model_validate(doc) if doc else None

    async def upsert_legislator(self, person: StateLegislator) -> bool:
        return await self.upsert(self.legislators, person)

    # ========================================================================
    # Read-time union
    # ========================================================================

    async def get_document(self, doc_id: str) -> Optional[LegislativeRecord]:
        """
        Look up a bill or executive order by id, in display shape.

        Bills are checked first; executive orders are mapped through
        to_display.
        """
        record = await self.find_legislation(doc_id)
        if record is not None:
            return record

        order = await self.find_executive_order(doc_id)
        return to_display(order) if order is not None else None
