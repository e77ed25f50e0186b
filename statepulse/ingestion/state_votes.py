"""
State roll call votes from OpenStates.

Votes are read from /bills with `include=votes` and stored only for bills
already in the `legislation` collection.
"""
from typing import List, Optional

from statepulse.database.normalization import openstates_display_id, parse_datetime
from statepulse.ingestion.errors import MalformedRecord
from statepulse.ingestion.openstates import OpenStatesAdapter
from statepulse.models.vote import StateVote, VoteCount, VoterPosition


class StateVotesAdapter(OpenStatesAdapter[StateVote]):

    source_id = "openstates-votes"
    endpoint = "/bills"
    includes = ("votes",)

    def flatten(self, results: List[dict]) -> List[dict]:
        votes = []
        for bill in results:
            for vote in bill.get("votes") or []:
                votes.append({
                    **vote,
                    "bill_id": bill.get("id"),
                    "updated_at": bill.get("updated_at"),
                })
        return votes

    def record_id(self, raw: dict) -> str:
        if not raw.get("id"):
            raise MalformedRecord("Vote event without an id")
        return raw["id"]

    async def lookup(self, record_id: str) -> Optional[StateVote]:
        return await self.store.find_vote(record_id)

    async def accept_new(self, raw: dict) -> bool:
        bill_id = openstates_display_id(raw.get("bill_id"))
        return bill_id is not None and await self.store.legislation_exists(bill_id)

    async def build(self, raw: dict, existing: Optional[StateVote]) -> StateVote:
        bill_id = openstates_display_id(raw.get("bill_id"))
        if bill_id is None:
            raise MalformedRecord(f"Vote {raw['id']} has no recognizable bill id")

        return StateVote(
            id=raw["id"],
            bill_id=bill_id,
            motion=raw.get("motion_text"),
            result=raw.get("result"),
            date=parse_datetime(raw.get("start_date")),
            counts=[
                VoteCount(option=c.get("option") or "other", value=c.get("value") or 0)
                for c in raw.get("counts") or []
            ],
            votes=[
                VoterPosition(
                    option=v.get("option") or "other",
                    voter_name=v.get("voter_name"),
                    voter_id=(v.get("voter") or {}).get("id"),
                )
                for v in raw.get("votes") or []
            ],
        )

    async def write(self, record: StateVote, existing: Optional[StateVote]) -> bool:
        return await self.store.upsert_vote(record)
