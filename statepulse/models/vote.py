"""
Vote data models.

Roll call votes on state bills, as reported by OpenStates.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from statepulse.models.legislation import StoredModel


class VoteCount(StoredModel):
    option: str        # "yes", "no", "absent", ...
    value: int = 0


class VoterPosition(StoredModel):
    """How one legislator voted."""
    option: str
    voter_name: Optional[str] = None
    voter_id: Optional[str] = None


class StateVote(StoredModel):
    """
    A roll call vote on a tracked state bill.

    Only stored for bills already present in the `legislation` collection.
    """

    # OpenStates vote event id (e.g., "ocd-vote/...")
    id: str = Field(..., description="Upstream vote event id")
    bill_id: str = Field(..., description="Canonical id of the bill voted on")

    motion: Optional[str] = None
    result: Optional[str] = None   # "pass" | "fail"
    date: Optional[datetime] = None

    counts: List[VoteCount] = Field(default_factory=list)
    votes: List[VoterPosition] = Field(default_factory=list)

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
