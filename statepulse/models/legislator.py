"""
Legislator data models.

State legislators as reported by the OpenStates people endpoint.
"""
from datetime import datetime
from typing import Optional

from pydantic import Field

from statepulse.models.legislation import StoredModel


class StateLegislator(StoredModel):
    """A current member of a state legislature."""

    # OpenStates person id (e.g., "ocd-person/...")
    id: str = Field(..., description="Upstream person id")
    name: str

    given_name: Optional[str] = None
    family_name: Optional[str] = None
    image: Optional[str] = None
    gender: Optional[str] = None
    biography: Optional[str] = None

    party: Optional[str] = None
    state: Optional[str] = None          # 2-letter code
    chamber: Optional[str] = None        # "upper" | "lower"
    district: Optional[str] = None

    extras: dict = Field(default_factory=dict)

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __str__(self) -> str:
        return f"{self.name} ({self.party or '?'}-{self.state or '??'}, {self.district or 'at large'})"
