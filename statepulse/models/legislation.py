"""
Legislation data models.

A LegislativeRecord is the single stored shape for state and federal bills.
Attributes are snake_case; documents are written with camelCase keys.
"""
from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from statepulse.database.normalization import is_enacted_action


class StoredModel(BaseModel):
    """Base for models persisted with camelCase field names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )

    def to_document(self) -> dict:
        """Mongo document form of this model."""
        return self.model_dump(by_alias=True)


class SummarySource(str, Enum):
    """Where a stored summary came from."""
    EXTERNAL = "external"     # Supplied by the upstream (e.g. CRS summary)
    GENERATED = "generated"   # Written later by the summarizer job


class Sponsor(StoredModel):
    name: str
    external_id: Optional[str] = None
    entity_type: Optional[str] = None  # "person" | "organization"
    is_primary: bool = False
    role: Optional[str] = None          # "sponsor", "cosponsor", ...


class HistoryEvent(StoredModel):
    date: Optional[datetime] = None
    action_text: str = ""
    actor: Optional[str] = None
    classification_tags: List[str] = Field(default_factory=list)
    order: int = 0


class BillVersion(StoredModel):
    note: Optional[str] = None
    date: Optional[datetime] = None
    links: List[dict] = Field(default_factory=list)


class Abstract(StoredModel):
    text: str
    note: Optional[str] = None


class SourceLink(StoredModel):
    url: str
    note: Optional[str] = None


class LegislativeRecord(StoredModel):
    """
    A state or federal bill as stored in the `legislation` collection.

    `id` is the only stable identity. `created_at` is written once by the
    upsert gateway; every other field is last-write-wins.
    """

    kind: Literal["legislation"] = Field("legislation", exclude=True)

    # Unique identifier (e.g., "congress-bill-119-hr-1234", "ocd-bill_...")
    id: str = Field(..., description="Source-prefixed canonical id")
    identifier: str = Field(..., description="Human bill number, e.g. 'HB 12'")
    title: str = ""

    # Jurisdiction
    jurisdiction_name: str
    jurisdiction_id: Optional[str] = None
    session: Optional[str] = None

    # Categorization
    classification: List[str] = Field(default_factory=list)
    subjects: List[str] = Field(default_factory=list)
    status_text: Optional[str] = None

    # People and events
    sponsors: List[Sponsor] = Field(default_factory=list)
    history: List[HistoryEvent] = Field(default_factory=list)
    versions: List[BillVersion] = Field(default_factory=list)
    abstracts: List[Abstract] = Field(default_factory=list)
    sources: List[SourceLink] = Field(default_factory=list)
    source_url: Optional[str] = None

    # Timestamps
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    first_action_at: Optional[datetime] = None
    latest_action_at: Optional[datetime] = None
    latest_action_description: Optional[str] = None
    enacted_at: Optional[datetime] = None

    # Summary (written by the summarizer, preserved by ingestion)
    summary: Optional[str] = None
    summary_source: Optional[SummarySource] = None

    def derive_action_fields(self) -> "LegislativeRecord":
        """Fill first/latest action fields and enacted date from history."""
        dated = sorted((h for h in self.history if h.date is not None), key=lambda h: h.date)
        if dated:
            self.first_action_at = dated[0].date
            self.latest_action_at = dated[-1].date
            self.latest_action_description = dated[-1].action_text or self.latest_action_description
            if not self.status_text:
                self.status_text = self.latest_action_description
        self.enacted_at = detect_enacted_date(self.history)
        return self

    @property
    def abstract_texts(self) -> List[str]:
        return [a.text for a in self.abstracts]

    def __str__(self) -> str:
        return f"{self.identifier} ({self.jurisdiction_name}): {self.title[:60]}"


def detect_enacted_date(history: List[HistoryEvent]) -> Optional[datetime]:
    """
    Date of the most recent history action that records enactment.

    Args:
        history: Bill history in any order

    Returns:
        The action's date, or None if no action matches
    """
    newest_first = sorted(history, key=lambda h: h.date or datetime.min, reverse=True)
    for event in newest_first:
        if is_enacted_action(event.action_text):
            return event.date
    return None
