"""
Executive order models and the read-time union with legislation.

Executive orders live in their own collection but are shown alongside
bills. `to_display` is the one place that maps either kind of document
into the legislation shape the readers expect.
"""
from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import Field

from statepulse.models.legislation import (
    LegislativeRecord,
    SourceLink,
    Sponsor,
    StoredModel,
)

FEDERAL_JURISDICTION = "United States"


class ExecutiveOrderRecord(StoredModel):
    """An executive order as stored in the `executive_orders` collection."""

    kind: Literal["executive_order"] = Field("executive_order", exclude=True)

    # Unique identifier (e.g., "eo-united-states-14110")
    id: str = Field(..., description="eo-{jurisdiction slug}-{number}")
    number: Optional[str] = None
    state: str = Field(FEDERAL_JURISDICTION, description="Issuing jurisdiction")

    title: str
    # Abstract published with the order
    summary: Optional[str] = None
    # Written later by the summarizer job
    generated_summary: Optional[str] = None
    full_text: Optional[str] = None
    full_text_url: Optional[str] = None
    document_number: Optional[str] = None

    date_signed: Optional[datetime] = None
    issuer: Optional[str] = None
    topics: List[str] = Field(default_factory=list)

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_federal(self) -> bool:
        return self.state == FEDERAL_JURISDICTION


PolicyDocument = Annotated[
    Union[LegislativeRecord, ExecutiveOrderRecord],
    Field(discriminator="kind"),
]


def to_display(item: PolicyDocument) -> LegislativeRecord:
    """
    Map a stored document into the common legislation display shape.

    Bills pass through unchanged. Executive orders are presented as signed,
    single-action records sponsored by their issuer.
    """
    if isinstance(item, LegislativeRecord):
        return item

    if item.number:
        prefix = "EO" if item.is_federal else "Exec. Order"
        identifier = f"{prefix} {item.number}"
    else:
        identifier = "Executive Order"

    signed = item.date_signed
    sources = [SourceLink(url=item.full_text_url, note="Official Source")] if item.full_text_url else []

    return LegislativeRecord(
        id=item.id,
        identifier=identifier,
        title=item.title,
        jurisdiction_name=item.state,
        classification=["executive-order"],
        session=str(signed.year) if signed else None,
        status_text="Signed",
        summary=item.generated_summary or item.summary,
        subjects=list(item.topics),
        sponsors=[Sponsor(name=item.issuer, role="Executive")] if item.issuer else [],
        sources=sources,
        source_url=item.full_text_url,
        created_at=item.created_at,
        updated_at=item.updated_at or item.created_at,
        first_action_at=signed,
        latest_action_at=signed,
        enacted_at=signed,
        latest_action_description=f"Signed by {item.issuer}" if item.issuer else "Signed",
    )
