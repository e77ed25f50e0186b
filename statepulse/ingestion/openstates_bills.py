"""
State legislation from OpenStates.

Pages through /bills per state, most recently updated first, refreshing
every bill we already track and admitting new ones only if they mention AI.
"""
from typing import List, Optional

from statepulse.database.normalization import openstates_display_id, parse_datetime
from statepulse.ingestion.errors import MalformedRecord
from statepulse.ingestion.openstates import OpenStatesAdapter
from statepulse.ingestion.relevance import is_relevant
from statepulse.models.legislation import (
    Abstract,
    BillVersion,
    HistoryEvent,
    LegislativeRecord,
    SourceLink,
    Sponsor,
)


def _sponsors(raw: dict) -> List[Sponsor]:
    sponsors = []
    for sp in raw.get("sponsorships") or []:
        person = sp.get("person") or {}
        org = sp.get("organization") or {}
        sponsors.append(Sponsor(
            name=sp.get("name") or person.get("name") or org.get("name") or "Unknown",
            external_id=person.get("id") or org.get("id"),
            entity_type="person" if person else ("organization" if org else None),
            is_primary=bool(sp.get("primary")),
            role=sp.get("classification"),
        ))
    return sponsors


def _history(raw: dict) -> List[HistoryEvent]:
    history = []
    for act in raw.get("actions") or []:
        date = parse_datetime(act.get("date"))
        if date is None:
            continue
        history.append(HistoryEvent(
            date=date,
            action_text=act.get("description") or "",
            actor=(act.get("organization") or {}).get("name"),
            classification_tags=act.get("classification") or [],
            order=act.get("order") or 0,
        ))
    return history


def _versions(raw: dict) -> List[BillVersion]:
    versions = []
    for ver in raw.get("versions") or []:
        date = parse_datetime(ver.get("date"))
        if date is None:
            continue
        versions.append(BillVersion(note=ver.get("note"), date=date, links=ver.get("links") or []))
    return versions


def _abstracts(raw: dict) -> List[Abstract]:
    return [
        Abstract(text=a["abstract"], note=a.get("note"))
        for a in raw.get("abstracts") or []
        if a.get("abstract")
    ]


def transform_openstates_bill(raw: dict) -> LegislativeRecord:
    """
    Map an OpenStates bill (with sponsorships, actions and abstracts
    included) to a LegislativeRecord.

    Raises:
        MalformedRecord: the bill id is not an OCD bill id
    """
    record_id = openstates_display_id(raw.get("id"))
    if record_id is None:
        raise MalformedRecord(f"Unrecognized OpenStates bill id: {raw.get('id')!r}")

    jurisdiction = raw.get("jurisdiction") or {}
    record = LegislativeRecord(
        id=record_id,
        identifier=raw.get("identifier") or record_id,
        title=raw.get("title") or "",
        jurisdiction_name=jurisdiction.get("name") or "",
        jurisdiction_id=jurisdiction.get("id"),
        session=raw.get("session"),
        classification=raw.get("classification") or [],
        subjects=raw.get("subject") or [],
        status_text=raw.get("latest_action_description"),
        sponsors=_sponsors(raw),
        history=_history(raw),
        versions=_versions(raw),
        abstracts=_abstracts(raw),
        sources=[SourceLink(url=s["url"], note=s.get("note")) for s in raw.get("sources") or [] if s.get("url")],
        source_url=raw.get("openstates_url"),
        created_at=parse_datetime(raw.get("created_at")),
        first_action_at=parse_datetime(raw.get("first_action_date")),
        latest_action_at=parse_datetime(raw.get("latest_action_date")),
        latest_action_description=raw.get("latest_action_description"),
    )
    return record.derive_action_fields()


class StateBillsAdapter(OpenStatesAdapter[LegislativeRecord]):
    """Daily and standalone sweep of state bills."""

    source_id = "openstates-bills"
    endpoint = "/bills"
    includes = ("abstracts", "sponsorships", "actions", "versions", "sources")
    preserved_fields = ("created_at", "summary", "summary_source")

    def record_id(self, raw: dict) -> str:
        record_id = openstates_display_id(raw.get("id"))
        if record_id is None:
            raise MalformedRecord(f"Unrecognized OpenStates bill id: {raw.get('id')!r}")
        return record_id

    async def lookup(self, record_id: str) -> Optional[LegislativeRecord]:
        return await self.store.find_legislation(record_id)

    async def accept_new(self, raw: dict) -> bool:
        abstracts = [a.get("abstract") for a in raw.get("abstracts") or []]
        return is_relevant(raw.get("title"), None, abstracts)

    async def build(self, raw: dict, existing: Optional[LegislativeRecord]) -> LegislativeRecord:
        return transform_openstates_bill(raw)

    async def write(self, record: LegislativeRecord, existing: Optional[LegislativeRecord]) -> bool:
        return await self.store.upsert_legislation(record)
