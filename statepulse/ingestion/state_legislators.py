"""State legislators from the OpenStates /people endpoint."""
from typing import Optional

from statepulse.database.normalization import normalize_state
from statepulse.ingestion.errors import MalformedRecord
from statepulse.ingestion.openstates import OpenStatesAdapter
from statepulse.models.legislator import StateLegislator


class StateLegislatorsAdapter(OpenStatesAdapter[StateLegislator]):
    """Refresh every current legislator; there is no relevance gate for people."""

    source_id = "openstates-people"
    endpoint = "/people"
    per_page = 50
    includes = ("other_names",)
    incremental = False
    early_exit_ratio = None

    def record_id(self, raw: dict) -> str:
        if not raw.get("id") or not raw.get("name"):
            raise MalformedRecord(f"Person without id or name: {raw.get('id')!r}")
        return raw["id"]

    async def lookup(self, record_id: str) -> Optional[StateLegislator]:
        return await self.store.find_legislator(record_id)

    async def accept_new(self, raw: dict) -> bool:
        return True

    async def build(self, raw: dict, existing: Optional[StateLegislator]) -> StateLegislator:
        role = raw.get("current_role") or {}
        party = raw.get("party")
        if not isinstance(party, str):
            party = role.get("party")
        jurisdiction = raw.get("jurisdiction") or {}

        return StateLegislator(
            id=raw["id"],
            name=raw["name"],
            given_name=raw.get("given_name"),
            family_name=raw.get("family_name"),
            image=raw.get("image"),
            gender=raw.get("gender"),
            biography=raw.get("biography"),
            party=party,
            state=normalize_state(jurisdiction.get("name")),
            chamber=role.get("org_classification"),
            district=str(role["district"]) if role.get("district") is not None else None,
            extras=raw.get("extras") or {},
        )

    async def write(self, record: StateLegislator, existing: Optional[StateLegislator]) -> bool:
        return await self.store.upsert_legislator(record)
