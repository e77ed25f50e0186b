"""
Federal bills from Congress.gov.

Two sweeps share the same record handling:

- CongressBillsAdapter: the daily pass over the current congress, most
  recently updated first, capped at the newest few hundred bills.
- CongressHistoricalBackfill: a long-running walk over whole past sessions
  in pages of 250, which stops on the first 429 and restarts an hour later
  from its checkpoint.
"""
from typing import Any, Dict, List, Optional, Sequence, Tuple

from statepulse.config.constants import (
    CONGRESS_DAILY_MAX_OFFSET,
    CONGRESS_DAILY_PAGE_SIZE,
    CONGRESS_GOV_BASE_URL,
    CONGRESS_GOV_WEB_URL,
    CONGRESS_HISTORICAL_PAGE_SIZE,
    CURRENT_CONGRESS,
    HISTORICAL_CONGRESSES,
    MAX_BACKFILL_RESTARTS,
    RESTART_DELAY,
    SESSION_DELAY,
)
from statepulse.database.normalization import congress_bill_id, first_text, parse_datetime
from statepulse.ingestion.base import Page, SourceAdapter
from statepulse.ingestion.errors import BackfillAborted, IngestionError, MalformedRecord, RateLimited
from statepulse.ingestion.relevance import is_relevant
from statepulse.models.checkpoint import Partition
from statepulse.models.legislation import (
    Abstract,
    BillVersion,
    HistoryEvent,
    LegislativeRecord,
    Sponsor,
)

# Congress.gov takes the API key as a query parameter named `api_key`
KEY_PARAM = "api_key"

CONGRESS_JURISDICTION = "United States Congress"
CONGRESS_JURISDICTION_ID = "ocd-jurisdiction/country:us/legislature"

# Sub-resources (actions, cosponsors, ...) are paged; ask for the maximum
SUBRESOURCE_LIMIT = 250

# bill type -> (congress.gov URL slug, classification)
BILL_TYPES = {
    "hr": ("house-bill", "bill"),
    "s": ("senate-bill", "bill"),
    "hres": ("house-resolution", "resolution"),
    "sres": ("senate-resolution", "resolution"),
    "hjres": ("house-joint-resolution", "joint resolution"),
    "sjres": ("senate-joint-resolution", "joint resolution"),
    "hconres": ("house-concurrent-resolution", "concurrent resolution"),
    "sconres": ("senate-concurrent-resolution", "concurrent resolution"),
}


def _ordinal(n: int) -> str:
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def _person_name(person: dict) -> str:
    name = person.get("fullName")
    if not name:
        name = f"{person.get('firstName') or ''} {person.get('lastName') or ''}".strip()
    return name or "Unknown"


def congress_sponsors(bill: dict, cosponsors: Sequence[dict]) -> List[Sponsor]:
    """Primary sponsors followed by cosponsors."""
    sponsors = [
        Sponsor(
            name=_person_name(sp),
            external_id=sp.get("bioguideId"),
            entity_type="person",
            is_primary=True,
            role="sponsor",
        )
        for sp in bill.get("sponsors") or []
    ]
    sponsors.extend(
        Sponsor(
            name=_person_name(co),
            external_id=co.get("bioguideId"),
            entity_type="person",
            is_primary=False,
            role="cosponsor",
        )
        for co in cosponsors
    )
    return sponsors


def congress_history(actions: Sequence[dict]) -> List[HistoryEvent]:
    history = []
    for action in actions:
        date = parse_datetime(action.get("actionDate"))
        if date is None:
            continue
        code = action.get("actionCode")
        history.append(HistoryEvent(
            date=date,
            action_text=action.get("text") or "",
            actor=(action.get("sourceSystem") or {}).get("name") or "Congress",
            classification_tags=[action["type"]] if action.get("type") else [],
            order=int(code) if str(code or "").isdigit() else 0,
        ))
    return history


def congress_versions(text_versions: Sequence[dict]) -> List[BillVersion]:
    return [
        BillVersion(
            note=tv.get("type"),
            date=parse_datetime(tv.get("date")),
            links=[{"url": f.get("url"), "mediaType": f.get("type")} for f in tv.get("formats") or []],
        )
        for tv in text_versions
    ]


def congress_web_url(congress: int, bill_type: str, number: Any) -> Optional[str]:
    slug = BILL_TYPES.get(bill_type, (None, None))[0]
    if slug is None:
        return None
    return f"{CONGRESS_GOV_WEB_URL}/{_ordinal(int(congress))}-congress/{slug}/{number}"


def transform_congress_bill(
    bill: dict,
    actions: Sequence[dict] = (),
    cosponsors: Sequence[dict] = (),
    summaries: Sequence[dict] = (),
    text_versions: Sequence[dict] = (),
) -> LegislativeRecord:
    """
    Map a Congress.gov bill detail plus its sub-resources to a
    LegislativeRecord.

    Raises:
        MalformedRecord: congress, type or number is missing
    """
    try:
        congress = int(bill["congress"])
        bill_type = str(bill["type"]).lower()
        number = bill["number"]
    except (KeyError, TypeError, ValueError) as e:
        raise MalformedRecord(f"Congress bill without congress/type/number: {e}") from e

    latest = bill.get("latestAction") or {}
    policy_area = (bill.get("policyArea") or {}).get("name")

    record = LegislativeRecord(
        id=congress_bill_id(congress, bill_type, number),
        identifier=f"{bill_type.upper()} {number}",
        title=bill.get("title") or "",
        jurisdiction_name=CONGRESS_JURISDICTION,
        jurisdiction_id=CONGRESS_JURISDICTION_ID,
        session=str(congress),
        classification=[BILL_TYPES.get(bill_type, (None, "bill"))[1]],
        subjects=[policy_area] if policy_area else [],
        status_text=latest.get("text"),
        sponsors=congress_sponsors(bill, cosponsors),
        history=congress_history(actions),
        versions=congress_versions(text_versions),
        abstracts=[
            Abstract(text=s["text"], note=s.get("actionDesc"))
            for s in summaries
            if s.get("text")
        ],
        source_url=congress_web_url(congress, bill_type, number),
        first_action_at=parse_datetime(bill.get("introducedDate")),
        latest_action_at=parse_datetime(latest.get("actionDate")),
        latest_action_description=latest.get("text"),
    )
    return record.derive_action_fields()


class CongressBillsAdapter(SourceAdapter[LegislativeRecord]):
    """Daily sweep of recently updated bills in the current congress."""

    source_id = "congress-bills"
    page_size = CONGRESS_DAILY_PAGE_SIZE
    max_offset: Optional[int] = CONGRESS_DAILY_MAX_OFFSET
    sort: Optional[str] = "updateDate desc"
    preserved_fields = ("created_at", "summary", "summary_source")

    def __init__(self, *args, congress: int = CURRENT_CONGRESS, **kwargs):
        super().__init__(*args, **kwargs)
        self.congress = congress

    def partitions(self) -> List[Partition]:
        return [self.congress]

    def first_cursor(self, partition: Partition) -> int:
        return 0

    def page_request(self, partition: Partition, cursor: int) -> Tuple[str, Dict[str, Any]]:
        params: Dict[str, Any] = {"format": "json", "offset": cursor, "limit": self.page_size}
        if self.sort:
            params["sort"] = self.sort
        return f"{CONGRESS_GOV_BASE_URL}/bill/{partition}", params

    def parse_page(self, partition: Partition, cursor: int, payload: Any) -> Page:
        bills = payload.get("bills") or []
        next_cursor: Optional[int] = cursor + self.page_size
        if len(bills) < self.page_size:
            next_cursor = None
        elif self.max_offset is not None and next_cursor >= self.max_offset:
            next_cursor = None
        return Page(records=bills, next_cursor=next_cursor)

    # ========================================================================
    # Sub-resource fetching
    # ========================================================================

    def bill_url(self, raw: dict, suffix: str = "") -> str:
        return f"{CONGRESS_GOV_BASE_URL}/bill/{raw['congress']}/{str(raw['type']).lower()}/{raw['number']}{suffix}"

    async def get_json(self, url: str, **params) -> Optional[dict]:
        """GET a JSON resource; None if it does not exist."""
        response = await self.fetcher.fetch(url, {"format": "json", **params})
        if response.status_code == 404:
            return None
        if not response.is_success:
            raise IngestionError(f"HTTP {response.status_code} fetching {url}")
        return response.json()

    async def get_list(self, raw: dict, suffix: str, key: str) -> List[dict]:
        data = await self.get_json(self.bill_url(raw, suffix), limit=SUBRESOURCE_LIMIT)
        return (data or {}).get(key) or []

    async def summaries(self, raw: dict) -> List[dict]:
        if "summaries" not in raw:
            raw["summaries"] = await self.get_list(raw, "/summaries", "summaries")
        return raw["summaries"]

    # ========================================================================
    # Record handling
    # ========================================================================

    def record_id(self, raw: dict) -> str:
        if not raw.get("type") or not raw.get("number"):
            raise MalformedRecord(f"Bill without type/number in list response: {raw!r:.80}")
        raw.setdefault("congress", self.congress)
        return congress_bill_id(raw["congress"], raw["type"], raw["number"])

    def updated_at(self, raw: dict):
        return parse_datetime(raw.get("updateDate"))

    async def lookup(self, record_id: str) -> Optional[LegislativeRecord]:
        return await self.store.find_legislation(record_id)

    async def expand(self, raw: dict, existing: Optional[LegislativeRecord]) -> dict:
        data = await self.get_json(self.bill_url(raw))
        if not data or not data.get("bill"):
            raise MalformedRecord(f"No detail for {raw['type']} {raw['number']}")
        return {**raw, "detail": data["bill"]}

    async def accept_new(self, raw: dict) -> bool:
        title = first_text([raw["detail"].get("title"), raw.get("title")])
        if is_relevant(title):
            return True
        texts = [s.get("text") for s in await self.summaries(raw)]
        return is_relevant(title, None, texts)

    async def build(self, raw: dict, existing: Optional[LegislativeRecord]) -> LegislativeRecord:
        bill = {**raw, **raw["detail"]}
        actions = await self.get_list(raw, "/actions", "actions")
        cosponsors = await self.get_list(raw, "/cosponsors", "cosponsors")
        summaries = await self.summaries(raw)
        text_versions = []
        if existing is None:
            text_versions = await self.get_list(raw, "/text", "textVersions")
        record = transform_congress_bill(bill, actions, cosponsors, summaries, text_versions)
        if existing is not None and not record.versions:
            record.versions = existing.versions
        return record

    async def write(self, record: LegislativeRecord, existing: Optional[LegislativeRecord]) -> bool:
        return await self.store.upsert_legislation(record)


class CongressHistoricalBackfill(CongressBillsAdapter):
    """
    Offline walk over past congresses, newest first.

    Bills we already have only get their sponsors and history refreshed.
    The fetcher for this adapter raises RateLimited on the first 429.
    """

    source_id = "congress-historical"
    page_size = CONGRESS_HISTORICAL_PAGE_SIZE
    max_offset = None
    sort = None
    early_exit_ratio = None
    partition_delay = SESSION_DELAY

    def __init__(self, *args, congresses: Optional[Sequence[int]] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.congresses = list(congresses or HISTORICAL_CONGRESSES)

    def partitions(self) -> List[Partition]:
        return list(self.congresses)

    def record_id(self, raw: dict) -> str:
        if not raw.get("congress"):
            raise MalformedRecord(f"Bill without congress in list response: {raw!r:.80}")
        return super().record_id(raw)

    def updated_at(self, raw: dict):
        return None

    async def write(self, record: LegislativeRecord, existing: Optional[LegislativeRecord]) -> bool:
        if existing is not None:
            await self.store.update_activity(record)
            return False
        return await self.store.upsert_legislation(record)

    async def run_with_restarts(
        self,
        max_restarts: int = MAX_BACKFILL_RESTARTS,
        restart_delay: float = RESTART_DELAY,
    ) -> dict:
        """
        Run the backfill, sleeping and resuming from the checkpoint each
        time it is rate limited.

        Returns:
            Statistics summed over every attempt

        Raises:
            BackfillAborted: rate limited on max_restarts + 1 attempts in a
                row that processed nothing
        """
        totals: Dict[str, Any] = {}
        restarts = 0
        while True:
            try:
                await self.run()
                return self._accumulate(totals)
            except RateLimited as e:
                self._accumulate(totals)
                if self.stats["processed"]:
                    restarts = 0
                restarts += 1
                if restarts > max_restarts:
                    raise BackfillAborted(
                        f"Still rate limited after {max_restarts} restarts without progress: {e}"
                    ) from e
                self.logger.warning(
                    f"Rate limit hit, progress saved. Restarting in {restart_delay / 60:.0f} min "
                    f"(restart {restarts}/{max_restarts})"
                )
                await self.sleep(restart_delay)

    def _accumulate(self, totals: Dict[str, Any]) -> Dict[str, Any]:
        for key, value in self.stats.items():
            if key == "started_at":
                totals.setdefault(key, value)
            elif isinstance(value, int):
                totals[key] = totals.get(key, 0) + value
            else:
                totals[key] = value
        return totals
