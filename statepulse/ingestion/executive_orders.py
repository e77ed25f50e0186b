"""
Federal executive orders from the Federal Register API.

Signed orders are listed newest first from a week before the watermark,
so orders published a few days after signing are not missed.
"""
from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple

from statepulse.config.constants import (
    EXECUTIVE_ORDER_LOOKBACK_DAYS,
    EXECUTIVE_ORDER_MAX_PAGES,
    FEDERAL_REGISTER_BASE_URL,
    FEDERAL_REGISTER_PAGE_SIZE,
)
from statepulse.database.normalization import jurisdiction_slug, parse_datetime
from statepulse.ingestion.base import Page, SourceAdapter
from statepulse.ingestion.errors import MalformedRecord
from statepulse.ingestion.relevance import is_relevant
from statepulse.models.checkpoint import Partition
from statepulse.models.executive_order import FEDERAL_JURISDICTION, ExecutiveOrderRecord

FIELDS = [
    "document_number",
    "executive_order_number",
    "title",
    "abstract",
    "signing_date",
    "president",
    "topics",
    "html_url",
    "raw_text_url",
    "pdf_url",
]


def executive_order_id(jurisdiction: str, number: Any) -> str:
    """
    Examples:
        >>> executive_order_id("United States", 14110)
        "eo-united-states-14110"
    """
    return f"eo-{jurisdiction_slug(jurisdiction)}-{number}"


class ExecutiveOrdersAdapter(SourceAdapter[ExecutiveOrderRecord]):
    """Presidential executive orders signed since the watermark."""

    source_id = "executive-orders"
    early_exit_ratio = None
    preserved_fields = ("created_at", "generated_summary", "full_text")

    def __init__(self, *args, max_pages: int = EXECUTIVE_ORDER_MAX_PAGES, **kwargs):
        super().__init__(*args, **kwargs)
        self.max_pages = max_pages

    def partitions(self) -> List[Partition]:
        return [FEDERAL_JURISDICTION]

    def cutoff(self) -> Optional[str]:
        if self.since is None:
            return None
        return (self.since - timedelta(days=EXECUTIVE_ORDER_LOOKBACK_DAYS)).date().isoformat()

    def page_request(self, partition: Partition, cursor: int) -> Tuple[str, Dict[str, Any]]:
        params: Dict[str, Any] = {
            "conditions[type][]": "PRESDOCU",
            "conditions[presidential_document_type][]": "executive_order",
            "fields[]": FIELDS,
            "order": "newest",
            "per_page": FEDERAL_REGISTER_PAGE_SIZE,
            "page": cursor,
        }
        cutoff = self.cutoff()
        if cutoff:
            params["conditions[signing_date][gte]"] = cutoff
        return f"{FEDERAL_REGISTER_BASE_URL}/documents.json", params

    def parse_page(self, partition: Partition, cursor: int, payload: Any) -> Page:
        total_pages = payload.get("total_pages") or 1
        next_cursor = cursor + 1 if cursor < min(total_pages, self.max_pages) else None
        return Page(records=payload.get("results") or [], next_cursor=next_cursor)

    def record_id(self, raw: dict) -> str:
        number = raw.get("executive_order_number")
        if not number:
            raise MalformedRecord(f"Document {raw.get('document_number')} has no executive order number")
        return executive_order_id(FEDERAL_JURISDICTION, number)

    async def lookup(self, record_id: str) -> Optional[ExecutiveOrderRecord]:
        return await self.store.find_executive_order(record_id)

    async def accept_new(self, raw: dict) -> bool:
        return is_relevant(raw.get("title"), raw.get("abstract"))

    async def build(self, raw: dict, existing: Optional[ExecutiveOrderRecord]) -> ExecutiveOrderRecord:
        full_text = None
        if existing is None and raw.get("raw_text_url"):
            response = await self.fetcher.fetch(raw["raw_text_url"])
            if response.is_success:
                full_text = response.text

        return ExecutiveOrderRecord(
            id=self.record_id(raw),
            number=str(raw["executive_order_number"]),
            state=FEDERAL_JURISDICTION,
            title=raw.get("title") or "",
            summary=raw.get("abstract"),
            full_text=full_text,
            full_text_url=raw.get("html_url") or raw.get("pdf_url"),
            document_number=raw.get("document_number"),
            date_signed=parse_datetime(raw.get("signing_date")),
            issuer=(raw.get("president") or {}).get("name"),
            topics=raw.get("topics") or [],
        )

    async def write(self, record: ExecutiveOrderRecord, existing: Optional[ExecutiveOrderRecord]) -> bool:
        return await self.store.upsert_executive_order(record)
