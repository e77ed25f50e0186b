"""
Shared paging for OpenStates v3 endpoints.

Every OpenStates sweep is partitioned by state and paged with
`page`/`per_page`, stopping at `pagination.max_page`.
"""
from typing import Any, Dict, List, Optional, Sequence, Tuple

from statepulse.config.constants import (
    OPENSTATES_BASE_URL,
    OPENSTATES_PAGE_SIZE,
    US_STATES,
    state_jurisdiction_id,
)
from statepulse.database.normalization import parse_datetime
from statepulse.ingestion.base import Page, SourceAdapter, T
from statepulse.models.checkpoint import Partition

# OpenStates takes the API key as a query parameter named `apikey`
KEY_PARAM = "apikey"


class OpenStatesAdapter(SourceAdapter[T]):
    """Sweep of one OpenStates endpoint, one partition per state."""

    endpoint = "/bills"
    per_page = OPENSTATES_PAGE_SIZE
    includes: Tuple[str, ...] = ()
    # /people has no updated_since filter or update ordering
    incremental = True

    def __init__(self, *args, states: Optional[Sequence[str]] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.states = [s.upper() for s in states] if states else list(US_STATES)

    def partitions(self) -> List[Partition]:
        return list(self.states)

    def page_request(self, partition: Partition, cursor: int) -> Tuple[str, Dict[str, Any]]:
        params: Dict[str, Any] = {
            "jurisdiction": state_jurisdiction_id(str(partition)),
            "page": cursor,
            "per_page": self.per_page,
        }
        if self.incremental:
            params["sort"] = "updated_desc"
            if self.since_text:
                params["updated_since"] = self.since_text
        if self.includes:
            params["include"] = list(self.includes)
        return f"{OPENSTATES_BASE_URL}{self.endpoint}", params

    def parse_page(self, partition: Partition, cursor: int, payload: Any) -> Page:
        results = payload.get("results") or []
        pagination = payload.get("pagination") or {}
        page = pagination.get("page", cursor)
        max_page = pagination.get("max_page", page)
        next_cursor = cursor + 1 if page < max_page else None
        return Page(records=self.flatten(results), next_cursor=next_cursor)

    def flatten(self, results: List[dict]) -> List[dict]:
        """Turn a page of results into the records to process."""
        return results

    def updated_at(self, raw: dict):
        return parse_datetime(raw.get("updated_at")) if self.incremental else None

