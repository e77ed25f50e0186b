"""
Data Normalization Module

Centralized helpers that turn raw upstream values into the shapes stored in
MongoDB. Every source adapter goes through these so dates, ids and state
codes are consistent across sources.

Usage:
    from statepulse.database.normalization import parse_datetime, congress_bill_id

    bill_id = congress_bill_id(119, "HR", "1234")
    introduced = parse_datetime(raw["introducedDate"])
"""
import re
from datetime import date, datetime, timezone
from typing import Any, Iterable, Optional


# ============================================================================
# Timestamps
# ============================================================================

def utcnow() -> datetime:
    """Current time as a naive UTC datetime (the form stored in Mongo)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse an upstream date or timestamp into a naive UTC datetime.

    Args:
        value: ISO-8601 string ("2025-03-04", "2025-03-04T10:00:00Z"),
            date, datetime or None

    Returns:
        Naive UTC datetime, or None when the value is empty or unparseable

    Examples:
        >>> parse_datetime("2025-03-04")
        datetime(2025, 3, 4, 0, 0)
        >>> parse_datetime("2025-03-04T10:00:00-05:00")
        datetime(2025, 3, 4, 15, 0)
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_since(value: Optional[str]) -> Optional[datetime]:
    """Parse a watermark string, tolerating a trailing 'Z'."""
    return parse_datetime(value.rstrip("Z")) if value else None


# ============================================================================
# State Normalization
# ============================================================================

STATE_NAME_TO_CODE = {
    "Alabama": "AL", "Alaska": "AK", "Arizona": "AZ", "Arkansas": "AR",
    "California": "CA", "Colorado": "CO", "Connecticut": "CT", "Delaware": "DE",
    "Florida": "FL", "Georgia": "GA", "Hawaii": "HI", "Idaho": "ID",
    "Illinois": "IL", "Indiana": "IN", "Iowa": "IA", "Kansas": "KS",
    "Kentucky": "KY", "Louisiana": "LA", "Maine": "ME", "Maryland": "MD",
    "Massachusetts": "MA", "Michigan": "MI", "Minnesota": "MN", "Mississippi": "MS",
    "Missouri": "MO", "Montana": "MT", "Nebraska": "NE", "Nevada": "NV",
    "New Hampshire": "NH", "New Jersey": "NJ", "New Mexico": "NM", "New York": "NY",
    "North Carolina": "NC", "North Dakota": "ND", "Ohio": "OH", "Oklahoma": "OK",
    "Oregon": "OR", "Pennsylvania": "PA", "Rhode Island": "RI", "South Carolina": "SC",
    "South Dakota": "SD", "Tennessee": "TN", "Texas": "TX", "Utah": "UT",
    "Vermont": "VT", "Virginia": "VA", "Washington": "WA", "West Virginia": "WV",
    "Wisconsin": "WI", "Wyoming": "WY",
    "District of Columbia": "DC", "Puerto Rico": "PR"
}

STATE_CODE_TO_NAME = {v: k for k, v in STATE_NAME_TO_CODE.items()}


def normalize_state(state: Optional[str]) -> Optional[str]:
    """
    Normalize a state name or code to its 2-letter code.

    Examples:
        >>> normalize_state("Utah")
        "UT"
        >>> normalize_state("ut")
        "UT"
        >>> normalize_state("Narnia")
        None
    """
    if not state:
        return None

    state_clean = state.strip()

    if len(state_clean) == 2:
        code = state_clean.upper()
        return code if code in STATE_CODE_TO_NAME else None

    for full_name, code in STATE_NAME_TO_CODE.items():
        if full_name.lower() == state_clean.lower():
            return code

    return None


# ============================================================================
# Identifiers
# ============================================================================

_OPENSTATES_BILL_ID = re.compile(r"^ocd-bill/[0-9a-f]+-(.+)$", re.IGNORECASE)


def congress_bill_id(congress: Any, bill_type: str, number: Any) -> str:
    """
    Canonical id for a federal bill.

    Examples:
        >>> congress_bill_id(119, "HR", "1234")
        "congress-bill-119-hr-1234"
    """
    return f"congress-bill-{congress}-{str(bill_type).lower()}-{number}"


def openstates_display_id(ocd_id: Optional[str]) -> Optional[str]:
    """
    URL-safe form of an OpenStates bill id.

    Returns None when the id does not look like an OCD bill id, which
    callers treat as a malformed record.

    Examples:
        >>> openstates_display_id("ocd-bill/0a1b2c3d-4e5f-6789-abcd-ef0123456789")
        "ocd-bill_4e5f-6789-abcd-ef0123456789"
    """
    if not ocd_id:
        return None
    match = _OPENSTATES_BILL_ID.match(ocd_id.strip())
    if not match:
        return None
    return f"ocd-bill_{match.group(1)}"


def jurisdiction_slug(jurisdiction: str) -> str:
    """Lowercase, dash-separated form of a jurisdiction name."""
    return re.sub(r"[^a-z0-9]+", "-", jurisdiction.lower()).strip("-")


# ============================================================================
# Legislation helpers
# ============================================================================

ENACTED_PATTERNS = [
    re.compile(r"became public law", re.IGNORECASE),
    re.compile(r"\bpublic law no\b", re.IGNORECASE),
    re.compile(r"signed by (the )?(governor|president)", re.IGNORECASE),
    re.compile(r"approved by (the )?governor", re.IGNORECASE),
    re.compile(r"\bbecame law\b", re.IGNORECASE),
    re.compile(r"\bchaptered\b", re.IGNORECASE),
    re.compile(r"\benacted\b", re.IGNORECASE),
]


def is_enacted_action(action_text: Optional[str]) -> bool:
    """True if a history action text records the bill becoming law."""
    text = (action_text or "").strip()
    if not text:
        return False
    return any(pattern.search(text) for pattern in ENACTED_PATTERNS)


def first_text(values: Iterable[Any]) -> Optional[str]:
    """First non-empty string in values, stripped."""
    for value in values:
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None
