"""
Pipeline-wide constants.

API endpoints, jurisdiction ids, collection names and page sizes live here.
"""
from datetime import datetime

# API Base URLs
OPENSTATES_BASE_URL = "https://v3.openstates.org"
CONGRESS_GOV_BASE_URL = "https://api.congress.gov/v3"
FEDERAL_REGISTER_BASE_URL = "https://www.federalregister.gov/api/v1"

# Public pages linked from stored records
CONGRESS_GOV_WEB_URL = "https://www.congress.gov/bill"

# The 50 states, in the order state partitions are processed
US_STATES = [
    "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA",
    "HI", "ID", "IL", "IN", "IA", "KS", "KY", "LA", "ME", "MD",
    "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH", "NJ",
    "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC",
    "SD", "TN", "TX", "UT", "VT", "VA", "WA", "WV", "WI", "WY",
]


def state_jurisdiction_id(state_code: str) -> str:
    """OpenStates OCD jurisdiction id for a two-letter state code."""
    return f"ocd-jurisdiction/country:us/state:{state_code.lower()}/government"


# Congress numbers - calculated dynamically
# Congress number = ((current_year - 1789) // 2) + 1
def _calculate_current_congress() -> int:
    """Calculate the current Congress number based on today's date."""
    current_year = datetime.now().year
    return ((current_year - 1789) // 2) + 1


CURRENT_CONGRESS = _calculate_current_congress()

# Sessions walked by the historical backfill, newest first
HISTORICAL_CONGRESSES = [119, 118, 117, 116]
LATEST_HISTORICAL_CONGRESS = HISTORICAL_CONGRESSES[0]

# MongoDB Collection Names
COLLECTION_LEGISLATION = "legislation"
COLLECTION_EXECUTIVE_ORDERS = "executive_orders"
COLLECTION_VOTES = "votes"
COLLECTION_LEGISLATORS = "legislators"

# Page sizes
OPENSTATES_PAGE_SIZE = 20
CONGRESS_DAILY_PAGE_SIZE = 20
CONGRESS_HISTORICAL_PAGE_SIZE = 250
FEDERAL_REGISTER_PAGE_SIZE = 100

# Daily congress sweep stops after this many rows
CONGRESS_DAILY_MAX_OFFSET = 500

# Executive orders: look back this far before the watermark
EXECUTIVE_ORDER_LOOKBACK_DAYS = 7
EXECUTIVE_ORDER_DAILY_MAX_PAGES = 5
EXECUTIVE_ORDER_MAX_PAGES = 100

# Records processed concurrently per batch
RECORD_BATCH_SIZE = 10

# Historical backfill pacing (seconds)
SESSION_DELAY = 2.0
RESTART_DELAY = 3600.0
MAX_BACKFILL_RESTARTS = 24

# Checkpoint files, relative to settings.DATA_DIR
WATERMARK_FILE = "daily_update_state.json"
CHECKPOINT_FILES = {
    "openstates-bills": "state-update-progress.json",
    "congress-bills": "congress-update-progress.json",
    "congress-historical": "congress-scraper-progress.json",
    "executive-orders": "executive-orders-progress.json",
    "openstates-votes": "state-votes-progress.json",
    "openstates-people": "state-legislators-progress.json",
}
