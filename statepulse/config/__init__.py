"""Config module - settings and constants."""

from statepulse.config.settings import settings
from statepulse.config.constants import (
    CONGRESS_GOV_BASE_URL,
    CURRENT_CONGRESS,
    FEDERAL_REGISTER_BASE_URL,
    OPENSTATES_BASE_URL,
    US_STATES,
)

__all__ = [
    "settings",
    "CONGRESS_GOV_BASE_URL",
    "CURRENT_CONGRESS",
    "FEDERAL_REGISTER_BASE_URL",
    "OPENSTATES_BASE_URL",
    "US_STATES",
]
