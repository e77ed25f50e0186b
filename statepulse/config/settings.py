"""
Application settings using Pydantic Settings.

Environment variables are loaded from .env file.
"""
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Pipeline configuration loaded from environment variables.

    Create a .env file in the project root with these values.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # ========================================================================
    # Database
    # ========================================================================
    MONGODB_URI: str = "mongodb://localhost:27017"
    MONGODB_DATABASE: str = "statepulse"

    # ========================================================================
    # Upstream credentials (primary + numbered backups)
    # ========================================================================

    # OpenStates v3 (https://open.pluralpolicy.com/accounts/profile/)
    OPENSTATES_API_KEY: Optional[str] = None
    OPENSTATES_API_KEY_BACKUP_1: Optional[str] = None
    OPENSTATES_API_KEY_BACKUP_2: Optional[str] = None

    # Congress.gov (get key at: https://api.congress.gov/sign-up/)
    US_CONGRESS_API_KEY: Optional[str] = None
    US_CONGRESS_API_KEY_BACKUP_1: Optional[str] = None
    US_CONGRESS_API_KEY_BACKUP_2: Optional[str] = None

    @property
    def openstates_api_keys(self) -> list[str]:
        """Configured OpenStates keys in rotation order"""
        return _present(
            self.OPENSTATES_API_KEY,
            self.OPENSTATES_API_KEY_BACKUP_1,
            self.OPENSTATES_API_KEY_BACKUP_2,
        )

    @property
    def congress_api_keys(self) -> list[str]:
        """Configured Congress.gov keys in rotation order"""
        return _present(
            self.US_CONGRESS_API_KEY,
            self.US_CONGRESS_API_KEY_BACKUP_1,
            self.US_CONGRESS_API_KEY_BACKUP_2,
        )

    # Summary model (consumed by the summarizer job, not by ingestion)
    SUMMARY_MODEL_ENDPOINT: Optional[str] = None
    SUMMARY_MODEL_API_KEY: Optional[str] = None

    # ========================================================================
    # Ingestion behaviour
    # ========================================================================
    DATA_DIR: Path = Path("data")

    # Watermark used when no previous run has been recorded
    DEFAULT_SINCE: str = "2026-01-01"

    # Overrides the watermark for standalone state runs
    UPDATED_SINCE: Optional[str] = None

    HTTP_TIMEOUT: float = 60.0
    PAGE_DELAY_SECONDS: float = 0.5
    BATCH_DELAY_SECONDS: float = 0.1
    THROTTLE_DELAY_SECONDS: float = 120.0
    MAX_CONSECUTIVE_THROTTLES: int = 5
    ROTATION_THRESHOLD: int = 2
    EARLY_EXIT_RATIO: float = 0.75

    # ========================================================================
    # Logging
    # ========================================================================
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _present(*keys: Optional[str]) -> list[str]:
    return [k.strip() for k in keys if k and k.strip()]


# Singleton instance
settings = Settings()
