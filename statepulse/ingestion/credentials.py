"""
API key rotation for throttled upstreams.

Each source gets its own CredentialRotator. Rotation only moves forward:
once the last key is in use, further throttling is logged and ignored.
"""
import logging
from typing import Sequence

from statepulse.ingestion.errors import MissingCredentials

logger = logging.getLogger(__name__)


class CredentialRotator:
    """Ordered pool of API keys with a consecutive-throttle counter."""

    def __init__(self, keys: Sequence[str], source: str, threshold: int = 2):
        self.keys = [k for k in keys if k]
        self.source = source
        self.threshold = threshold
        self.index = 0
        self.consecutive_throttles = 0

    def require(self) -> "CredentialRotator":
        """Raise MissingCredentials if no key is configured."""
        if not self.keys:
            raise MissingCredentials(f"No API key configured for {self.source}")
        return self

    def current(self) -> str:
        return self.keys[self.index] if self.keys else ""

    @property
    def exhausted(self) -> bool:
        return self.index >= len(self.keys) - 1

    def on_throttle(self) -> None:
        self.consecutive_throttles += 1
        if self.consecutive_throttles < self.threshold:
            return

        if not self.exhausted:
            self.index += 1
            logger.warning(
                f"{self.source}: rotating to backup key "
                f"{self.index + 1}/{len(self.keys)} after {self.consecutive_throttles} throttled requests"
            )
        else:
            logger.warning(f"{self.source}: all {len(self.keys)} API keys are rate limited")
        self.consecutive_throttles = 0

    def on_success(self) -> None:
        self.consecutive_throttles = 0

    def __repr__(self) -> str:
        return f"CredentialRotator({self.source!r}, key {self.index + 1}/{len(self.keys)})"
