"""
Run progress models.

Serialized to small JSON files so an interrupted run can resume at the
exact page it stopped on.
"""
from datetime import datetime
from typing import List, Optional, Union

from pydantic import Field

from statepulse.database.normalization import utcnow
from statepulse.models.legislation import StoredModel

Partition = Union[int, str]


class RunCounters(StoredModel):
    processed: int = 0
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    errors: int = 0


class RunCheckpoint(StoredModel):
    """
    Resume position for one source adapter.

    `cursor_position` is the next page (or offset) to fetch within
    `current_partition`. Partitions not yet completed still need the window
    starting at `last_updated_watermark`; completed ones are current as of
    `sweep_started`.
    """

    source_id: str
    current_partition: Optional[Partition] = None
    cursor_position: int = 0
    last_updated_watermark: Optional[str] = None
    sweep_started: Optional[datetime] = None
    completed_partitions: List[Partition] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=utcnow)
    counters: RunCounters = Field(default_factory=RunCounters)

    def is_completed(self, partition: Partition) -> bool:
        return partition in self.completed_partitions

    def mark_completed(self, partition: Partition) -> None:
        if partition not in self.completed_partitions:
            self.completed_partitions.append(partition)


class GlobalWatermark(StoredModel):
    """Date of the last run attempt, bounding the next run's "since" queries."""

    last_run_date: str = Field(..., description="ISO date, e.g. 2026-01-01")
