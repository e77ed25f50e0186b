"""
Base source adapter.

Every upstream is swept the same way: partitions (states, congress sessions)
are paged through in order, each page's records are processed in small
concurrent batches, and progress is checkpointed after every page so a
restart resumes at the next unprocessed page.

Subclasses describe the upstream (how to request and parse a page) and the
record type (how to identify, look up, build and write one record).
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, Sequence, Tuple, TypeVar

from pydantic import ValidationError

from statepulse.config.constants import RECORD_BATCH_SIZE
from statepulse.config.settings import settings
from statepulse.database.normalization import parse_since, utcnow
from statepulse.database.store import LegislationStore
from statepulse.ingestion.checkpoint import CheckpointStore
from statepulse.ingestion.errors import ExhaustedRetries, MalformedRecord, RateLimited
from statepulse.ingestion.fetcher import RateLimitedFetcher, Sleep
from statepulse.models.checkpoint import Partition, RunCheckpoint

T = TypeVar("T")

INSERTED = "inserted"
UPDATED = "updated"
FILTERED = "filtered"


@dataclass
class Page:
    """One page of upstream records and where the next page starts."""
    records: List[dict] = field(default_factory=list)
    next_cursor: Optional[int] = None


def window_covers(window: Optional[str], since: Optional[str]) -> bool:
    """Whether a sweep since `window` sees everything a sweep since `since` would."""
    if window is None:
        return True
    if since is None:
        return False
    return parse_since(window) <= parse_since(since)


class SourceAdapter(ABC, Generic[T]):
    """
    Partitioned, resumable sweep over one upstream source.

    Per partition: fetch page -> process records -> save checkpoint -> next
    page, until the upstream runs out of pages, a page is mostly older than
    the watermark, or a page fails. Rate limiting unwinds the whole run
    after the checkpoint is saved.

    A checkpoint left by an interrupted run is resumed over its own window
    when that window is at least as wide as the requested one. Once its
    unfinished partitions are done, the partitions it had already completed
    are swept again from the day that interrupted sweep started.
    """

    source_id: str = ""
    batch_size: int = RECORD_BATCH_SIZE
    page_delay: float = settings.PAGE_DELAY_SECONDS
    batch_delay: float = settings.BATCH_DELAY_SECONDS
    partition_delay: float = 0.0
    # Stop paging once more than this share of a page predates the watermark
    early_exit_ratio: Optional[float] = settings.EARLY_EXIT_RATIO
    # Fields copied from the stored record onto the rebuilt one
    preserved_fields: Tuple[str, ...] = ("created_at",)

    def __init__(
        self,
        store: LegislationStore,
        fetcher: RateLimitedFetcher,
        checkpoints: CheckpointStore,
        sleep: Sleep = asyncio.sleep,
    ):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.store = store
        self.fetcher = fetcher
        self.checkpoints = checkpoints
        self.sleep = sleep
        self.since: Optional[datetime] = None
        self.since_text: Optional[str] = None
        self.checkpoint: Optional[RunCheckpoint] = None
        self.errors: List[str] = []
        self.swept: List[Partition] = []
        self.reset_stats()

    # ========================================================================
    # Upstream description
    # ========================================================================

    @abstractmethod
    def partitions(self) -> List[Partition]:
        """All partitions of a full sweep, in processing order."""

    def first_cursor(self, partition: Partition) -> int:
        """Cursor of the first page (page number or offset)."""
        return 1

    @abstractmethod
    def page_request(self, partition: Partition, cursor: int) -> Tuple[str, Dict[str, Any]]:
        """URL and query parameters for one page (without credentials)."""

    @abstractmethod
    def parse_page(self, partition: Partition, cursor: int, payload: Any) -> Page:
        """Records of a page and the cursor of the next one."""

    # ========================================================================
    # Record handling
    # ========================================================================

    @abstractmethod
    def record_id(self, raw: dict) -> str:
        """Canonical id of a raw record. Raises MalformedRecord."""

    def updated_at(self, raw: dict) -> Optional[datetime]:
        """Upstream last-modified time, or None if the source has none."""
        return None

    @abstractmethod
    async def lookup(self, record_id: str) -> Optional[T]:
        """The stored record with this id, if any."""

    async def expand(self, raw: dict, existing: Optional[T]) -> dict:
        """Fetch whatever else is needed to judge and build the record."""
        return raw

    @abstractmethod
    async def accept_new(self, raw: dict) -> bool:
        """Whether a record not yet stored should be admitted."""

    @abstractmethod
    async def build(self, raw: dict, existing: Optional[T]) -> T:
        """Map the raw record to the stored model."""

    @abstractmethod
    async def write(self, record: T, existing: Optional[T]) -> bool:
        """Persist the record. Returns True if it was inserted."""

    def preserve(self, record: T, existing: Optional[T]) -> T:
        """Carry preserved fields over from the stored record."""
        if existing is not None:
            for name in self.preserved_fields:
                setattr(record, name, getattr(existing, name))
        return record

    # ========================================================================
    # Stats
    # ========================================================================

    def reset_stats(self):
        """Reset statistics counters"""
        self.stats = {
            "processed": 0,
            "inserted": 0,
            "updated": 0,
            "filtered": 0,
            "old": 0,
            "malformed": 0,
            "errors": 0,
            "started_at": None,
            "completed_at": None,
        }

    def record_error(self, message: str) -> None:
        self.errors.append(message)
        self.logger.error(message)

    def _sync_counters(self) -> None:
        counters = self.checkpoint.counters
        counters.processed = self.stats["processed"]
        counters.inserted = self.stats["inserted"]
        counters.updated = self.stats["updated"]
        counters.skipped = self.stats["filtered"] + self.stats["old"] + self.stats["malformed"]
        counters.errors = self.stats["errors"]

    def save_checkpoint(self) -> None:
        self.checkpoint.timestamp = utcnow()
        self._sync_counters()
        self.checkpoints.save(self.checkpoint)

    # ========================================================================
    # Sweep
    # ========================================================================

    def is_old(self, raw: dict) -> bool:
        if self.since is None:
            return False
        updated = self.updated_at(raw)
        return updated is not None and updated < self.since

    async def process_record(self, raw: dict) -> str:
        """
        Process one upstream record.

        Existing records are always rebuilt and written. New records are
        written only if accept_new admits them.
        """
        self.stats["processed"] += 1
        record_id = self.record_id(raw)
        existing = await self.lookup(record_id)
        raw = await self.expand(raw, existing)

        if existing is None and not await self.accept_new(raw):
            self.logger.debug(f"Skipping {record_id}: not relevant")
            return FILTERED

        try:
            record = self.preserve(await self.build(raw, existing), existing)
        except ValidationError as e:
            raise MalformedRecord(f"{record_id}: {e.error_count()} invalid field(s)") from e
        inserted = await self.write(record, existing)
        if inserted:
            self.logger.info(f"[NEW] {record_id}")
        return INSERTED if inserted else UPDATED

    async def process_records(self, records: Sequence[dict]) -> int:
        """
        Process records in concurrent batches.

        Returns:
            Number of records that failed

        Raises:
            RateLimited: any record in a batch was rate limited
        """
        failures = 0
        for start in range(0, len(records), self.batch_size):
            if start:
                await self.sleep(self.batch_delay)
            batch = records[start:start + self.batch_size]
            results = await asyncio.gather(
                *(self.process_record(raw) for raw in batch),
                return_exceptions=True,
            )

            rate_limited: Optional[RateLimited] = None
            for result in results:
                if isinstance(result, RateLimited):
                    rate_limited = result
                elif isinstance(result, MalformedRecord):
                    self.stats["malformed"] += 1
                    self.logger.warning(f"Skipping malformed record: {result}")
                elif isinstance(result, Exception):
                    failures += 1
                    self.stats["errors"] += 1
                    self.logger.error(f"Error processing record: {result}", exc_info=result)
                elif isinstance(result, BaseException):
                    raise result
                else:
                    self.stats[result] += 1

            if rate_limited is not None:
                raise rate_limited

        return failures

    async def run_partition(self, partition: Partition, cursor: Optional[int]) -> bool:
        """
        Page through one partition starting at cursor.

        Returns:
            True if the partition finished cleanly, False if it stopped on
            an error (already recorded)
        """
        while cursor is not None:
            url, params = self.page_request(partition, cursor)
            try:
                response = await self.fetcher.fetch(url, params)
            except ExhaustedRetries as e:
                self.record_error(f"{self.source_id} {partition}: {e}")
                return False

            if response.status_code == 404:
                self.logger.debug(f"{partition}: no page at {cursor}")
                return True
            if not response.is_success:
                self.record_error(
                    f"{self.source_id} {partition}: HTTP {response.status_code} fetching page {cursor}"
                )
                return False

            try:
                page = self.parse_page(partition, cursor, response.json())
            except (ValueError, KeyError, TypeError) as e:
                self.record_error(f"{self.source_id} {partition}: unreadable page {cursor}: {e}")
                return False

            if not page.records:
                return True

            fresh = [raw for raw in page.records if not self.is_old(raw)]
            old = len(page.records) - len(fresh)
            self.stats["old"] += old

            failures = await self.process_records(fresh)
            if failures:
                self.record_error(
                    f"{self.source_id} {partition}: {failures} record(s) failed on page {cursor}; "
                    f"stopping so the page is retried"
                )
                return False

            self.logger.info(
                f"{partition} page {cursor}: {len(fresh)} processed, {old} older than watermark"
            )

            if self.early_exit_ratio is not None and old / len(page.records) > self.early_exit_ratio:
                self.logger.info(f"{partition}: page {cursor} is mostly old, stopping early")
                return True

            cursor = page.next_cursor
            if cursor is not None:
                self.checkpoint.cursor_position = cursor
                self.save_checkpoint()
                await self.sleep(self.page_delay)

        return True

    def _set_window(self, since: Optional[str]) -> None:
        self.since_text = since
        self.since = parse_since(since)

    def _load_checkpoint(self, since: Optional[str], ignore_completed: bool) -> RunCheckpoint:
        checkpoint = self.checkpoints.load(self.source_id)
        if checkpoint is not None and not window_covers(checkpoint.last_updated_watermark, since):
            self.logger.info(
                f"Discarding checkpoint for window {checkpoint.last_updated_watermark}, "
                f"now running since {since}"
            )
            checkpoint = None

        if checkpoint is None:
            return RunCheckpoint(
                source_id=self.source_id,
                last_updated_watermark=since,
                sweep_started=self.stats["started_at"],
            )

        self.logger.info(
            f"Resuming {self.source_id} since {checkpoint.last_updated_watermark}: "
            f"{len(checkpoint.completed_partitions)} partitions done, "
            f"current {checkpoint.current_partition} at {checkpoint.cursor_position}"
        )
        if ignore_completed:
            checkpoint.completed_partitions = []
        return checkpoint

    def stale_partitions(self, partitions: Sequence[Partition]) -> List[Partition]:
        """Partitions completed by an earlier run of a checkpointed window."""
        if self.checkpoint.last_updated_watermark is None:
            return []
        if self.checkpoint.sweep_started == self.stats["started_at"]:
            return []
        return [p for p in partitions if self.checkpoint.is_completed(p) and p not in self.swept]

    def _begin_catch_up(self, requested: str, stale: Sequence[Partition]) -> None:
        window = requested
        if self.checkpoint.sweep_started is not None:
            window = min(requested, self.checkpoint.sweep_started.date().isoformat(), key=parse_since)

        self.logger.info(
            f"Window {self.since_text} caught up; sweeping {len(stale)} partition(s) "
            f"finished before the interruption since {window}"
        )
        self.checkpoint = RunCheckpoint(
            source_id=self.source_id,
            last_updated_watermark=window,
            sweep_started=self.stats["started_at"],
            completed_partitions=list(self.swept),
        )
        self._set_window(window)
        self.save_checkpoint()

    async def sweep(self, partitions: Sequence[Partition]) -> List[Partition]:
        """
        Run every partition the checkpoint does not mark completed.

        Returns:
            Partitions that stopped on an error
        """
        failed = []
        for index, partition in enumerate(partitions):
            if self.checkpoint.is_completed(partition):
                self.logger.info(f"Skipping {partition}: already completed")
                continue
            if index and self.partition_delay:
                await self.sleep(self.partition_delay)

            if self.checkpoint.current_partition == partition:
                cursor = self.checkpoint.cursor_position
            else:
                cursor = self.first_cursor(partition)
                self.checkpoint.current_partition = partition
                self.checkpoint.cursor_position = cursor

            self.logger.info(f"Processing {partition} from {cursor}")
            if await self.run_partition(partition, cursor):
                self.checkpoint.mark_completed(partition)
                self.swept.append(partition)
            else:
                failed.append(partition)
            self.checkpoint.current_partition = None
            self.checkpoint.cursor_position = 0
            self.save_checkpoint()

        return failed

    async def run(
        self,
        since: Optional[str] = None,
        only: Optional[Sequence[Partition]] = None,
        ignore_completed: bool = False,
    ) -> dict:
        """
        Sweep partitions, resuming from any saved checkpoint.

        The checkpoint is kept while any partition failed, so the next run
        retries it over the same window.

        Args:
            since: Watermark (ISO date) bounding the sweep
            only: Restrict the sweep to these partitions
            ignore_completed: Revisit partitions the checkpoint marks done

        Returns:
            Statistics dict with counts and timing

        Raises:
            RateLimited: after the checkpoint has been saved
        """
        self.reset_stats()
        self.errors = []
        self.swept = []
        self.stats["started_at"] = utcnow()
        self.checkpoint = self._load_checkpoint(since, ignore_completed)
        self._set_window(self.checkpoint.last_updated_watermark)
        partitions = list(only or self.partitions())
        failed: List[Partition] = []

        self.logger.info(f"Starting {self.source_id} (since {self.since_text or 'the beginning'})...")

        try:
            failed = await self.sweep(partitions)
            stale = self.stale_partitions(partitions)
            if not failed and only is None and stale:
                self._begin_catch_up(since, stale)
                failed = await self.sweep(partitions)

        except RateLimited as e:
            self.record_error(f"{self.source_id}: {e}; progress saved")
            self.save_checkpoint()
            raise

        finally:
            self.stats["completed_at"] = utcnow()
            duration = self.stats["completed_at"] - self.stats["started_at"]
            self.logger.info(
                f"{self.source_id} finished. "
                f"Processed: {self.stats['processed']}, "
                f"Inserted: {self.stats['inserted']}, "
                f"Updated: {self.stats['updated']}, "
                f"Filtered: {self.stats['filtered']}, "
                f"Errors: {self.stats['errors']}, "
                f"Duration: {duration}"
            )

        remaining = [p for p in self.partitions() if not self.checkpoint.is_completed(p)]
        if failed:
            self.logger.warning(
                f"Keeping checkpoint; {', '.join(map(str, failed))} will be retried "
                f"since {self.since_text}"
            )
        elif not remaining and not self.stale_partitions(self.partitions()):
            self.checkpoints.clear(self.source_id)

        return self.stats
