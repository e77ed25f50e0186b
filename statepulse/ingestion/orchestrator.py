"""
Runs every source adapter once, in order, isolating failures per source.

The watermark is advanced at the end of every run attempt, even when some
sources failed. A source interrupted mid-sweep keeps its checkpoint, and
its next run resumes over the interrupted window rather than the newer
watermark. The watermark is kept when no source did any work.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, List, Optional, Sequence, Union

from statepulse.ingestion.base import SourceAdapter
from statepulse.ingestion.checkpoint import WatermarkStore
from statepulse.ingestion.errors import RateLimited

logger = logging.getLogger(__name__)


@dataclass
class Completed:
    stats: dict = field(default_factory=dict)


@dataclass
class CompletedWithErrors:
    errors: List[str]
    stats: dict = field(default_factory=dict)


@dataclass
class Failed:
    reason: str
    stats: dict = field(default_factory=dict)


SourceResult = Union[Completed, CompletedWithErrors, Failed]


@dataclass
class RunReport:
    since: str
    results: Dict[str, SourceResult] = field(default_factory=dict)
    watermark_advanced: bool = False
    watermark: Optional[str] = None

    @property
    def failed(self) -> List[str]:
        return [name for name, r in self.results.items() if isinstance(r, Failed)]

    @property
    def with_errors(self) -> List[str]:
        return [name for name, r in self.results.items() if isinstance(r, CompletedWithErrors)]

    @property
    def succeeded(self) -> List[str]:
        return [name for name, r in self.results.items() if isinstance(r, Completed)]


def _made_progress(result: SourceResult) -> bool:
    return result.stats.get("processed", 0) > 0 or not isinstance(result, Failed)


class Orchestrator:
    """
    Sequential runner for a set of source adapters sharing one watermark.

    Args:
        adapters: Adapters in run order
        watermarks: Where the last run date is kept
        today: Returns the date recorded as the new watermark
    """

    def __init__(
        self,
        adapters: Sequence[SourceAdapter],
        watermarks: WatermarkStore,
        today: Callable[[], date] = date.today,
    ):
        self.adapters = list(adapters)
        self.watermarks = watermarks
        self.today = today

    async def run_adapter(self, adapter: SourceAdapter, since: str) -> SourceResult:
        try:
            stats = await adapter.run(since=since)
        except RateLimited:
            # Checkpoint already saved; the next run resumes from it
            return CompletedWithErrors(errors=list(adapter.errors), stats=dict(adapter.stats))
        except Exception as e:
            logger.error(f"{adapter.source_id} failed: {e}", exc_info=True)
            return Failed(reason=f"{e.__class__.__name__}: {e}", stats=dict(adapter.stats))

        if adapter.errors:
            return CompletedWithErrors(errors=list(adapter.errors), stats=dict(stats))
        return Completed(stats=dict(stats))

    async def run_once(self, since: Optional[str] = None) -> RunReport:
        """
        Run every adapter once over the window starting at `since`.

        Args:
            since: ISO date; defaults to the stored watermark

        Returns:
            RunReport with one result per adapter
        """
        since = since or self.watermarks.load().last_run_date
        report = RunReport(since=since)
        logger.info(f"=== Run starting, baseline {since} ===")

        for adapter in self.adapters:
            result = await self.run_adapter(adapter, since)
            report.results[adapter.source_id] = result
            if isinstance(result, Failed):
                logger.error(f"❌ {adapter.source_id} failed: {result.reason}")
            elif isinstance(result, CompletedWithErrors):
                logger.warning(f"⚠️  {adapter.source_id} completed with {len(result.errors)} error(s)")
            else:
                logger.info(f"✅ {adapter.source_id} completed")

        if not report.results:
            logger.warning("No source ran; keeping watermark")
        elif not any(_made_progress(r) for r in report.results.values()):
            logger.error("Every source failed before making progress; keeping watermark")
        else:
            report.watermark = self.today().isoformat()
            self.watermarks.save(report.watermark)
            report.watermark_advanced = True

        return report
