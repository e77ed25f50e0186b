"""
Daily incremental update across every source.

Runs each source once over the window since the last run, isolating
failures per source, then advances the watermark.

Usage:
    statepulse-daily                                   # Run everything
    statepulse-daily --from-date 2026-02-01            # Override the watermark
    statepulse-daily --only congress-bills,openstates-bills
    statepulse-daily --dry-run                         # See what would run
"""
import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable, Dict, List, Optional

from statepulse.config.constants import EXECUTIVE_ORDER_DAILY_MAX_PAGES
from statepulse.ingestion.base import SourceAdapter
from statepulse.ingestion.congress_bills import CongressBillsAdapter
from statepulse.ingestion.errors import MissingCredentials
from statepulse.ingestion.executive_orders import ExecutiveOrdersAdapter
from statepulse.ingestion.openstates_bills import StateBillsAdapter
from statepulse.ingestion.orchestrator import CompletedWithErrors, Failed, Orchestrator, RunReport
from statepulse.ingestion.state_legislators import StateLegislatorsAdapter
from statepulse.ingestion.state_votes import StateVotesAdapter
from statepulse.pipelines.common import (
    PipelineContext,
    configure_logging,
    congress_fetcher,
    federal_register_fetcher,
    open_pipeline,
    openstates_fetcher,
    print_banner,
    print_stats,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Source Definitions
# ============================================================================

@dataclass
class Source:
    """One daily source and how to build its adapter."""
    description: str
    build: Callable[[PipelineContext], SourceAdapter]


# Run order matters: votes are only kept for bills already stored
SOURCES: Dict[str, Source] = {
    "executive-orders": Source(
        description="Federal executive orders (Federal Register)",
        build=lambda ctx: ExecutiveOrdersAdapter(
            ctx.store, federal_register_fetcher(ctx.client), ctx.checkpoints,
            max_pages=EXECUTIVE_ORDER_DAILY_MAX_PAGES,
        ),
    ),
    "congress-bills": Source(
        description="Recently updated bills in the current Congress",
        build=lambda ctx: CongressBillsAdapter(ctx.store, congress_fetcher(ctx.client), ctx.checkpoints),
    ),
    "openstates-bills": Source(
        description="State bills updated since the last run",
        build=lambda ctx: StateBillsAdapter(ctx.store, openstates_fetcher(ctx.client), ctx.checkpoints),
    ),
    "openstates-votes": Source(
        description="Roll call votes on tracked state bills",
        build=lambda ctx: StateVotesAdapter(ctx.store, openstates_fetcher(ctx.client), ctx.checkpoints),
    ),
    "openstates-people": Source(
        description="Current state legislators",
        build=lambda ctx: StateLegislatorsAdapter(ctx.store, openstates_fetcher(ctx.client), ctx.checkpoints),
    ),
}


def select_sources(only: Optional[List[str]] = None, skip: Optional[List[str]] = None) -> List[str]:
    """Source names to run, in run order."""
    names = [name for name in SOURCES if not only or name in only]
    return [name for name in names if not skip or name not in skip]


def build_adapters(ctx: PipelineContext, names: List[str]) -> tuple[List[SourceAdapter], Dict[str, str]]:
    """
    Build adapters for the named sources.

    Sources without credentials are skipped, not fatal.

    Returns:
        (adapters, {skipped source: reason})
    """
    adapters, skipped = [], {}
    for name in names:
        try:
            adapters.append(SOURCES[name].build(ctx))
        except MissingCredentials as e:
            logger.warning(f"Skipping {name}: {e}")
            skipped[name] = str(e)
    return adapters, skipped


# ============================================================================
# Main Orchestration
# ============================================================================

async def run_daily(
    since: Optional[str] = None,
    only: Optional[List[str]] = None,
    skip: Optional[List[str]] = None,
    dry_run: bool = False,
) -> Optional[RunReport]:
    """
    Run the selected sources once.

    Returns:
        The run report, or None for a dry run
    """
    start_time = datetime.now(timezone.utc)
    names = select_sources(only, skip)

    print_banner("🚀 STATEPULSE - DAILY DATA UPDATE")
    print(f"Started: {start_time.strftime('%Y-%m-%d %H:%M:%S UTC')}")
    print()
    print("📋 Source Order:")
    for i, name in enumerate(names, 1):
        print(f"   {i}. {name} - {SOURCES[name].description}")
    print()

    if dry_run:
        print("🏁 Dry run complete. Use without --dry-run to actually run.")
        return None

    async with open_pipeline() as ctx:
        adapters, skipped = build_adapters(ctx, names)
        orchestrator = Orchestrator(adapters, ctx.watermarks)
        report = await orchestrator.run_once(since)

    print_report(report, skipped, datetime.now(timezone.utc) - start_time)
    return report


def print_report(report: RunReport, skipped: Dict[str, str], duration) -> None:
    print_banner("✅ DAILY UPDATE COMPLETE")
    print(f"Baseline: {report.since}")
    print(f"Duration: {duration}")
    print()
    print("📊 Summary:")

    for name, result in report.results.items():
        if isinstance(result, Failed):
            print(f"   ❌ {name}: FAILED - {result.reason}")
        elif isinstance(result, CompletedWithErrors):
            print_stats(name, result.stats)
            for error in result.errors:
                print(f"      ⚠️  {error}")
        else:
            print_stats(name, result.stats)

    for name, reason in skipped.items():
        print(f"   ⏭️  {name}: skipped - {reason}")

    total = len(report.results) + len(skipped)
    ok = len(report.succeeded) + len(report.with_errors)
    print()
    print(f"Successful: {ok}/{total} sources")
    if report.watermark_advanced:
        print(f"Watermark advanced to {report.watermark}")
    print()


def _split(value: Optional[str]) -> Optional[List[str]]:
    return [v.strip() for v in value.split(",") if v.strip()] if value else None


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point"""
    parser = argparse.ArgumentParser(
        description="Run the daily incremental update across all sources",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run everything since the last recorded run
  statepulse-daily

  # Re-run a window
  statepulse-daily --from-date 2026-02-01

  # Only some sources
  statepulse-daily --only congress-bills,openstates-bills

Sources: """ + ", ".join(SOURCES),
    )
    parser.add_argument("--from-date", help="ISO date to use instead of the stored watermark")
    parser.add_argument("--only", help="Comma-separated list of sources to run")
    parser.add_argument("--skip", help="Comma-separated list of sources to skip")
    parser.add_argument("--dry-run", action="store_true", help="Show what would run without running")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    args = parser.parse_args(argv)

    configure_logging(args.verbose)

    only, skip = _split(args.only), _split(args.skip)
    invalid = set(only or []) | set(skip or [])
    invalid -= set(SOURCES)
    if invalid:
        print(f"❌ Unknown sources: {', '.join(sorted(invalid))}")
        print(f"   Available: {', '.join(SOURCES)}")
        return 1

    if args.from_date:
        try:
            date.fromisoformat(args.from_date.rstrip("Z")[:10])
        except ValueError:
            print(f"❌ Invalid --from-date: {args.from_date}")
            return 1

    try:
        asyncio.run(run_daily(since=args.from_date, only=only, skip=skip, dry_run=args.dry_run))
    except KeyboardInterrupt:
        print("\n\n⚠️  Update interrupted by user")
        return 1
    except Exception as e:
        print(f"\n\n❌ Fatal error: {e}")
        logging.exception("Fatal error")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
