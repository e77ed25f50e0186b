"""
Standalone state bill update from OpenStates.

Resumes from data/state-update-progress.json unless told otherwise.

Usage:
    statepulse-state-bills                     # All states, skipping completed ones
    statepulse-state-bills CA NY TX            # Specific states
    statepulse-state-bills --start-from=OH     # OH onwards, ignoring progress
"""
import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from statepulse.config.constants import US_STATES
from statepulse.config.settings import settings
from statepulse.ingestion.errors import MissingCredentials, RateLimited
from statepulse.ingestion.openstates_bills import StateBillsAdapter
from statepulse.pipelines.common import (
    configure_logging,
    open_pipeline,
    openstates_fetcher,
    print_banner,
    print_stats,
)

logger = logging.getLogger(__name__)


def resolve_states(states: List[str], start_from: Optional[str]) -> tuple[Optional[List[str]], bool]:
    """
    Work out which states to run.

    Returns:
        (states to restrict the run to, or None for all; whether to
        ignore states the progress file marks completed)
    """
    if start_from:
        index = US_STATES.index(start_from)
        return US_STATES[index:], True
    if states:
        return states, False
    return None, False


async def update_state_bills(
    states: Optional[List[str]] = None,
    ignore_completed: bool = False,
    since: Optional[str] = None,
) -> dict:
    async with open_pipeline() as ctx:
        since = since or settings.UPDATED_SINCE or ctx.watermarks.load().last_run_date
        since = since.rstrip("Z")

        adapter = StateBillsAdapter(ctx.store, openstates_fetcher(ctx.client), ctx.checkpoints)

        print_banner("🏛️  STATE BILLS UPDATE")
        print(f"Updated since: {since}")
        print(f"States: {', '.join(states) if states else 'all (resuming)'}")

        try:
            stats = await adapter.run(since=since, only=states, ignore_completed=ignore_completed)
        except RateLimited:
            print("\n⚠️  Rate limited on every API key. Progress saved; run again later to resume.")
            stats = adapter.stats

        print()
        print_stats("State bills", stats)
        for error in adapter.errors:
            print(f"      ⚠️  {error}")
        return stats


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point"""
    parser = argparse.ArgumentParser(
        description="Update AI-related state bills from OpenStates",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  statepulse-state-bills
  statepulse-state-bills CA NY TX
  statepulse-state-bills --start-from=OH
  statepulse-state-bills --from-date 2026-01-15
        """,
    )
    parser.add_argument("states", nargs="*", help="Two-letter state codes to process")
    parser.add_argument("--start-from", help="Process this state and every later one, ignoring progress")
    parser.add_argument("--from-date", help="ISO date to use instead of the stored watermark")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    args = parser.parse_args(argv)

    configure_logging(args.verbose)

    requested = [s.upper() for s in args.states]
    start_from = args.start_from.upper() if args.start_from else None
    invalid = [s for s in requested + ([start_from] if start_from else []) if s not in US_STATES]
    if invalid:
        print(f"❌ Unknown states: {', '.join(invalid)}")
        return 1

    states, ignore_completed = resolve_states(requested, start_from)

    try:
        asyncio.run(update_state_bills(states, ignore_completed, args.from_date))
    except MissingCredentials as e:
        print(f"❌ {e}. Set OPENSTATES_API_KEY in .env")
        return 1
    except KeyboardInterrupt:
        print("\n\n⚠️  Update interrupted by user. Progress saved after the last page.")
        return 1
    except Exception as e:
        print(f"\n\n❌ Fatal error: {e}")
        logging.exception("Fatal error")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
