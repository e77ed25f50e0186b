"""
Historical backfill of AI-related federal bills.

Walks whole congresses newest first in pages of 250. When Congress.gov
rate limits the key, progress is saved, the process sleeps for an hour
and resumes, up to --max-restarts times.

Usage:
    statepulse-congress-historical                       # 119 down to 116
    statepulse-congress-historical --congress 118        # One session
    statepulse-congress-historical --start 117 --end 119
"""
import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from statepulse.config.constants import (
    HISTORICAL_CONGRESSES,
    LATEST_HISTORICAL_CONGRESS,
    MAX_BACKFILL_RESTARTS,
    RESTART_DELAY,
)
from statepulse.ingestion.congress_bills import CongressHistoricalBackfill
from statepulse.ingestion.errors import BackfillAborted, MissingCredentials
from statepulse.pipelines.common import (
    configure_logging,
    congress_fetcher,
    open_pipeline,
    print_banner,
    print_stats,
)

logger = logging.getLogger(__name__)


def resolve_congresses(
    congress: Optional[int] = None,
    start: Optional[int] = None,
    end: Optional[int] = None,
) -> List[int]:
    """
    Sessions to backfill, newest first.

    Examples:
        >>> resolve_congresses(congress=118)
        [118]
        >>> resolve_congresses(start=117)
        [119, 118, 117]
    """
    if congress is not None:
        return [congress]
    if start is not None:
        end = end if end is not None else LATEST_HISTORICAL_CONGRESS
        low, high = min(start, end), max(start, end)
        return list(range(high, low - 1, -1))
    return list(HISTORICAL_CONGRESSES)


async def backfill(congresses: List[int], max_restarts: int, restart_delay: float) -> dict:
    async with open_pipeline() as ctx:
        # A 429 here means the hourly budget is gone; stop and let the restart loop wait
        fetcher = congress_fetcher(ctx.client, retries=5, backoff=2.0, max_consecutive_throttles=0)
        adapter = CongressHistoricalBackfill(
            ctx.store, fetcher, ctx.checkpoints,
            congresses=congresses,
        )

        print_banner("📜 CONGRESS HISTORICAL BACKFILL")
        print(f"Sessions: {', '.join(str(c) for c in congresses)}")

        stats = await adapter.run_with_restarts(max_restarts=max_restarts, restart_delay=restart_delay)

        print()
        print_stats("Historical bills", stats)
        for error in adapter.errors:
            print(f"      ⚠️  {error}")
        return stats


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point"""
    parser = argparse.ArgumentParser(
        description="Backfill AI-related bills from past congresses",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Default sessions (119, 118, 117, 116)
  statepulse-congress-historical

  # A single congress
  statepulse-congress-historical --congress 118

  # A range (--end defaults to 119)
  statepulse-congress-historical --start 115 --end 117
        """,
    )
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--congress", type=int, help="Backfill only this congress")
    group.add_argument("--start", type=int, help="First congress of a range")
    parser.add_argument("--end", type=int, help="Last congress of a range (with --start)")
    parser.add_argument(
        "--max-restarts", type=int, default=MAX_BACKFILL_RESTARTS,
        help=f"Give up after this many rate-limit restarts (default: {MAX_BACKFILL_RESTARTS})",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    args = parser.parse_args(argv)

    if args.end is not None and args.start is None:
        parser.error("--end requires --start")

    configure_logging(args.verbose)
    congresses = resolve_congresses(args.congress, args.start, args.end)

    try:
        asyncio.run(backfill(congresses, args.max_restarts, RESTART_DELAY))
    except MissingCredentials as e:
        print(f"❌ {e}. Set US_CONGRESS_API_KEY in .env")
        return 1
    except BackfillAborted as e:
        print(f"\n❌ {e}. Progress is saved; run again later to resume.")
        return 1
    except KeyboardInterrupt:
        print("\n\n⚠️  Backfill interrupted by user. Progress saved after the last page.")
        return 1
    except Exception as e:
        print(f"\n\n❌ Fatal error: {e}")
        logging.exception("Fatal error")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
