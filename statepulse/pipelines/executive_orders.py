"""
Standalone executive order update from the Federal Register.

Usage:
    statepulse-executive-orders                        # Since the stored watermark
    statepulse-executive-orders --from-date 2025-01-20 --max-pages 20
"""
import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from statepulse.config.constants import EXECUTIVE_ORDER_LOOKBACK_DAYS, EXECUTIVE_ORDER_MAX_PAGES
from statepulse.ingestion.errors import RateLimited
from statepulse.ingestion.executive_orders import ExecutiveOrdersAdapter
from statepulse.pipelines.common import (
    configure_logging,
    federal_register_fetcher,
    open_pipeline,
    print_banner,
    print_stats,
)

logger = logging.getLogger(__name__)


async def update_executive_orders(since: Optional[str], max_pages: int) -> dict:
    async with open_pipeline() as ctx:
        since = since or ctx.watermarks.load().last_run_date
        adapter = ExecutiveOrdersAdapter(
            ctx.store, federal_register_fetcher(ctx.client), ctx.checkpoints,
            max_pages=max_pages,
        )

        print_banner("🖋️  EXECUTIVE ORDERS UPDATE")
        print(f"Watermark: {since} (plus a {EXECUTIVE_ORDER_LOOKBACK_DAYS}-day signing buffer)")

        try:
            stats = await adapter.run(since=since)
        except RateLimited:
            print("\n⚠️  Rate limited by the Federal Register. Progress saved; run again later.")
            stats = adapter.stats

        print()
        print_stats("Executive orders", stats)
        for error in adapter.errors:
            print(f"      ⚠️  {error}")
        return stats


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point"""
    parser = argparse.ArgumentParser(description="Update AI-related federal executive orders")
    parser.add_argument("--from-date", help="ISO date to use instead of the stored watermark")
    parser.add_argument(
        "--max-pages", type=int, default=EXECUTIVE_ORDER_MAX_PAGES,
        help=f"Maximum number of result pages to fetch (default: {EXECUTIVE_ORDER_MAX_PAGES})",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    args = parser.parse_args(argv)

    configure_logging(args.verbose)

    try:
        asyncio.run(update_executive_orders(args.from_date, args.max_pages))
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
