"""
Show saved ingestion progress.

Lists every checkpoint on disk, which states the state bill update still has
to process, and the global watermark. With --counts, also reports how many
documents each collection holds.

Usage:
    statepulse-progress
    statepulse-progress --counts
"""
import argparse
import sys
from pathlib import Path
from typing import List, Optional

from pymongo.errors import PyMongoError

from statepulse.config.constants import (
    COLLECTION_EXECUTIVE_ORDERS,
    COLLECTION_LEGISLATION,
    COLLECTION_LEGISLATORS,
    COLLECTION_VOTES,
    US_STATES,
    WATERMARK_FILE,
)
from statepulse.config.settings import settings
from statepulse.database.connection import close_sync_client, get_sync_database
from statepulse.ingestion.checkpoint import CheckpointStore, WatermarkStore
from statepulse.ingestion.openstates_bills import StateBillsAdapter
from statepulse.models.checkpoint import RunCheckpoint


def outstanding_states(checkpoint: Optional[RunCheckpoint]) -> List[str]:
    """States the state bill update has not completed yet."""
    if checkpoint is None:
        return list(US_STATES)
    return [s for s in US_STATES if not checkpoint.is_completed(s)]


def print_state_progress(checkpoint: Optional[RunCheckpoint]) -> None:
    print("\n=== State Update Progress ===\n")

    remaining = outstanding_states(checkpoint)
    if checkpoint is None:
        print("❌ No progress file found.")
        print(f"All {len(US_STATES)} states need to be processed.\n")
        print("Outstanding states:")
        print(", ".join(remaining))
        return

    completed = sorted(str(p) for p in checkpoint.completed_partitions)
    print(f"✅ Completed: {len(completed)}/{len(US_STATES)} states")
    print(f"⏸️  Remaining: {len(remaining)}/{len(US_STATES)} states")
    print(f"Window: updated since {checkpoint.last_updated_watermark}")
    print(f"Last updated: {checkpoint.timestamp:%Y-%m-%d %H:%M:%S} UTC\n")

    if completed:
        print("Completed states:")
        print(", ".join(completed))
        print()

    if checkpoint.current_partition:
        print(f"In progress: {checkpoint.current_partition} (next page {checkpoint.cursor_position})\n")

    if remaining:
        print("Outstanding states:")
        print(", ".join(sorted(remaining)))
        print()
        print("To process remaining states, run:")
        print("  statepulse-state-bills")
        print()
        print("Or process specific states:")
        print(f"  statepulse-state-bills {' '.join(remaining[:5])}")
    else:
        print("🎉 All states have been processed!")


def print_other_checkpoints(checkpoints: List[RunCheckpoint]) -> None:
    others = [c for c in checkpoints if c.source_id != StateBillsAdapter.source_id]
    if not others:
        return
    print("\n=== Other Sources ===\n")
    for c in others:
        done = ", ".join(str(p) for p in c.completed_partitions) or "none"
        print(f"⏸️  {c.source_id}: at {c.current_partition} / {c.cursor_position} (completed: {done})")
        print(
            f"   {c.counters.processed} processed, {c.counters.inserted} new, "
            f"{c.counters.updated} updated, saved {c.timestamp:%Y-%m-%d %H:%M:%S} UTC"
        )


def print_collection_counts() -> None:
    print("\n=== Collections ===\n")
    db = get_sync_database()
    try:
        for name in (COLLECTION_LEGISLATION, COLLECTION_EXECUTIVE_ORDERS, COLLECTION_VOTES, COLLECTION_LEGISLATORS):
            print(f"   {name}: {db[name].count_documents({})}")
    finally:
        close_sync_client()


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point"""
    parser = argparse.ArgumentParser(description="Show saved ingestion progress")
    parser.add_argument("--data-dir", type=Path, default=settings.DATA_DIR, help="Checkpoint directory")
    parser.add_argument("--counts", action="store_true", help="Also count documents in MongoDB")
    args = parser.parse_args(argv)

    store = CheckpointStore(args.data_dir)
    print_state_progress(store.load(StateBillsAdapter.source_id))
    print_other_checkpoints(store.load_all())

    watermark = WatermarkStore(args.data_dir / WATERMARK_FILE).load()
    print(f"\nLast daily run: {watermark.last_run_date}")

    if args.counts:
        try:
            print_collection_counts()
        except PyMongoError as e:
            print(f"❌ Could not reach MongoDB: {e}")
            return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
