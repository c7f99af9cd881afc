#!/usr/bin/env python3
"""Age-based purge of the TrustScan scan history.

Drops history entries older than ``--days`` days (or the user's auto-delete
setting when ``--days`` is omitted) from the configured key-value store.
Entries with an unreadable creation date are dropped as well.

Usage:
    python scripts/purge_history.py --dry-run            # Preview what would change
    python scripts/purge_history.py --execute --days 30  # Actually purge
"""

import argparse
import asyncio
import logging
from datetime import datetime, timedelta, timezone

from trustscan.config import get_settings
from trustscan.services.history_store import HistoryStore, parse_created_at
from trustscan.services.identity import SettingsStore
from trustscan.services.storage import create_kv_store

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")


async def purge(dry_run: bool, days: int | None = None) -> dict[str, int]:
    """Purge the history and return counts of kept and removed entries."""
    kv = await create_kv_store(get_settings())
    try:
        history = HistoryStore(kv)
        if days is None:
            days = (await SettingsStore(kv).load()).retention_days
        if not days:
            logger.info("Auto-delete is off and no --days given; nothing to do.")
            return {"kept": len(await history.load_raw()), "removed": 0}

        items = await history.load_raw()
        cutoff = datetime.now(timezone.utc) - timedelta(days=days)
        expired = [
            item for item in items
            if (created := parse_created_at(item.get("created_at"))) is None or created < cutoff
        ]
        stats = {"kept": len(items) - len(expired), "removed": len(expired)}

        if not dry_run and expired:
            kept = await history.purge_older_than(days)
            stats = {"kept": len(kept), "removed": len(items) - len(kept)}
            logger.info("Changes committed.")

        mode = "DRY RUN" if dry_run else "EXECUTED"
        logger.info(f"\n=== History purge {mode} ({days} days) ===")
        logger.info(f"  Entries kept:     {stats['kept']}")
        logger.info(f"  Entries removed:  {stats['removed']}")
        return stats
    finally:
        await kv.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Purge old scan history entries")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--dry-run", action="store_true", help="Preview changes only")
    group.add_argument("--execute", action="store_true", help="Apply changes")
    parser.add_argument("--days", type=int, default=None, help="Keep entries newer than this many days")
    args = parser.parse_args()

    asyncio.run(purge(dry_run=args.dry_run, days=args.days))


if __name__ == "__main__":
    main()
