#!/usr/bin/env python3
"""Show notification queue entries that are due for delivery."""

import sys
from pathlib import Path

import argparse
import asyncio
import logging
from datetime import datetime, timedelta

sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

load_dotenv()

from core.database import close_db, get_db
from core.utils import utcnow
from services.notification_queue import NotificationQueue

logger = logging.getLogger(__name__)


async def list_pending(ahead_minutes: int, limit: int | None) -> list[dict]:
    before: datetime = utcnow() + timedelta(minutes=ahead_minutes)
    rows: list[dict] = []
    async for db in get_db():
        queue = NotificationQueue(db)
        rows = [email.to_dict() for email in await queue.list_pending(before=before, limit=limit)]
    return rows


async def main() -> None:
    parser = argparse.ArgumentParser(description="List pending CFP notification emails")
    parser.add_argument(
        "--ahead",
        type=int,
        default=0,
        help="Include entries due within this many minutes (default: 0)",
    )
    parser.add_argument(
        "--limit",
        type=int,
        help="Maximum number of entries to show",
    )
    args = parser.parse_args()

    rows = await list_pending(args.ahead, args.limit)
    await close_db()

    for row in rows:
        print(
            f"{row['fire_at']}  {row['template']:<22} {row['recipient']:<40} "
            f"attempts={row['attempt_count']}  id={row['id']}"
        )
    logger.info("%s pending emails", len(rows))


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
    asyncio.run(main())
