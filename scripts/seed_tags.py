#!/usr/bin/env python3
"""Seed the suggested tag catalog."""

import sys
from pathlib import Path

import argparse
import asyncio
import logging

sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

load_dotenv()

from core.database import close_db, get_db
from services.tag_catalog import TagCatalog

logger = logging.getLogger(__name__)

SUGGESTED_TAGS = [
    "JavaScript",
    "TypeScript",
    "React",
    "Vue",
    "Angular",
    "Svelte",
    "Node.js",
    "Deno",
    "Bun",
    "Next.js",
    "Nuxt",
    "Remix",
    "Testing",
    "Performance",
    "Security",
    "Accessibility",
    "DevOps",
    "CI/CD",
    "Tooling",
    "Build Systems",
    "Web APIs",
    "WebAssembly",
    "PWA",
    "Mobile",
    "State Management",
    "GraphQL",
    "REST",
    "Database",
    "AI/ML",
    "Open Source",
    "Career",
    "Best Practices",
]


async def seed_tags(names: list[str], dry_run: bool = False) -> int:
    """Ensure every name exists as a suggested tag; returns how many changed."""
    changed = 0
    async for db in get_db():
        catalog = TagCatalog(db)
        for tag in await catalog.get_or_create_tags(names):
            if not tag.is_suggested:
                tag.is_suggested = True
                changed += 1
                logger.info("Marking '%s' as suggested", tag.name)

        if dry_run:
            await db.rollback()
            logger.info("Dry run; no changes written")
    return changed


async def main() -> None:
    parser = argparse.ArgumentParser(description="Seed suggested CFP tags")
    parser.add_argument(
        "--tags",
        help="Comma-separated tag names (default: built-in suggested list)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would change without writing",
    )
    args = parser.parse_args()

    names = SUGGESTED_TAGS
    if args.tags:
        names = [item.strip() for item in args.tags.split(",") if item.strip()]

    changed = await seed_tags(names, dry_run=args.dry_run)
    await close_db()
    logger.info("Seeded %s suggested tags", changed)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
    asyncio.run(main())
