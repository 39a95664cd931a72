"""Initialize the CFP database schema.

Creates every table from the SQLAlchemy models. Production deployments use
the Alembic migrations in ``migrations/versions``; this is for local setups.

Usage:
    python scripts/init_database.py [--reset]

Environment Variables:
    DATABASE_URL: Async SQLAlchemy connection string
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.database import close_db, init_db, reset_db


async def main():
    """Initialize database."""
    parser = argparse.ArgumentParser(description="Create CFP database tables")
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Drop all tables before creating them (destroys data)",
    )
    args = parser.parse_args()

    if args.reset:
        print("Dropping and recreating database tables...")
        await reset_db()
    else:
        print("Creating database tables...")
        await init_db()
    print("✓ All tables created successfully")

    await close_db()
    print("\nDatabase initialization complete!")


if __name__ == "__main__":
    asyncio.run(main())
