#!/usr/bin/env python3
"""
Seed the Database
=================

Create tables and load default config entries and sample articles from
a seed file into the configured database.

Usage:
    python scripts/seed_database.py [path/to/seed.yaml]
"""

import asyncio
import sys
from pathlib import Path

from helpdesk.config import settings
from helpdesk.infrastructure.database import (
    init_database, close_database, create_tables, get_session_context
)
from helpdesk.shared.infrastructure.logging import setup_logging
from helpdesk.triage.infrastructure import seed_database


async def main() -> int:
    setup_logging(settings.log_level, settings.environment)

    path = Path(sys.argv[1]) if len(sys.argv) > 1 else settings.seed_path
    if not path.exists():
        print(f"Error: File not found: {path}")
        return 1

    init_database()
    try:
        await create_tables()
        async with get_session_context() as session:
            counts = await seed_database(session, path)
    finally:
        await close_database()

    print(f"Inserted {counts['config']} config entries and {counts['articles']} articles from {path}")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
