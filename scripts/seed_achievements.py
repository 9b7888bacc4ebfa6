#!/usr/bin/env python3
"""
Seed the default achievement catalog

Inserts every definition from src/gamification/catalog.py (or a JSON file)
into the achievements table.

Key Features:
- Idempotent: existing ids are left untouched (ON CONFLICT (id) DO NOTHING)
- Validates the whole catalog before writing anything

Usage:
    python scripts/seed_achievements.py
    python scripts/seed_achievements.py --file achievements.json
    python scripts/seed_achievements.py --dry-run

Requirements:
    - Database connection configured (DATABASE_URL env var)
    - migrations/001_achievement_engine.sql applied
"""
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.db.connection import db
from src.db.store import PostgresAchievementStore
from src.exceptions import RegistryLoadError
from src.gamification.catalog import DEFAULT_ACHIEVEMENTS
from src.gamification.registry import AchievementRegistry

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def seed(file: Optional[Path] = None, dry_run: bool = False) -> int:
    """Validate and insert the catalog; returns the number of new rows"""
    if file is not None:
        definitions = json.loads(file.read_text(encoding="utf-8"))
    else:
        definitions = DEFAULT_ACHIEVEMENTS

    try:
        registry = AchievementRegistry.from_records(definitions)
    except RegistryLoadError as e:
        for problem in e.problems:
            logger.error(f"  - {problem}")
        raise

    logger.info(f"🏆 Catalog valid: {len(registry)} achievements")
    if dry_run:
        logger.info("Dry run, nothing written")
        return 0

    await db.init_pool()
    try:
        inserted = await PostgresAchievementStore().seed_achievements(definitions)
    finally:
        await db.close_pool()

    logger.info(
        f"✅ Seeding complete: {inserted} inserted, "
        f"{len(registry) - inserted} skipped (already existed)"
    )
    return inserted


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Seed the achievement catalog")
    parser.add_argument("--file", type=Path, help="JSON array of definitions instead of the default catalog")
    parser.add_argument("--dry-run", action="store_true", help="Validate only, don't write to the database")

    args = parser.parse_args()

    try:
        asyncio.run(seed(file=args.file, dry_run=args.dry_run))
    except RegistryLoadError:
        sys.exit(1)
