#!/usr/bin/env python3
"""
Replay a user's event log through the achievement engine

Reads JSON-lines events, keeps those of the requested user, and feeds them
in order into a fresh in-memory store. Prints the resulting unlocks and
metric snapshot. Used to check that a stored snapshot and unlock set can be
reproduced from the event log.

Usage:
    python scripts/replay_events.py events.jsonl --user user-123
    python scripts/replay_events.py events.jsonl --user user-123 --catalog achievements.json
"""
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.db.memory_store import InMemoryAchievementStore
from src.gamification.achievement_system import AchievementService
from src.gamification.catalog import DEFAULT_ACHIEVEMENTS
from src.gamification.registry import AchievementRegistry
from src.models.events import ActivityEvent

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def read_events(path: Path, user_id: str) -> list[ActivityEvent]:
    events = []
    with open(path, 'r', encoding='utf-8') as f:
        for line_number, line in enumerate(f, start=1):
            if not line.strip():
                continue
            event = ActivityEvent.model_validate_json(line)
            if event.user_id == user_id:
                events.append(event)
            else:
                logger.debug(f"Line {line_number}: event of another user, skipped")
    return events


async def replay(path: Path, user_id: str, catalog: Optional[Path] = None) -> dict:
    if catalog is not None:
        registry = AchievementRegistry.from_json_file(catalog)
    else:
        registry = AchievementRegistry.from_records(DEFAULT_ACHIEVEMENTS)

    events = read_events(path, user_id)
    logger.info(f"Replaying {len(events)} events for user {user_id}")

    service = AchievementService(InMemoryAchievementStore(), registry)
    results = await service.replay(user_id, events)
    await service.drain_notifications()

    rejected = [r.reason for r in results if not r.accepted]
    for reason in rejected:
        logger.warning(f"Rejected: {reason}")

    snapshot = await service.get_snapshot(user_id)
    return {
        "user_id": user_id,
        "events": len(events),
        "rejected": len(rejected),
        "unlocked": [
            record.achievement_id
            for result in results
            for record in result.unlocked
        ],
        "snapshot": snapshot.model_dump(mode="json", exclude={"event_flags"}) if snapshot else None,
    }


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Replay a user's events into a fresh in-memory store")
    parser.add_argument("events", type=Path, help="JSON-lines file of activity events")
    parser.add_argument("--user", required=True, help="User whose events are replayed")
    parser.add_argument("--catalog", type=Path, help="JSON catalog instead of the default one")

    args = parser.parse_args()

    summary = asyncio.run(replay(args.events, args.user, args.catalog))
    print(json.dumps(summary, indent=2, ensure_ascii=False))
