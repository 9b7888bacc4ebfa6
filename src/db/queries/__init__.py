"""
Database queries

Module organization:
- achievements.py: Achievement catalog, unlocks and per-user metric snapshots
"""

from src.db.queries.achievements import (
    list_achievements,
    seed_achievements,
    insert_unlock,
    list_unlocks,
    load_snapshot,
    save_snapshot,
)

__all__ = [
    "list_achievements",
    "seed_achievements",
    "insert_unlock",
    "list_unlocks",
    "load_snapshot",
    "save_snapshot",
]
