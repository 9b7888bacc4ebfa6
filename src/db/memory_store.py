"""
In-memory achievement store

Used for tests, local runs and replays. Nothing is persisted across
processes. Each method completes without suspending, so check-and-set
operations are atomic with respect to other tasks on the event loop.
"""

import json
import logging
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from src.db.store import AchievementStore
from src.exceptions import ConcurrentUpdateError
from src.models.achievement import UnlockRecord
from src.models.snapshot import UserMetricSnapshot

logger = logging.getLogger(__name__)


class InMemoryAchievementStore(AchievementStore):
    """Dict-backed store with the same conflict semantics as the Postgres one"""

    def __init__(self, definitions: Optional[Iterable[Mapping[str, Any]]] = None):
        self._achievements: Dict[str, dict] = {}
        self._unlocks: Dict[Tuple[str, str], UnlockRecord] = {}
        # user_id -> (version, serialized snapshot)
        self._snapshots: Dict[str, Tuple[int, str]] = {}

        if definitions:
            self._insert_definitions(definitions)

    def _insert_definitions(self, definitions: Iterable[Mapping[str, Any]]) -> int:
        inserted = 0
        for definition in definitions:
            key = str(definition['id'])
            if key in self._achievements:
                continue
            # Round-trip through JSON like a JSONB column would
            self._achievements[key] = json.loads(json.dumps(dict(definition)))
            inserted += 1
        return inserted

    async def list_achievements(self) -> list[dict]:
        return [dict(definition) for definition in self._achievements.values()]

    async def seed_achievements(self, definitions: Iterable[Mapping[str, Any]]) -> int:
        inserted = self._insert_definitions(definitions)
        logger.info(f"Seeded {inserted} new achievements (in memory)")
        return inserted

    async def insert_unlock(self, record: UnlockRecord) -> bool:
        key = (record.user_id, record.achievement_id)
        if key in self._unlocks:
            return False
        self._unlocks[key] = record
        return True

    async def list_unlocks(self, user_id: str) -> list[UnlockRecord]:
        records = [r for (uid, _), r in self._unlocks.items() if uid == user_id]
        return sorted(records, key=lambda r: r.unlocked_at, reverse=True)

    async def load_snapshot(self, user_id: str) -> Optional[UserMetricSnapshot]:
        stored = self._snapshots.get(user_id)
        if stored is None:
            return None
        version, data = stored
        snapshot = UserMetricSnapshot.model_validate_json(data)
        return snapshot.model_copy(update={'version': version})

    async def save_snapshot(self, snapshot: UserMetricSnapshot) -> UserMetricSnapshot:
        current_version = self._snapshots.get(snapshot.user_id, (0, None))[0]
        if current_version != snapshot.version:
            raise ConcurrentUpdateError(
                message=(
                    f"Snapshot for user {snapshot.user_id} is at version {current_version}, "
                    f"expected {snapshot.version}"
                ),
                expected_version=snapshot.version,
                user_id=snapshot.user_id,
                operation="save_snapshot"
            )

        new_version = current_version + 1
        self._snapshots[snapshot.user_id] = (
            new_version,
            snapshot.model_dump_json(exclude={'version', 'event_flags'}),
        )
        return snapshot.model_copy(update={'version': new_version})

    def unlock_count(self, user_id: Optional[str] = None) -> int:
        if user_id is None:
            return len(self._unlocks)
        return sum(1 for uid, _ in self._unlocks if uid == user_id)
