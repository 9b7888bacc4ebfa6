"""Persistence seam used by the achievement service"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Iterable, Mapping, Optional

from src.db.queries import achievements as queries
from src.models.achievement import UnlockRecord
from src.models.snapshot import UserMetricSnapshot

logger = logging.getLogger(__name__)


class AchievementStore(ABC):
    """
    Catalog, unlock and snapshot storage.

    Implementations must make insert_unlock an atomic check-and-set and
    save_snapshot an optimistic compare-and-swap on snapshot.version.
    Failures surface as PersistenceError subclasses.
    """

    @abstractmethod
    async def list_achievements(self) -> list[dict]:
        """Raw achievement definitions"""

    @abstractmethod
    async def seed_achievements(self, definitions: Iterable[Mapping[str, Any]]) -> int:
        """Insert definitions whose id is not present yet; returns inserted count"""

    @abstractmethod
    async def insert_unlock(self, record: UnlockRecord) -> bool:
        """True when the unlock was recorded now, False when it already existed"""

    @abstractmethod
    async def list_unlocks(self, user_id: str) -> list[UnlockRecord]:
        """A user's unlocks, most recent first"""

    @abstractmethod
    async def load_snapshot(self, user_id: str) -> Optional[UserMetricSnapshot]:
        """Current snapshot, or None if the user has none yet"""

    @abstractmethod
    async def save_snapshot(self, snapshot: UserMetricSnapshot) -> UserMetricSnapshot:
        """Save if the stored version still equals snapshot.version; returns the new version"""


class PostgresAchievementStore(AchievementStore):
    """Store backed by the shared connection pool (src.db.connection.db)"""

    async def list_achievements(self) -> list[dict]:
        return await queries.list_achievements()

    async def seed_achievements(self, definitions: Iterable[Mapping[str, Any]]) -> int:
        return await queries.seed_achievements(definitions)

    async def insert_unlock(self, record: UnlockRecord) -> bool:
        return await queries.insert_unlock(record)

    async def list_unlocks(self, user_id: str) -> list[UnlockRecord]:
        return await queries.list_unlocks(user_id)

    async def load_snapshot(self, user_id: str) -> Optional[UserMetricSnapshot]:
        return await queries.load_snapshot(user_id)

    async def save_snapshot(self, snapshot: UserMetricSnapshot) -> UserMetricSnapshot:
        return await queries.save_snapshot(snapshot)
