"""Awarder: records an unlock at most once per (user, achievement)"""
import logging
from datetime import datetime, timezone
from typing import Optional

from src.models.achievement import AwardResult, UnlockRecord

logger = logging.getLogger(__name__)


class Awarder:
    """
    Atomic insert-if-absent against the unlock store.

    The store's uniqueness constraint is the source of truth: a conflicting
    insert means somebody else already unlocked it, which is a normal
    newly_unlocked=False outcome rather than an error. Store failures
    propagate as PersistenceError.
    """

    def __init__(self, store):
        self.store = store

    async def award(
        self,
        user_id: str,
        achievement_id: str,
        unlocked_at: Optional[datetime] = None
    ) -> AwardResult:
        """
        Record the unlock if it does not exist yet

        Args:
            user_id: User identifier
            achievement_id: Achievement identifier
            unlocked_at: Unlock timestamp (defaults to now, UTC)

        Returns:
            AwardResult with newly_unlocked and, when new, the created record
        """
        record = UnlockRecord(
            user_id=user_id,
            achievement_id=achievement_id,
            unlocked_at=unlocked_at or datetime.now(timezone.utc),
        )

        inserted = await self.store.insert_unlock(record)

        if inserted:
            logger.info(f"User {user_id} unlocked achievement {achievement_id}")
            return AwardResult(newly_unlocked=True, record=record)

        logger.debug(f"User {user_id} already had achievement {achievement_id}")
        return AwardResult(newly_unlocked=False)
