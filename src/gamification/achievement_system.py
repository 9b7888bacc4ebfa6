"""
Achievement System

Turns activity events into achievement unlocks:
- Validates the event payload for its kind
- Folds the event into the user's metric snapshot (one writer per user)
- Evaluates only the achievements whose type the event kind can affect
- Records each unlock exactly once and hands it to the notifier

Features:
- Idempotent redelivery (recent event ids are kept in the snapshot)
- Progress tracking for locked achievements
- Replay of a user's event log
"""

from typing import Any, Dict, Iterable, List, Optional, Set
import asyncio
import logging

from src.db.store import AchievementStore
from src.exceptions import ConcurrentUpdateError, MalformedEventError
from src.gamification.aggregator import StateAggregator, parse_payload
from src.gamification.awarder import Awarder
from src.gamification.evaluator import matches, progress
from src.gamification.locks import UserLockTable
from src.gamification.registry import AchievementRegistry
from src.models.achievement import Achievement, UnlockRecord
from src.models.events import ActivityEvent, EventKind, SubmitResult
from src.models.snapshot import UserMetricSnapshot
from src.resilience.retry import retry_with_backoff
from src.services.unlock_notifications import LoggingUnlockNotifier, UnlockNotifier

logger = logging.getLogger(__name__)

IGNORED_UNKNOWN_KIND = "ignored unknown event kind"
DUPLICATE_EVENT = "duplicate event"

# Snapshot version conflicts only happen across service instances
SNAPSHOT_SAVE_RETRIES = 3
SNAPSHOT_RETRY_DELAY = 0.05  # seconds


def _is_version_conflict(exc: Exception) -> bool:
    return isinstance(exc, ConcurrentUpdateError)


class AchievementService:
    """
    Entry point of the achievement engine.

    Responsibilities:
    - Event ingestion (submit_event, replay)
    - Catalog and per-user achievement queries
    - Background hand-off of unlocks to the notifier
    """

    def __init__(
        self,
        store: AchievementStore,
        registry: AchievementRegistry,
        notifier: Optional[UnlockNotifier] = None,
        aggregator: Optional[StateAggregator] = None,
        locks: Optional[UserLockTable] = None
    ):
        self.store = store
        self.registry = registry
        self.notifier = notifier or LoggingUnlockNotifier()
        self.aggregator = aggregator or StateAggregator()
        self.awarder = Awarder(store)
        self.locks = locks or UserLockTable()
        self._notification_tasks: Set[asyncio.Task] = set()
        logger.debug(f"AchievementService initialized with {len(registry)} achievements")

    # ==========================================
    # Event ingestion
    # ==========================================

    async def submit_event(self, event: ActivityEvent) -> SubmitResult:
        """
        Apply one activity event and award whatever it newly satisfies

        Args:
            event: Activity event; unknown kinds are accepted and ignored

        Returns:
            SubmitResult(accepted, reason, unlocked). Malformed payloads give
            accepted=False with the validation message as reason.

        Raises:
            PersistenceError: snapshot or unlock store failed; the event may
                be redelivered (duplicates are detected by event_id)
        """
        kind = event.event_kind
        if kind is None:
            logger.debug(f"Ignoring unknown event kind '{event.kind}' for user {event.user_id}")
            return SubmitResult(accepted=True, reason=IGNORED_UNKNOWN_KIND)

        try:
            parse_payload(event)
        except MalformedEventError as e:
            return SubmitResult(accepted=False, reason=e.message)

        async with self.locks.hold(event.user_id):
            # Filled across version-conflict retries; awards are idempotent
            unlocked: List[UnlockRecord] = []
            saved = await retry_with_backoff(
                self._apply_award_and_save,
                event,
                kind,
                unlocked,
                max_retries=SNAPSHOT_SAVE_RETRIES,
                base_delay=SNAPSHOT_RETRY_DELAY,
                should_retry=_is_version_conflict
            )
            if saved is None:
                logger.info(f"Skipping duplicate event {event.event_id} for user {event.user_id}")
                return SubmitResult(accepted=True, reason=DUPLICATE_EVENT)

        for record in unlocked:
            self._schedule_notification(record)

        return SubmitResult(accepted=True, unlocked=unlocked)

    async def _apply_award_and_save(
        self,
        event: ActivityEvent,
        kind: EventKind,
        unlocked: List[UnlockRecord]
    ) -> Optional[UserMetricSnapshot]:
        """
        Fold the event, award what the folded snapshot satisfies, then save it

        The snapshot (and with it the event id) is only saved once every award
        insert has succeeded, so a store failure leaves the event redeliverable.

        Returns:
            The saved snapshot, or None when the event was already applied
        """
        snapshot = await self.store.load_snapshot(event.user_id)
        if snapshot is None:
            snapshot = self.aggregator.new_snapshot(event.user_id)
        elif event.event_id and event.event_id in snapshot.recent_event_ids:
            return None

        updated = self.aggregator.apply(snapshot, event)
        unlocked.extend(await self._evaluate_and_award(updated, kind))
        return await self.store.save_snapshot(updated)

    async def _evaluate_and_award(self, snapshot: UserMetricSnapshot, kind: EventKind) -> List[UnlockRecord]:
        user_id = snapshot.user_id
        already_unlocked = {record.achievement_id for record in await self.store.list_unlocks(user_id)}

        newly_unlocked = []
        for achievement in self.registry.candidates_for(kind):
            if achievement.id in already_unlocked:
                continue
            if not matches(achievement.condition, snapshot):
                continue

            result = await self.awarder.award(user_id, achievement.id)
            if result.newly_unlocked:
                newly_unlocked.append(result.record)

        return newly_unlocked

    async def replay(self, user_id: str, events: Iterable[ActivityEvent]) -> List[SubmitResult]:
        """
        Feed a user's events in order, starting from the store's current state

        Raises:
            ValueError: an event belongs to another user
        """
        results = []
        for event in events:
            if event.user_id != user_id:
                raise ValueError(f"Event for user {event.user_id} in replay of user {user_id}")
            results.append(await self.submit_event(event))

        unlocked = sum(len(result.unlocked) for result in results)
        logger.info(f"Replayed {len(results)} events for user {user_id}: {unlocked} unlocks")
        return results

    # ==========================================
    # Notifications
    # ==========================================

    def _schedule_notification(self, record: UnlockRecord) -> None:
        task = asyncio.create_task(self._notify(record))
        self._notification_tasks.add(task)
        task.add_done_callback(self._notification_tasks.discard)

    async def _notify(self, record: UnlockRecord) -> None:
        try:
            await self.notifier.on_unlocked(record.user_id, record.achievement_id, record.unlocked_at)
        except Exception as e:
            # The unlock stays recorded whatever happens downstream
            logger.error(
                f"Unlock notification failed for user {record.user_id}, "
                f"achievement {record.achievement_id}: {e}",
                exc_info=True
            )

    async def drain_notifications(self) -> None:
        """Wait for every scheduled notification to finish"""
        while self._notification_tasks:
            await asyncio.gather(*list(self._notification_tasks), return_exceptions=True)

    # ==========================================
    # Queries
    # ==========================================

    def get_all_achievements(self) -> List[Achievement]:
        """Catalog ordered by type, then sort order"""
        return list(self.registry.all())

    async def get_snapshot(self, user_id: str) -> Optional[UserMetricSnapshot]:
        return await self.store.load_snapshot(user_id)

    async def get_user_achievements(
        self,
        user_id: str,
        include_locked: bool = True
    ) -> Dict[str, Any]:
        """
        Get user's achievements with progress

        Args:
            user_id: User identifier
            include_locked: Whether to include locked achievements with progress

        Returns:
            {
                'unlocked': [achievement dicts with 'unlocked_at'],
                'locked': [achievement dicts with 'progress'] (if include_locked=True),
                'total_unlocked': int,
                'total_achievements': int
            }
        """
        records = await self.store.list_unlocks(user_id)

        unlocked = []
        unlocked_ids = set()
        for record in records:
            achievement = self.registry.get(record.achievement_id)
            if achievement is None:
                logger.debug(f"Unlock of retired achievement {record.achievement_id} for user {user_id}")
                continue
            unlocked.append({**_describe(achievement), 'unlocked_at': record.unlocked_at})
            unlocked_ids.add(achievement.id)

        # Most recent first
        unlocked.sort(key=lambda x: x['unlocked_at'], reverse=True)

        result = {
            'unlocked': unlocked,
            'total_unlocked': len(unlocked),
            'total_achievements': len(self.registry),
        }

        if include_locked:
            snapshot = await self.store.load_snapshot(user_id) or self.aggregator.new_snapshot(user_id)
            locked = [
                {**_describe(achievement), 'progress': progress(achievement.condition, snapshot)}
                for achievement in self.registry
                if achievement.id not in unlocked_ids
            ]
            # Closest to completion first
            locked.sort(key=lambda x: x['progress']['percentage'], reverse=True)
            result['locked'] = locked

        return result


def _describe(achievement: Achievement) -> Dict[str, Any]:
    return {
        'id': achievement.id,
        'title': achievement.title,
        'description': achievement.description,
        'icon': achievement.icon,
        'type': achievement.type.value,
    }
