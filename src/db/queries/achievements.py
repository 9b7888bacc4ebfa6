"""Achievement catalog, unlock and snapshot queries"""
import json
import logging
from typing import Any, Iterable, Mapping, Optional

import psycopg

from src.db.connection import db
from src.exceptions import ConcurrentUpdateError, wrap_external_exception
from src.models.achievement import UnlockRecord
from src.models.snapshot import UserMetricSnapshot

logger = logging.getLogger(__name__)


# ==========================================
# Achievement Catalog
# ==========================================

async def list_achievements() -> list[dict]:
    """
    Get all achievement definitions

    Returns:
        List of rows with id, title, description, icon, type, condition, sort_order
    """
    try:
        async with db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    SELECT id, title, description, icon, type, condition, sort_order
                    FROM achievements
                    ORDER BY type, sort_order, title
                    """
                )
                rows = await cur.fetchall()
                return [dict(row) for row in rows]
    except psycopg.Error as e:
        raise wrap_external_exception(e, operation="list_achievements")


async def seed_achievements(definitions: Iterable[Mapping[str, Any]]) -> int:
    """
    Insert achievement definitions, skipping ids that already exist

    Args:
        definitions: Raw definitions (camelCase condition keys)

    Returns:
        Number of definitions actually inserted
    """
    inserted = 0
    try:
        async with db.connection() as conn:
            async with conn.cursor() as cur:
                for definition in definitions:
                    await cur.execute(
                        """
                        INSERT INTO achievements (id, title, description, icon, type, condition, sort_order)
                        VALUES (%s, %s, %s, %s, %s, %s, %s)
                        ON CONFLICT (id) DO NOTHING
                        RETURNING id
                        """,
                        (
                            definition['id'],
                            definition['title'],
                            definition['description'],
                            definition['icon'],
                            definition['type'],
                            json.dumps(definition['condition']),
                            definition.get('sort_order', 0)
                        )
                    )
                    if await cur.fetchone():
                        inserted += 1
                await conn.commit()
    except psycopg.Error as e:
        raise wrap_external_exception(e, operation="seed_achievements")

    logger.info(f"Seeded {inserted} new achievements")
    return inserted


# ==========================================
# Unlocks
# ==========================================

async def insert_unlock(record: UnlockRecord) -> bool:
    """
    Record an unlock unless the user already has it

    Returns:
        True if newly unlocked, False if already unlocked
    """
    try:
        async with db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    INSERT INTO user_achievements (user_id, achievement_id, unlocked_at)
                    VALUES (%s, %s, %s)
                    ON CONFLICT (user_id, achievement_id) DO NOTHING
                    RETURNING achievement_id
                    """,
                    (record.user_id, record.achievement_id, record.unlocked_at)
                )
                result = await cur.fetchone()
                await conn.commit()
                return result is not None
    except psycopg.Error as e:
        raise wrap_external_exception(
            e,
            operation="insert_unlock",
            user_id=record.user_id,
            context={"achievement_id": record.achievement_id}
        )


async def list_unlocks(user_id: str) -> list[UnlockRecord]:
    """Get a user's unlocks, most recent first"""
    try:
        async with db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    SELECT user_id, achievement_id, unlocked_at
                    FROM user_achievements
                    WHERE user_id = %s
                    ORDER BY unlocked_at DESC
                    """,
                    (user_id,)
                )
                rows = await cur.fetchall()
                return [UnlockRecord(**row) for row in rows]
    except psycopg.Error as e:
        raise wrap_external_exception(e, operation="list_unlocks", user_id=user_id)


# ==========================================
# Metric Snapshots
# ==========================================

async def load_snapshot(user_id: str) -> Optional[UserMetricSnapshot]:
    """Get a user's metric snapshot, or None before their first accepted event"""
    try:
        async with db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    SELECT version, data
                    FROM user_metric_snapshots
                    WHERE user_id = %s
                    """,
                    (user_id,)
                )
                row = await cur.fetchone()
    except psycopg.Error as e:
        raise wrap_external_exception(e, operation="load_snapshot", user_id=user_id)

    if not row:
        return None

    data = row['data']
    if isinstance(data, str):
        data = json.loads(data)
    return UserMetricSnapshot.model_validate({**data, 'user_id': user_id, 'version': row['version']})


async def save_snapshot(snapshot: UserMetricSnapshot) -> UserMetricSnapshot:
    """
    Persist snapshot if nobody else saved since it was loaded

    snapshot.version is the version that was read (0 for a new snapshot).

    Returns:
        The snapshot carrying its new version

    Raises:
        ConcurrentUpdateError: the stored version moved on
    """
    expected = snapshot.version
    data = snapshot.model_dump_json(exclude={'version', 'event_flags'})

    try:
        async with db.connection() as conn:
            async with conn.cursor() as cur:
                if expected == 0:
                    await cur.execute(
                        """
                        INSERT INTO user_metric_snapshots (user_id, version, data)
                        VALUES (%s, 1, %s)
                        ON CONFLICT (user_id) DO NOTHING
                        RETURNING version
                        """,
                        (snapshot.user_id, data)
                    )
                else:
                    await cur.execute(
                        """
                        UPDATE user_metric_snapshots
                        SET data = %s,
                            version = version + 1,
                            updated_at = CURRENT_TIMESTAMP
                        WHERE user_id = %s AND version = %s
                        RETURNING version
                        """,
                        (data, snapshot.user_id, expected)
                    )
                result = await cur.fetchone()
                await conn.commit()
    except psycopg.Error as e:
        raise wrap_external_exception(e, operation="save_snapshot", user_id=snapshot.user_id)

    if not result:
        raise ConcurrentUpdateError(
            message=f"Snapshot for user {snapshot.user_id} changed since version {expected}",
            expected_version=expected,
            user_id=snapshot.user_id,
            operation="save_snapshot"
        )

    return snapshot.model_copy(update={'version': result['version']})
