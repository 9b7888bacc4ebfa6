"""
Unlock notification hand-off

The engine only hands newly unlocked records to a notifier; delivery
itself (push, email, in-app) belongs to whatever listens downstream.
"""

import logging
from datetime import datetime
from typing import Optional, Protocol

import httpx

from src import config
from src.exceptions import NotificationError, wrap_external_exception
from src.resilience.retry import MAX_RETRIES, retry_with_backoff

logger = logging.getLogger(__name__)


class UnlockNotifier(Protocol):
    """Receives every unlock exactly once, after it has been recorded"""

    async def on_unlocked(self, user_id: str, achievement_id: str, unlocked_at: datetime) -> None:
        ...


class LoggingUnlockNotifier:
    """Default notifier: writes unlocks to the log"""

    async def on_unlocked(self, user_id: str, achievement_id: str, unlocked_at: datetime) -> None:
        logger.info(
            f"🏆 Achievement unlocked: user={user_id} achievement={achievement_id} "
            f"at={unlocked_at.isoformat()}"
        )


class WebhookUnlockNotifier:
    """
    POSTs each unlock as JSON to a webhook

    Body: {"userId": ..., "achievementId": ..., "unlockedAt": ISO-8601}

    Timeouts, connection errors, 429 and 5xx responses are retried with
    exponential backoff; anything else fails immediately.

    Raises:
        NotificationError: delivery failed after retries
    """

    def __init__(
        self,
        url: str,
        timeout: float = config.UNLOCK_WEBHOOK_TIMEOUT,
        max_retries: int = MAX_RETRIES,
        base_delay: float = 1.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.url = url
        self.timeout = timeout
        self.max_retries = max_retries
        self.base_delay = base_delay
        self._client = client

    async def on_unlocked(self, user_id: str, achievement_id: str, unlocked_at: datetime) -> None:
        body = {
            "userId": user_id,
            "achievementId": achievement_id,
            "unlockedAt": unlocked_at.isoformat(),
        }

        try:
            if self._client is not None:
                await self._deliver(self._client, body)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    await self._deliver(client, body)
        except httpx.HTTPError as e:
            error = wrap_external_exception(
                e,
                operation="notify_unlock",
                user_id=user_id,
                context={"achievement_id": achievement_id, "url": self.url}
            )
            if isinstance(error, NotificationError):
                error.achievement_id = achievement_id
            raise error from e

        logger.info(f"Delivered unlock webhook for user {user_id}, achievement {achievement_id}")

    async def _deliver(self, client: httpx.AsyncClient, body: dict) -> None:
        await retry_with_backoff(
            self._post,
            client,
            body,
            max_retries=self.max_retries,
            base_delay=self.base_delay
        )

    async def _post(self, client: httpx.AsyncClient, body: dict) -> None:
        response = await client.post(self.url, json=body)
        response.raise_for_status()


def build_notifier() -> UnlockNotifier:
    """Webhook notifier when UNLOCK_WEBHOOK_URL is set, logging notifier otherwise"""
    if config.UNLOCK_WEBHOOK_URL:
        logger.info(f"Unlock notifications go to webhook {config.UNLOCK_WEBHOOK_URL}")
        return WebhookUnlockNotifier(config.UNLOCK_WEBHOOK_URL)
    return LoggingUnlockNotifier()
