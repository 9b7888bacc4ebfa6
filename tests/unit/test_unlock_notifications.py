"""Unit tests for unlock notifiers (src/services/unlock_notifications.py)"""
import json
import logging
import pytest
from datetime import datetime, timezone
from unittest.mock import patch

import httpx

from src.exceptions import NotificationError
from src.services.unlock_notifications import (
    LoggingUnlockNotifier,
    WebhookUnlockNotifier,
    build_notifier,
)

UNLOCKED_AT = datetime(2025, 3, 3, 12, 0, tzinfo=timezone.utc)
WEBHOOK_URL = "https://hooks.example.com/unlocks"


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_logging_notifier(caplog):
    with caplog.at_level(logging.INFO, logger="src.services.unlock_notifications"):
        await LoggingUnlockNotifier().on_unlocked("user-1", "first-lesson", UNLOCKED_AT)

    assert "first-lesson" in caplog.text


@pytest.mark.asyncio
async def test_webhook_posts_unlock():
    """Test the webhook receives the unlock as camelCase JSON"""
    received = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append(json.loads(request.content))
        return httpx.Response(204)

    async with _client(handler) as client:
        notifier = WebhookUnlockNotifier(WEBHOOK_URL, client=client)
        await notifier.on_unlocked("user-1", "first-lesson", UNLOCKED_AT)

    assert received == [{
        "userId": "user-1",
        "achievementId": "first-lesson",
        "unlockedAt": "2025-03-03T12:00:00+00:00",
    }]


@pytest.mark.asyncio
async def test_webhook_retries_server_errors():
    """Test 503 responses are retried until the webhook accepts"""
    responses = iter([httpx.Response(503), httpx.Response(503), httpx.Response(200)])
    calls = []

    def handler(request):
        calls.append(request)
        return next(responses)

    async with _client(handler) as client:
        notifier = WebhookUnlockNotifier(WEBHOOK_URL, client=client, base_delay=0)
        await notifier.on_unlocked("user-1", "first-lesson", UNLOCKED_AT)

    assert len(calls) == 3


@pytest.mark.asyncio
async def test_webhook_client_error_not_retried():
    """Test a 400 fails immediately with NotificationError"""
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(400)

    async with _client(handler) as client:
        notifier = WebhookUnlockNotifier(WEBHOOK_URL, client=client, base_delay=0)
        with pytest.raises(NotificationError) as exc_info:
            await notifier.on_unlocked("user-1", "first-lesson", UNLOCKED_AT)

    assert len(calls) == 1
    assert exc_info.value.status_code == 400
    assert exc_info.value.achievement_id == "first-lesson"


@pytest.mark.asyncio
async def test_webhook_gives_up_after_retries():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as client:
        notifier = WebhookUnlockNotifier(WEBHOOK_URL, client=client, max_retries=2, base_delay=0)
        with pytest.raises(NotificationError):
            await notifier.on_unlocked("user-1", "first-lesson", UNLOCKED_AT)


def test_build_notifier_defaults_to_logging():
    with patch('src.services.unlock_notifications.config.UNLOCK_WEBHOOK_URL', ""):
        assert isinstance(build_notifier(), LoggingUnlockNotifier)


def test_build_notifier_webhook():
    with patch('src.services.unlock_notifications.config.UNLOCK_WEBHOOK_URL', WEBHOOK_URL):
        notifier = build_notifier()

    assert isinstance(notifier, WebhookUnlockNotifier)
    assert notifier.url == WEBHOOK_URL
