"""
Service Layer Package

Integration services around the achievement engine:
- Unlock notifications: hand-off of newly unlocked achievements to
  downstream delivery (log or webhook)
"""

from src.services.unlock_notifications import (
    LoggingUnlockNotifier,
    UnlockNotifier,
    WebhookUnlockNotifier,
    build_notifier,
)

__all__ = [
    "LoggingUnlockNotifier",
    "UnlockNotifier",
    "WebhookUnlockNotifier",
    "build_notifier",
]
