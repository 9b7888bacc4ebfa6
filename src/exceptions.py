"""
Standardized exception hierarchy for the achievement engine
Provides rich context, consistent logging, and user-friendly error messages
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any, List
from uuid import uuid4
import logging

logger = logging.getLogger(__name__)


class AchievementEngineError(Exception):
    """
    Base exception for all achievement engine errors

    Provides:
    - Automatic timestamping
    - Request ID for tracing
    - User-friendly messages
    - Structured context
    - Automatic logging

    Example:
        raise AchievementEngineError(
            message="Failed to save snapshot",
            user_id="user-1",
            operation="save_snapshot",
            context={"version": 4}
        )
    """

    retryable: bool = False

    def __init__(
        self,
        message: str,
        user_id: Optional[str] = None,
        request_id: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        user_message: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.user_id = user_id
        self.request_id = request_id or str(uuid4())
        self.operation = operation
        self.context = context or {}
        self.cause = cause
        self.user_message = user_message or "An error occurred. Please try again."
        self.timestamp = datetime.now(timezone.utc)

        # Auto-log on creation
        self._log_error()

    def _log_error(self) -> None:
        """Log error with full context"""
        log_data = {
            "error_type": self.__class__.__name__,
            "error_message": self.message,  # Avoid conflict with logging's 'message' field
            "request_id": self.request_id,
            "user_id": self.user_id,
            "operation": self.operation,
            "error_context": self.context,  # Avoid conflict with logging's 'context'
            "timestamp": self.timestamp.isoformat()
        }

        if self.cause:
            log_data["cause"] = str(self.cause)
            logger.error(f"{self.__class__.__name__}: {self.message}", extra=log_data, exc_info=self.cause)
        else:
            logger.error(f"{self.__class__.__name__}: {self.message}", extra=log_data)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for API responses"""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "user_message": self.user_message,
            "request_id": self.request_id,
            "retryable": self.retryable,
            "timestamp": self.timestamp.isoformat()
        }


def _merge_context(kwargs: Dict[str, Any], extra: Dict[str, Any]) -> Dict[str, Any]:
    """Pop caller-supplied context out of kwargs and merge subclass fields into it"""
    merged = dict(kwargs.pop("context", None) or {})
    merged.update(extra)
    return merged


# ==========================================
# Event Ingestion Errors
# ==========================================

class MalformedEventError(AchievementEngineError):
    """
    Raised when an event payload is missing fields required by its kind

    The event is rejected as a whole; nothing is applied to the snapshot.

    Example:
        raise MalformedEventError(
            message="EssaySubmitted payload missing 'subject'",
            kind="EssaySubmitted",
            fields=["subject"],
            user_id="user-1"
        )
    """

    def __init__(
        self,
        message: str,
        kind: Optional[str] = None,
        fields: Optional[List[str]] = None,
        **kwargs
    ):
        self.kind = kind
        self.fields = fields or []
        super().__init__(
            message=message,
            user_message=f"Rejected {kind or 'event'}: {message}",
            context=_merge_context(kwargs, {"kind": kind, "fields": self.fields}),
            **kwargs
        )


# ==========================================
# Persistence Errors
# ==========================================

class PersistenceError(AchievementEngineError):
    """
    Base class for snapshot and unlock store failures

    Transient by nature: callers of submit_event are expected to redeliver.
    """

    retryable = True


class ConnectionError(PersistenceError):
    """Database connection failed"""

    def __init__(self, message: str = "Database connection failed", **kwargs):
        super().__init__(
            message=message,
            user_message="We're having trouble connecting to the database. Please try again in a moment.",
            **kwargs
        )


class QueryError(PersistenceError):
    """Database query execution failed"""

    def __init__(
        self,
        message: str,
        query: Optional[str] = None,
        **kwargs
    ):
        self.query = query
        super().__init__(
            message=message,
            user_message="We encountered an issue saving your progress. Please try again.",
            context=_merge_context(kwargs, {"query": query}),
            **kwargs
        )


class ConcurrentUpdateError(PersistenceError):
    """Snapshot was written by another writer since it was read"""

    def __init__(
        self,
        message: str,
        expected_version: Optional[int] = None,
        **kwargs
    ):
        self.expected_version = expected_version
        super().__init__(
            message=message,
            user_message="Your progress was updated concurrently. Please try again.",
            context=_merge_context(kwargs, {"expected_version": expected_version}),
            **kwargs
        )


# ==========================================
# Registry & Configuration Errors
# ==========================================

class RegistryLoadError(AchievementEngineError):
    """
    Achievement catalog contains definitions inconsistent with their type

    Fatal: the service must not start with an inconsistent registry.
    """

    def __init__(
        self,
        message: str,
        problems: Optional[List[str]] = None,
        **kwargs
    ):
        self.problems = problems or []
        super().__init__(
            message=message,
            user_message="The achievement catalog is invalid. Please contact support.",
            context=_merge_context(kwargs, {"problems": self.problems}),
            **kwargs
        )


class ConfigurationError(AchievementEngineError):
    """System configuration is invalid or missing"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs
    ):
        self.config_key = config_key
        super().__init__(
            message=message,
            user_message="The system is not properly configured. Please contact support.",
            context=_merge_context(kwargs, {"config_key": config_key}),
            **kwargs
        )


# ==========================================
# Notification Errors
# ==========================================

class NotificationError(AchievementEngineError):
    """Unlock notification could not be delivered (never revokes the unlock)"""

    retryable = True

    def __init__(
        self,
        message: str,
        achievement_id: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs
    ):
        self.achievement_id = achievement_id
        self.status_code = status_code
        super().__init__(
            message=message,
            user_message="We couldn't send your achievement notification. It will be retried.",
            context=_merge_context(kwargs, {"achievement_id": achievement_id, "status_code": status_code}),
            **kwargs
        )


# ==========================================
# Helper Functions
# ==========================================

def wrap_external_exception(
    error: Exception,
    operation: str,
    user_id: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> AchievementEngineError:
    """
    Wrap external exceptions (psycopg, httpx) into our exception hierarchy

    Args:
        error: Original exception
        operation: What operation was being performed
        user_id: User ID if applicable
        context: Additional context

    Returns:
        Appropriate AchievementEngineError subclass

    Example:
        try:
            await cur.execute(query)
        except psycopg.Error as e:
            raise wrap_external_exception(
                e,
                operation="insert_unlock",
                user_id="user-1",
            )
    """
    import httpx
    import psycopg

    # Database errors
    if isinstance(error, psycopg.OperationalError):
        return ConnectionError(
            message=f"Database connection failed: {str(error)}",
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )
    elif isinstance(error, psycopg.Error):
        return QueryError(
            message=f"Database query failed: {str(error)}",
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )

    # HTTP errors
    elif isinstance(error, httpx.HTTPStatusError):
        return NotificationError(
            message=f"Notification endpoint returned error: {error.response.status_code}",
            status_code=error.response.status_code,
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )
    elif isinstance(error, httpx.HTTPError):
        return NotificationError(
            message=f"Notification request failed: {str(error)}",
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )

    # Generic fallback
    else:
        return AchievementEngineError(
            message=f"{operation} failed: {str(error)}",
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )
