"""Global test fixtures for achievement engine tests"""
import pytest
from unittest.mock import AsyncMock, MagicMock
from zoneinfo import ZoneInfo

from src.db.memory_store import InMemoryAchievementStore
from src.gamification.achievement_system import AchievementService
from src.gamification.aggregator import StateAggregator
from src.gamification.catalog import DEFAULT_ACHIEVEMENTS
from src.gamification.registry import AchievementRegistry


# ============================================================================
# Engine Fixtures
# ============================================================================

@pytest.fixture
def test_user_id():
    """Standard test user ID"""
    return "user-1"


@pytest.fixture
def aggregator():
    """Aggregator on the UTC calendar"""
    return StateAggregator(tz=ZoneInfo("UTC"))


@pytest.fixture
def registry():
    """Registry built from the default catalog"""
    return AchievementRegistry.from_records(DEFAULT_ACHIEVEMENTS)


@pytest.fixture
def memory_store():
    """Empty in-memory store"""
    return InMemoryAchievementStore()


@pytest.fixture
def notifier():
    """Notifier recording every hand-off"""
    mock = AsyncMock()
    mock.on_unlocked = AsyncMock()
    return mock


@pytest.fixture
def service(memory_store, registry, notifier, aggregator):
    """Achievement service over the in-memory store and default catalog"""
    return AchievementService(memory_store, registry, notifier=notifier, aggregator=aggregator)


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def mock_db_cursor():
    """Mock database cursor with standard query results"""
    cursor = AsyncMock()
    cursor.fetchone = AsyncMock(return_value=None)
    cursor.fetchall = AsyncMock(return_value=[])
    cursor.execute = AsyncMock()
    return cursor


@pytest.fixture
def mock_db_connection(mock_db_cursor):
    """Mock connection whose cursor() context yields mock_db_cursor"""
    conn = MagicMock()
    conn.cursor.return_value.__aenter__.return_value = mock_db_cursor
    conn.commit = AsyncMock()
    return conn
