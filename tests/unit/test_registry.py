"""Unit tests for Achievement Registry (src/gamification/registry.py)"""
import json
import pytest
from unittest.mock import AsyncMock

from src.exceptions import RegistryLoadError
from src.gamification.catalog import DEFAULT_ACHIEVEMENTS
from src.gamification.registry import TYPE_INTEREST, AchievementRegistry, load_registry
from src.models.achievement import AchievementType
from src.models.events import EventKind


def _record(achievement_id: str, achievement_type: str, condition, **extra) -> dict:
    return {
        "id": achievement_id,
        "title": achievement_id.title(),
        "description": "",
        "icon": "🏆",
        "type": achievement_type,
        "condition": condition,
        **extra,
    }


class TestRegistryLoad:
    """Test load-time validation"""

    def test_default_catalog_loads(self, registry):
        """Test the shipped catalog is internally consistent"""
        assert len(registry) == 41
        assert len(DEFAULT_ACHIEVEMENTS) == 41

    def test_default_catalog_covers_every_type(self, registry):
        assert {a.type for a in registry} == set(AchievementType)

    def test_all_problems_reported_together(self):
        """Test every invalid definition is listed in one error"""
        records = [
            _record("ok", "STREAK_MILESTONE", {"streak": 3}),
            _record("wrong-type", "LESSON_MILESTONE", {"streak": 3}),
            _record("typo", "QUIZ_ACCURACY", {"quizAcuracy": 50}),
        ]

        with pytest.raises(RegistryLoadError) as exc_info:
            AchievementRegistry.from_records(records)

        problems = exc_info.value.problems
        assert any(p.startswith("wrong-type:") for p in problems)
        assert any(p.startswith("typo:") for p in problems)
        assert not any(p.startswith("ok:") for p in problems)

    def test_duplicate_ids_rejected(self):
        records = [
            _record("dup", "STREAK_MILESTONE", {"streak": 3}),
            _record("dup", "STREAK_MILESTONE", {"streak": 7}),
        ]

        with pytest.raises(RegistryLoadError) as exc_info:
            AchievementRegistry.from_records(records)

        assert exc_info.value.problems == ["dup: duplicate achievement id"]

    def test_condition_as_json_text(self):
        """Test conditions stored as JSON text are decoded"""
        registry = AchievementRegistry.from_records([
            _record("streak-3", "STREAK_MILESTONE", '{"streak": 3}')
        ])
        assert registry.get("streak-3").condition.streak == 3

    def test_invalid_json_condition(self):
        with pytest.raises(RegistryLoadError):
            AchievementRegistry.from_records([_record("bad", "STREAK_MILESTONE", "{streak: 3")])

    def test_database_columns_ignored(self):
        """Test bookkeeping columns such as created_at don't fail the load"""
        registry = AchievementRegistry.from_records([
            _record("streak-3", "STREAK_MILESTONE", {"streak": 3}, created_at="2025-01-01")
        ])
        assert len(registry) == 1

    def test_from_json_file(self, tmp_path):
        path = tmp_path / "achievements.json"
        path.write_text(json.dumps(DEFAULT_ACHIEVEMENTS), encoding="utf-8")

        assert len(AchievementRegistry.from_json_file(path)) == 41

    def test_from_json_file_not_a_list(self, tmp_path):
        path = tmp_path / "achievements.json"
        path.write_text('{"id": "x"}', encoding="utf-8")

        with pytest.raises(RegistryLoadError):
            AchievementRegistry.from_json_file(path)

    @pytest.mark.asyncio
    async def test_load_registry_from_store(self):
        store = AsyncMock()
        store.list_achievements.return_value = [_record("streak-3", "STREAK_MILESTONE", {"streak": 3})]

        registry = await load_registry(store)

        assert registry.get("streak-3") is not None
        store.list_achievements.assert_awaited_once()


class TestCandidates:
    """Test event kind -> achievement candidate lookup"""

    def test_every_type_has_interest(self):
        assert set(TYPE_INTEREST) == set(AchievementType)

    def test_case_reference_candidates(self, registry):
        ids = {a.id for a in registry.candidates_for(EventKind.CASE_REFERENCED)}
        assert ids == {"case-citation-pro", "irish-law-scholar"}

    def test_lesson_candidates_include_streaks_and_combos(self, registry):
        types = {a.type for a in registry.candidates_for(EventKind.LESSON_COMPLETED)}
        assert types == {
            AchievementType.LESSON_MILESTONE,
            AchievementType.STREAK_MILESTONE,
            AchievementType.COMBO_ACHIEVEMENT,
        }

    def test_quiz_never_triggers_subject_mastery(self, registry):
        types = {a.type for a in registry.candidates_for(EventKind.QUIZ_ATTEMPTED)}
        assert AchievementType.SUBJECT_MASTERY not in types

    def test_ordering(self, registry):
        """Test catalog order is type, then sort order"""
        lessons = [a.id for a in registry.all() if a.type == AchievementType.LESSON_MILESTONE]
        assert lessons == ["first-lesson", "video-enthusiast", "binge-learner", "module-master"]
