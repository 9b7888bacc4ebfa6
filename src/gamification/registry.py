"""
Achievement Registry

Immutable catalog of achievement definitions, validated once at startup.
Any definition whose condition does not fit its declared type makes the whole
load fail: an inconsistent rule could silently never fire, or always fire.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
from pathlib import Path
import json
import logging

from pydantic import ValidationError

from src.exceptions import RegistryLoadError
from src.models.achievement import Achievement, AchievementType
from src.models.events import EventKind

logger = logging.getLogger(__name__)

_STUDY_KINDS = (
    EventKind.LESSON_COMPLETED,
    EventKind.QUIZ_ATTEMPTED,
    EventKind.ESSAY_SUBMITTED,
    EventKind.SIMULATION_COMPLETED,
    EventKind.STUDY_SESSION_RECORDED,
)

# Which event kinds can change the metrics each achievement type reads
TYPE_INTEREST: Dict[AchievementType, Tuple[EventKind, ...]] = {
    AchievementType.LESSON_MILESTONE: (EventKind.LESSON_COMPLETED,),
    AchievementType.STREAK_MILESTONE: _STUDY_KINDS,
    AchievementType.QUIZ_ACCURACY: (EventKind.QUIZ_ATTEMPTED,),
    AchievementType.PRACTICE_MILESTONE: (EventKind.ESSAY_SUBMITTED,),
    AchievementType.EXAM_SIMULATION: (EventKind.SIMULATION_COMPLETED,),
    AchievementType.SUBJECT_MASTERY: (EventKind.ESSAY_SUBMITTED,),
    AchievementType.IMPROVEMENT_ACHIEVEMENT: (EventKind.ESSAY_SUBMITTED,),
    AchievementType.TIME_ACHIEVEMENT: (EventKind.STUDY_SESSION_RECORDED, EventKind.ESSAY_SUBMITTED),
    AchievementType.CASE_LAW_MASTERY: (EventKind.CASE_REFERENCED,),
    AchievementType.COMBO_ACHIEVEMENT: (
        EventKind.LESSON_COMPLETED,
        EventKind.QUIZ_ATTEMPTED,
        EventKind.ESSAY_SUBMITTED,
        EventKind.SIMULATION_COMPLETED,
    ),
}

_ACHIEVEMENT_KEYS = ("id", "title", "description", "icon", "type", "condition", "sort_order")


class AchievementRegistry:
    """Read-only achievement catalog indexed by id and by interested event kind"""

    def __init__(self, achievements: Iterable[Achievement]):
        self._achievements: Tuple[Achievement, ...] = tuple(
            sorted(achievements, key=lambda a: (a.type.value, a.sort_order, a.title))
        )
        self._by_id: Dict[str, Achievement] = {a.id: a for a in self._achievements}

        by_kind: Dict[EventKind, List[Achievement]] = {kind: [] for kind in EventKind}
        for achievement in self._achievements:
            for kind in TYPE_INTEREST[achievement.type]:
                by_kind[kind].append(achievement)
        self._by_kind: Dict[EventKind, Tuple[Achievement, ...]] = {
            kind: tuple(items) for kind, items in by_kind.items()
        }

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> "AchievementRegistry":
        """
        Build a registry from raw definitions (database rows or JSON objects)

        Raises:
            RegistryLoadError: one or more definitions are invalid or ids repeat
        """
        achievements: List[Achievement] = []
        problems: List[str] = []
        seen_ids = set()

        for index, record in enumerate(records):
            label = record.get("id") or record.get("title") or f"#{index}"
            data = {key: record[key] for key in _ACHIEVEMENT_KEYS if key in record and record[key] is not None}
            if isinstance(data.get("condition"), str):
                try:
                    data["condition"] = json.loads(data["condition"])
                except json.JSONDecodeError as e:
                    problems.append(f"{label}: condition is not valid JSON ({e})")
                    continue
            if "id" in data:
                data["id"] = str(data["id"])

            try:
                achievement = Achievement.model_validate(data)
            except ValidationError as e:
                for err in e.errors():
                    location = ".".join(str(part) for part in err["loc"]) or "definition"
                    problems.append(f"{label}: {location}: {err['msg']}")
                continue

            if achievement.id in seen_ids:
                problems.append(f"{label}: duplicate achievement id")
                continue
            seen_ids.add(achievement.id)
            achievements.append(achievement)

        if problems:
            raise RegistryLoadError(
                message=f"Achievement catalog has {len(problems)} invalid definition(s)",
                problems=problems,
                operation="load_registry",
            )

        logger.info(f"Loaded {len(achievements)} achievements into registry")
        return cls(achievements)

    @classmethod
    def from_json_file(cls, path: Path) -> "AchievementRegistry":
        """Load a catalog from a JSON array of definitions"""
        try:
            records = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise RegistryLoadError(
                message=f"Could not read achievement catalog {path}: {e}",
                operation="load_registry",
                cause=e,
            )
        if not isinstance(records, list):
            raise RegistryLoadError(
                message=f"Achievement catalog {path} must be a JSON array",
                operation="load_registry",
            )
        return cls.from_records(records)

    def __len__(self) -> int:
        return len(self._achievements)

    def __iter__(self):
        return iter(self._achievements)

    def all(self) -> Tuple[Achievement, ...]:
        return self._achievements

    def get(self, achievement_id: str) -> Optional[Achievement]:
        return self._by_id.get(achievement_id)

    def candidates_for(self, kind: EventKind) -> Tuple[Achievement, ...]:
        """Achievements whose type can be affected by an event of this kind"""
        return self._by_kind.get(kind, ())


async def load_registry(store) -> AchievementRegistry:
    """Load and validate the catalog persisted in store (fatal on error)"""
    records = await store.list_achievements()
    return AchievementRegistry.from_records(records)
