"""
Achievement engine for the legal-education platform

Watches user-activity events (lessons, quizzes, essays, exam simulations,
study sessions, case-law references) and unlocks achievements whose
conditions the user's metrics newly satisfy:
- State aggregation (per-user metric snapshot, streaks)
- Condition evaluation (ten condition families)
- Exactly-once awarding and unlock notifications
"""

from src.gamification.achievement_system import AchievementService
from src.gamification.aggregator import StateAggregator
from src.gamification.awarder import Awarder
from src.gamification.evaluator import matches, progress
from src.gamification.registry import AchievementRegistry, load_registry

__all__ = [
    "AchievementService",
    "StateAggregator",
    "Awarder",
    "matches",
    "progress",
    "AchievementRegistry",
    "load_registry",
]
