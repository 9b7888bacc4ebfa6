"""Per-user derived metric snapshot (the only input the evaluator reads)"""
from typing import Optional
from datetime import date, time

from pydantic import BaseModel, Field


class DayBucket(BaseModel):
    """Activity seen on one local calendar day"""
    kinds: set[str] = Field(default_factory=set)
    lessons_completed: int = 0
    study_seconds: int = 0
    earliest_time: Optional[time] = None
    latest_time: Optional[time] = None


class QuestionHistory(BaseModel):
    """Attempts on a single essay question"""
    attempts: int = 0
    first_score: Optional[float] = None
    latest_score: Optional[float] = None

    @property
    def score_improvement(self) -> Optional[float]:
        if self.attempts < 2 or self.first_score is None or self.latest_score is None:
            return None
        return self.latest_score - self.first_score


class EventFlags(BaseModel):
    """Flags describing only the most recently applied event"""
    perfect_quiz: bool = False
    under_average_time: bool = False


class UserMetricSnapshot(BaseModel):
    """
    Derived metrics for one user.

    Holds no history beyond what each metric's update rule needs: the last
    study date for streaks, the current/previous day buckets, the current
    week's weekend days, a bounded pacing window and a bounded window of
    recently applied event ids.
    """
    user_id: str
    version: int = 0
    current_day: Optional[date] = None
    recent_event_ids: list[str] = Field(default_factory=list)

    # Lessons
    lessons_completed: int = 0
    module_progress: dict[str, float] = Field(default_factory=dict)

    # Quizzes
    quizzes_completed: int = 0
    quiz_questions_answered: int = 0
    quiz_correct_answers: int = 0
    quiz_accuracy: Optional[float] = None
    consecutive_correct: int = 0

    # Essays
    essays_submitted: int = 0
    essay_score_counts: dict[int, int] = Field(default_factory=dict)
    per_subject_essays_completed: dict[str, int] = Field(default_factory=dict)
    per_subject_score_counts: dict[str, dict[int, int]] = Field(default_factory=dict)
    subject_last_studied: dict[str, date] = Field(default_factory=dict)
    questions: dict[str, QuestionHistory] = Field(default_factory=dict)
    pacing_window: list[bool] = Field(default_factory=list)

    # Simulations
    simulations_completed: int = 0
    simulations_passed: int = 0
    fastest_simulation_seconds: Optional[int] = None
    best_simulation_score: Optional[float] = None

    # Case law
    cases_referenced: int = 0
    max_cases_in_essay: int = 0
    irish_cases_used_count: int = 0

    # Streaks and study time
    current_streak_days: int = 0
    best_streak_days: int = 0
    last_study_date: Optional[date] = None
    weekend_days: list[date] = Field(default_factory=list)
    best_day_study_seconds: int = 0
    day_buckets: dict[date, DayBucket] = Field(default_factory=dict)

    event_flags: EventFlags = Field(default_factory=EventFlags)

    def today(self) -> Optional[DayBucket]:
        """Bucket for the day of the most recent event"""
        if self.current_day is None:
            return None
        return self.day_buckets.get(self.current_day)

    def high_score_count(self, min_score: int, subject: Optional[str] = None) -> int:
        """Number of essays scoring at least min_score, overall or for one subject"""
        if subject is None:
            counts = self.essay_score_counts
        else:
            counts = self.per_subject_score_counts.get(subject, {})
        return sum(count for bucket, count in counts.items() if bucket >= min_score)
