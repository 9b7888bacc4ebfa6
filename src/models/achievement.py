"""Achievement models: catalog definitions, typed conditions and unlock records"""
from enum import Enum
from typing import Optional, Union, Literal
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator, model_validator
from pydantic.alias_generators import to_camel

from src import config


class AchievementType(str, Enum):
    """Condition families; each one has its own condition shape"""
    LESSON_MILESTONE = "LESSON_MILESTONE"
    STREAK_MILESTONE = "STREAK_MILESTONE"
    QUIZ_ACCURACY = "QUIZ_ACCURACY"
    PRACTICE_MILESTONE = "PRACTICE_MILESTONE"
    EXAM_SIMULATION = "EXAM_SIMULATION"
    SUBJECT_MASTERY = "SUBJECT_MASTERY"
    IMPROVEMENT_ACHIEVEMENT = "IMPROVEMENT_ACHIEVEMENT"
    TIME_ACHIEVEMENT = "TIME_ACHIEVEMENT"
    CASE_LAW_MASTERY = "CASE_LAW_MASTERY"
    COMBO_ACHIEVEMENT = "COMBO_ACHIEVEMENT"


def Threshold():
    return Field(default=None, ge=0)


def Percentage():
    return Field(default=None, ge=0, le=100)


class Condition(BaseModel):
    """
    Base for condition descriptors.

    Stored configuration uses camelCase keys; unknown keys are rejected so a
    typo in the catalog fails at load time instead of silently never firing.
    """
    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def present_fields(self) -> dict:
        """Fields actually set in the descriptor, keyed by stored (camelCase) name"""
        return self.model_dump(by_alias=True, exclude_none=True)

    @model_validator(mode="after")
    def _require_something(self):
        if not self.present_fields():
            raise ValueError(f"{type(self).__name__} declares no requirement")
        return self


class LessonMilestoneCondition(Condition):
    lessons_completed: Optional[int] = Threshold()
    lessons_in_one_day: Optional[int] = Threshold()
    module_completion: Optional[float] = Percentage()


class StreakMilestoneCondition(Condition):
    streak: Optional[int] = Threshold()
    weekend_study: Optional[Literal[True]] = None
    study_before: Optional[int] = Field(default=None, ge=1, le=23)
    study_after: Optional[int] = Field(default=None, ge=0, le=23)


class QuizAccuracyCondition(Condition):
    quizzes_completed: Optional[int] = Threshold()
    quiz_accuracy: Optional[float] = Percentage()
    min_quizzes: Optional[int] = Threshold()
    perfect_quiz: Optional[Literal[True]] = None
    consecutive_correct: Optional[int] = Threshold()

    @model_validator(mode="after")
    def _min_quizzes_needs_accuracy(self):
        if self.min_quizzes is not None and self.quiz_accuracy is None:
            raise ValueError("minQuizzes is only valid together with quizAccuracy")
        return self


class PracticeMilestoneCondition(Condition):
    essays_submitted: Optional[int] = Threshold()
    high_scores: Optional[int] = Threshold()
    min_score: Optional[int] = Field(default=None, ge=0, le=100)
    under_average_time: Optional[Literal[True]] = None
    all_subjects_attempted: Optional[Literal[True]] = None

    @model_validator(mode="after")
    def _high_scores_pair(self):
        if (self.high_scores is None) != (self.min_score is None):
            raise ValueError("highScores and minScore must be declared together")
        return self


class ExamSimulationCondition(Condition):
    simulations_completed: Optional[int] = Threshold()
    simulations_passed: Optional[int] = Threshold()
    simulation_time: Optional[int] = Threshold()
    perfect_simulation: Optional[Literal[True]] = None


class SubjectMasteryCondition(Condition):
    subject: str = Field(min_length=1)
    essays_completed: Optional[int] = Threshold()
    high_scores: Optional[int] = Threshold()
    min_score: Optional[int] = Field(default=None, ge=0, le=100)

    @model_validator(mode="after")
    def _subject_needs_threshold(self):
        if self.essays_completed is None and self.high_scores is None:
            raise ValueError("subject requires essaysCompleted or highScores")
        if (self.high_scores is None) != (self.min_score is None):
            raise ValueError("highScores and minScore must be declared together")
        return self


class ImprovementCondition(Condition):
    score_improvement: Optional[float] = Threshold()
    same_question: Optional[Literal[True]] = None
    failed_then_passed: Optional[Literal[True]] = None
    same_question_attempts: Optional[int] = Threshold()

    @model_validator(mode="after")
    def _same_question_needs_improvement(self):
        if self.same_question is not None and self.score_improvement is None:
            raise ValueError("sameQuestion is only valid together with scoreImprovement")
        return self


class TimeAchievementCondition(Condition):
    study_time_seconds: Optional[int] = Threshold()
    consistent_pacing: Optional[int] = Threshold()

    @model_validator(mode="after")
    def _pacing_fits_window(self):
        if self.consistent_pacing is not None and self.consistent_pacing > config.PACING_WINDOW:
            raise ValueError(
                f"consistentPacing {self.consistent_pacing} exceeds the pacing window of {config.PACING_WINDOW} essays"
            )
        return self


class CaseLawMasteryCondition(Condition):
    cases_referenced: Optional[int] = Threshold()
    irish_cases_used: Optional[int] = Threshold()


class ComboCondition(Condition):
    video_quiz_essay_same_day: Optional[Literal[True]] = None
    subjects_in_week: Optional[int] = Threshold()
    simulation_passed: Optional[Literal[True]] = None
    subject_mastery: Optional[float] = Percentage()


AchievementCondition = Union[
    LessonMilestoneCondition,
    StreakMilestoneCondition,
    QuizAccuracyCondition,
    PracticeMilestoneCondition,
    ExamSimulationCondition,
    SubjectMasteryCondition,
    ImprovementCondition,
    TimeAchievementCondition,
    CaseLawMasteryCondition,
    ComboCondition,
]

CONDITION_MODELS: dict[AchievementType, type[Condition]] = {
    AchievementType.LESSON_MILESTONE: LessonMilestoneCondition,
    AchievementType.STREAK_MILESTONE: StreakMilestoneCondition,
    AchievementType.QUIZ_ACCURACY: QuizAccuracyCondition,
    AchievementType.PRACTICE_MILESTONE: PracticeMilestoneCondition,
    AchievementType.EXAM_SIMULATION: ExamSimulationCondition,
    AchievementType.SUBJECT_MASTERY: SubjectMasteryCondition,
    AchievementType.IMPROVEMENT_ACHIEVEMENT: ImprovementCondition,
    AchievementType.TIME_ACHIEVEMENT: TimeAchievementCondition,
    AchievementType.CASE_LAW_MASTERY: CaseLawMasteryCondition,
    AchievementType.COMBO_ACHIEVEMENT: ComboCondition,
}


class Achievement(BaseModel):
    """Achievement definition; read-only once seeded"""
    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(min_length=1)
    title: str
    description: str
    icon: str
    type: AchievementType
    condition: AchievementCondition
    sort_order: int = 0

    @field_validator("condition", mode="before")
    @classmethod
    def _parse_condition_for_type(cls, value, info: ValidationInfo):
        """Validate the raw condition against the variant of the declared type"""
        achievement_type = info.data.get("type")
        if achievement_type is None or not isinstance(value, dict):
            return value
        try:
            return CONDITION_MODELS[achievement_type].model_validate(value)
        except ValidationError as e:
            raise ValueError("; ".join(
                f"{'.'.join(str(part) for part in err['loc']) or 'condition'}: {err['msg']}"
                for err in e.errors()
            ))

    @model_validator(mode="after")
    def _condition_matches_type(self):
        expected = CONDITION_MODELS[self.type]
        if not isinstance(self.condition, expected):
            raise ValueError(
                f"condition {type(self.condition).__name__} does not belong to type {self.type.value}"
            )
        return self


class UnlockRecord(BaseModel):
    """A user's unlocked achievement; created once, never mutated"""
    model_config = ConfigDict(frozen=True)

    user_id: str
    achievement_id: str
    unlocked_at: datetime


class AwardResult(BaseModel):
    """Outcome of an award attempt"""
    newly_unlocked: bool
    record: Optional[UnlockRecord] = None
