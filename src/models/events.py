"""Activity event models"""
from enum import Enum
from typing import Any, Optional
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from src.models.achievement import UnlockRecord


class EventKind(str, Enum):
    """Event kinds the aggregator understands"""
    LESSON_COMPLETED = "LessonCompleted"
    QUIZ_ATTEMPTED = "QuizAttempted"
    ESSAY_SUBMITTED = "EssaySubmitted"
    SIMULATION_COMPLETED = "SimulationCompleted"
    STUDY_SESSION_RECORDED = "StudySessionRecorded"
    CASE_REFERENCED = "CaseReferenced"


KNOWN_EVENT_KINDS = {kind.value for kind in EventKind}

# Kinds that count as studying on the event's calendar day
STUDY_EVENT_KINDS = {
    EventKind.LESSON_COMPLETED,
    EventKind.QUIZ_ATTEMPTED,
    EventKind.ESSAY_SUBMITTED,
    EventKind.SIMULATION_COMPLETED,
    EventKind.STUDY_SESSION_RECORDED,
}


class ActivityEvent(BaseModel):
    """Immutable fact about something a user did"""
    model_config = ConfigDict(frozen=True)

    user_id: str = Field(min_length=1)
    kind: str
    occurred_at: datetime
    payload: dict[str, Any] = Field(default_factory=dict)
    event_id: Optional[str] = None  # Idempotency key assigned by the producer

    @field_validator("occurred_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """Naive timestamps are interpreted as UTC"""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def event_kind(self) -> Optional[EventKind]:
        """Known kind, or None for kinds this engine does not understand"""
        if self.kind in KNOWN_EVENT_KINDS:
            return EventKind(self.kind)
        return None


# ==========================================
# Payload schemas (one per known kind)
# ==========================================

class EventPayload(BaseModel):
    """Base payload; extra keys from newer producers are ignored"""
    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class LessonCompletedPayload(EventPayload):
    lesson_id: str
    module_id: Optional[str] = None
    module_progress_percent: Optional[float] = Field(default=None, ge=0, le=100)


class QuizAttemptedPayload(EventPayload):
    quiz_id: str
    total_questions: int = Field(ge=0)
    correct_answers: int = Field(ge=0)
    answers: Optional[list[bool]] = None  # Per-question correctness, in answer order

    @model_validator(mode="after")
    def check_counts(self):
        if self.correct_answers > self.total_questions:
            raise ValueError("correctAnswers cannot exceed totalQuestions")
        if self.answers is not None:
            if len(self.answers) != self.total_questions:
                raise ValueError("answers must have one entry per question")
            if sum(self.answers) != self.correct_answers:
                raise ValueError("answers disagree with correctAnswers")
        return self


class EssaySubmittedPayload(EventPayload):
    question_id: str
    subject: str = Field(min_length=1)
    time_taken_seconds: int = Field(ge=0)
    score: Optional[float] = Field(default=None, ge=0, le=100)
    average_attempt_seconds: Optional[int] = Field(default=None, gt=0)


class SimulationCompletedPayload(EventPayload):
    simulation_id: str
    passed: bool
    total_time_seconds: int = Field(ge=0)
    overall_score: Optional[float] = Field(default=None, ge=0, le=100)


class StudySessionRecordedPayload(EventPayload):
    session_id: str
    duration_seconds: int = Field(ge=0)
    started_at: Optional[datetime] = None

    @field_validator("started_at")
    @classmethod
    def assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class CaseReferencedPayload(EventPayload):
    essay_id: str
    cases_referenced: int = Field(ge=0)
    irish_cases_referenced: int = Field(default=0, ge=0)


PAYLOAD_MODELS: dict[EventKind, type[EventPayload]] = {
    EventKind.LESSON_COMPLETED: LessonCompletedPayload,
    EventKind.QUIZ_ATTEMPTED: QuizAttemptedPayload,
    EventKind.ESSAY_SUBMITTED: EssaySubmittedPayload,
    EventKind.SIMULATION_COMPLETED: SimulationCompletedPayload,
    EventKind.STUDY_SESSION_RECORDED: StudySessionRecordedPayload,
    EventKind.CASE_REFERENCED: CaseReferencedPayload,
}


class SubmitResult(BaseModel):
    """Outcome of submit_event, returned to the producer"""
    accepted: bool
    reason: Optional[str] = None
    unlocked: list[UnlockRecord] = Field(default_factory=list)
