"""
State Aggregator

Folds activity events into a user's metric snapshot, one event at a time.
All "today"/"this week" logic is derived from the event's occurred_at in the
engine timezone, never from the wall clock, so replaying the same events
yields the same snapshot.
"""

from typing import Optional
from datetime import date, time, timedelta
from zoneinfo import ZoneInfo
import logging

from pydantic import ValidationError

from src import config
from src.exceptions import MalformedEventError
from src.gamification.streak_system import (
    StreakState,
    advance_streak,
    update_weekend_days,
)
from src.models.events import (
    ActivityEvent,
    EventKind,
    EventPayload,
    PAYLOAD_MODELS,
    STUDY_EVENT_KINDS,
    CaseReferencedPayload,
    EssaySubmittedPayload,
    LessonCompletedPayload,
    QuizAttemptedPayload,
    SimulationCompletedPayload,
    StudySessionRecordedPayload,
)
from src.models.snapshot import DayBucket, EventFlags, QuestionHistory, UserMetricSnapshot

logger = logging.getLogger(__name__)


def parse_payload(event: ActivityEvent) -> Optional[EventPayload]:
    """
    Validate an event's payload against the schema of its kind

    Returns:
        Parsed payload, or None for unknown kinds

    Raises:
        MalformedEventError: payload is missing or has invalid required fields
    """
    kind = event.event_kind
    if kind is None:
        return None

    try:
        return PAYLOAD_MODELS[kind].model_validate(event.payload)
    except ValidationError as e:
        fields = [".".join(str(part) for part in err["loc"]) for err in e.errors()]
        details = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'payload'}: {err['msg']}"
            for err in e.errors()
        )
        raise MalformedEventError(
            message=f"{kind.value} payload invalid: {details}",
            kind=kind.value,
            fields=fields,
            user_id=event.user_id,
            operation="parse_payload",
        )


class StateAggregator:
    """Pure fold of events into UserMetricSnapshot"""

    def __init__(
        self,
        tz: Optional[ZoneInfo] = None,
        pacing_window: int = config.PACING_WINDOW,
        pacing_tolerance: float = config.PACING_TOLERANCE,
        event_id_window: int = config.EVENT_ID_WINDOW,
    ):
        self.tz = tz or ZoneInfo(config.ENGINE_TIMEZONE)
        self.pacing_window = pacing_window
        self.pacing_tolerance = pacing_tolerance
        self.event_id_window = event_id_window

        self._updaters = {
            EventKind.LESSON_COMPLETED: self._apply_lesson,
            EventKind.QUIZ_ATTEMPTED: self._apply_quiz,
            EventKind.ESSAY_SUBMITTED: self._apply_essay,
            EventKind.SIMULATION_COMPLETED: self._apply_simulation,
            EventKind.STUDY_SESSION_RECORDED: self._apply_study_session,
            EventKind.CASE_REFERENCED: self._apply_case_reference,
        }

    def new_snapshot(self, user_id: str) -> UserMetricSnapshot:
        return UserMetricSnapshot(user_id=user_id)

    def apply(self, snapshot: UserMetricSnapshot, event: ActivityEvent) -> UserMetricSnapshot:
        """
        Return the snapshot updated with event

        The input snapshot is never modified. Unknown kinds return the input
        unchanged.

        Raises:
            MalformedEventError: payload invalid for the event kind (nothing applied)
        """
        payload = parse_payload(event)
        if payload is None:
            logger.debug(f"Ignoring unknown event kind '{event.kind}' for user {event.user_id}")
            return snapshot

        kind = event.event_kind
        updated = snapshot.model_copy(deep=True)
        updated.event_flags = EventFlags()

        local = event.occurred_at.astimezone(self.tz)
        day = local.date()

        if kind in STUDY_EVENT_KINDS:
            activity_time = local.time()
            if isinstance(payload, StudySessionRecordedPayload) and payload.started_at is not None:
                activity_time = payload.started_at.astimezone(self.tz).time()
            self._record_study_day(updated, kind, day, activity_time)

        self._updaters[kind](updated, payload, day)

        if event.event_id and self.event_id_window > 0:
            updated.recent_event_ids = (updated.recent_event_ids + [event.event_id])[-self.event_id_window:]

        return updated

    # ==========================================
    # Day-scoped state
    # ==========================================

    def _record_study_day(
        self,
        snapshot: UserMetricSnapshot,
        kind: EventKind,
        day: date,
        activity_time: time,
    ) -> None:
        streak = advance_streak(
            StreakState(snapshot.current_streak_days, snapshot.best_streak_days, snapshot.last_study_date),
            day,
        )
        snapshot.current_streak_days = streak.current_streak
        snapshot.best_streak_days = streak.best_streak
        snapshot.last_study_date = streak.last_activity_date

        if snapshot.current_day is None or day >= snapshot.current_day:
            snapshot.current_day = day
            snapshot.weekend_days = update_weekend_days(snapshot.weekend_days, day)

        # Keep only the current and previous day
        oldest_kept = snapshot.current_day - timedelta(days=1)
        snapshot.day_buckets = {
            d: bucket for d, bucket in snapshot.day_buckets.items() if d >= oldest_kept
        }

        bucket = self._bucket(snapshot, day)
        if bucket is None:
            return
        bucket.kinds.add(kind.value)
        if bucket.earliest_time is None or activity_time < bucket.earliest_time:
            bucket.earliest_time = activity_time
        if bucket.latest_time is None or activity_time > bucket.latest_time:
            bucket.latest_time = activity_time

    def _bucket(self, snapshot: UserMetricSnapshot, day: date) -> Optional[DayBucket]:
        """Bucket for day, created on demand; None when day is outside the retained window"""
        if snapshot.current_day is None or day < snapshot.current_day - timedelta(days=1):
            return None
        return snapshot.day_buckets.setdefault(day, DayBucket())

    # ==========================================
    # Per-kind update rules
    # ==========================================

    def _apply_lesson(self, snapshot: UserMetricSnapshot, payload: LessonCompletedPayload, day: date) -> None:
        snapshot.lessons_completed += 1

        bucket = self._bucket(snapshot, day)
        if bucket is not None:
            bucket.lessons_completed += 1

        if payload.module_id is not None and payload.module_progress_percent is not None:
            previous = snapshot.module_progress.get(payload.module_id, 0.0)
            snapshot.module_progress[payload.module_id] = max(previous, payload.module_progress_percent)

    def _apply_quiz(self, snapshot: UserMetricSnapshot, payload: QuizAttemptedPayload, day: date) -> None:
        snapshot.quizzes_completed += 1
        snapshot.quiz_questions_answered += payload.total_questions
        snapshot.quiz_correct_answers += payload.correct_answers

        if snapshot.quiz_questions_answered > 0:
            snapshot.quiz_accuracy = (
                snapshot.quiz_correct_answers / snapshot.quiz_questions_answered * 100
            )

        if payload.answers is not None:
            for correct in payload.answers:
                snapshot.consecutive_correct = snapshot.consecutive_correct + 1 if correct else 0
        elif payload.total_questions > 0:
            if payload.correct_answers == payload.total_questions:
                snapshot.consecutive_correct += payload.total_questions
            else:
                # Answer order unknown: the run cannot be proven to survive
                snapshot.consecutive_correct = 0

        snapshot.event_flags.perfect_quiz = (
            payload.total_questions > 0 and payload.correct_answers == payload.total_questions
        )

    def _apply_essay(self, snapshot: UserMetricSnapshot, payload: EssaySubmittedPayload, day: date) -> None:
        subject = payload.subject

        snapshot.essays_submitted += 1
        snapshot.per_subject_essays_completed[subject] = (
            snapshot.per_subject_essays_completed.get(subject, 0) + 1
        )
        last_studied = snapshot.subject_last_studied.get(subject)
        if last_studied is None or day > last_studied:
            snapshot.subject_last_studied[subject] = day

        # Per-question history
        history = snapshot.questions.setdefault(payload.question_id, QuestionHistory())
        history.attempts += 1
        if history.attempts == 1:
            history.first_score = payload.score
        history.latest_score = payload.score

        # Score histograms, bucketed by whole score
        if payload.score is not None:
            score_bucket = int(payload.score)
            snapshot.essay_score_counts[score_bucket] = snapshot.essay_score_counts.get(score_bucket, 0) + 1
            subject_counts = snapshot.per_subject_score_counts.setdefault(subject, {})
            subject_counts[score_bucket] = subject_counts.get(score_bucket, 0) + 1

        # Timing
        average = payload.average_attempt_seconds
        taken = payload.time_taken_seconds
        within_pace = average is not None and abs(taken - average) <= average * self.pacing_tolerance
        snapshot.pacing_window = (snapshot.pacing_window + [within_pace])[-self.pacing_window:]
        snapshot.event_flags.under_average_time = average is not None and taken < average

    def _apply_simulation(self, snapshot: UserMetricSnapshot, payload: SimulationCompletedPayload, day: date) -> None:
        snapshot.simulations_completed += 1
        if payload.passed:
            snapshot.simulations_passed += 1

        if snapshot.fastest_simulation_seconds is None or payload.total_time_seconds < snapshot.fastest_simulation_seconds:
            snapshot.fastest_simulation_seconds = payload.total_time_seconds

        if payload.overall_score is not None:
            if snapshot.best_simulation_score is None or payload.overall_score > snapshot.best_simulation_score:
                snapshot.best_simulation_score = payload.overall_score

    def _apply_study_session(self, snapshot: UserMetricSnapshot, payload: StudySessionRecordedPayload, day: date) -> None:
        bucket = self._bucket(snapshot, day)
        if bucket is None:
            logger.debug(f"Study session {payload.session_id} on {day} is outside the retained days")
            return
        bucket.study_seconds += payload.duration_seconds
        snapshot.best_day_study_seconds = max(snapshot.best_day_study_seconds, bucket.study_seconds)

    def _apply_case_reference(self, snapshot: UserMetricSnapshot, payload: CaseReferencedPayload, day: date) -> None:
        snapshot.cases_referenced += payload.cases_referenced
        snapshot.max_cases_in_essay = max(snapshot.max_cases_in_essay, payload.cases_referenced)
        if payload.irish_cases_referenced > 0:
            snapshot.irish_cases_used_count += 1
