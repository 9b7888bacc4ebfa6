"""Activity event builders shared by the test suite"""
import itertools
from datetime import datetime, timezone

from src.models.events import ActivityEvent


# 2025-03-03 is a Monday; the 8th and 9th are that week's weekend
MONDAY = datetime(2025, 3, 3, 12, 0, tzinfo=timezone.utc)

_event_ids = itertools.count(1)


def make_event(kind: str, payload: dict = None, at: datetime = MONDAY,
               user_id: str = "user-1", event_id: str = None) -> ActivityEvent:
    """Build an activity event with a unique id unless one is given"""
    return ActivityEvent(
        user_id=user_id,
        kind=kind,
        occurred_at=at,
        payload=payload or {},
        event_id=event_id or f"evt-{next(_event_ids)}",
    )


def lesson(at: datetime = MONDAY, module_id: str = None, module_progress: float = None, **kwargs) -> ActivityEvent:
    payload = {"lessonId": "lesson-1"}
    if module_id is not None:
        payload["moduleId"] = module_id
    if module_progress is not None:
        payload["moduleProgressPercent"] = module_progress
    return make_event("LessonCompleted", payload, at=at, **kwargs)


def quiz(total: int, correct: int, at: datetime = MONDAY, answers=None, **kwargs) -> ActivityEvent:
    payload = {"quizId": "quiz-1", "totalQuestions": total, "correctAnswers": correct}
    if answers is not None:
        payload["answers"] = answers
    return make_event("QuizAttempted", payload, at=at, **kwargs)


def essay(subject: str = "Criminal Law", score=None, question: str = "q-1",
          taken: int = 1800, average=None, at: datetime = MONDAY, **kwargs) -> ActivityEvent:
    payload = {"questionId": question, "subject": subject, "timeTakenSeconds": taken}
    if score is not None:
        payload["score"] = score
    if average is not None:
        payload["averageAttemptSeconds"] = average
    return make_event("EssaySubmitted", payload, at=at, **kwargs)


def simulation(passed: bool = True, seconds: int = 10000, score=None,
               at: datetime = MONDAY, **kwargs) -> ActivityEvent:
    payload = {"simulationId": "sim-1", "passed": passed, "totalTimeSeconds": seconds}
    if score is not None:
        payload["overallScore"] = score
    return make_event("SimulationCompleted", payload, at=at, **kwargs)


def study_session(seconds: int, at: datetime = MONDAY, started_at: str = None, **kwargs) -> ActivityEvent:
    payload = {"sessionId": "session-1", "durationSeconds": seconds}
    if started_at is not None:
        payload["startedAt"] = started_at
    return make_event("StudySessionRecorded", payload, at=at, **kwargs)


def case_reference(cases: int, irish: int = 0, at: datetime = MONDAY, **kwargs) -> ActivityEvent:
    payload = {"essayId": "essay-1", "casesReferenced": cases, "irishCasesReferenced": irish}
    return make_event("CaseReferenced", payload, at=at, **kwargs)
