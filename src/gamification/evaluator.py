"""
Condition Evaluator

Pure mapping (condition descriptor, snapshot) -> matched. Every field present
in a descriptor must hold; a threshold of 0 or a metric never observed never
matches. Re-evaluating a satisfied condition keeps returning True; preventing
a second unlock is the awarder's job.
"""

from typing import Callable, Dict, List, Optional
from datetime import timedelta
import logging

from src import config
from src.models.achievement import (
    CaseLawMasteryCondition,
    ComboCondition,
    Condition,
    ExamSimulationCondition,
    ImprovementCondition,
    LessonMilestoneCondition,
    PracticeMilestoneCondition,
    QuizAccuracyCondition,
    StreakMilestoneCondition,
    SubjectMasteryCondition,
    TimeAchievementCondition,
)
from src.models.snapshot import UserMetricSnapshot
from src.gamification.streak_system import studied_whole_weekend

logger = logging.getLogger(__name__)


def _at_least(value: Optional[float], threshold: Optional[float]) -> bool:
    """value >= threshold, treating a non-positive threshold or missing value as unmet"""
    if threshold is None or threshold <= 0 or value is None:
        return False
    return value >= threshold


def _all(requirements: List[bool]) -> bool:
    # An empty list can only come from a descriptor that bypassed validation
    return bool(requirements) and all(requirements)


# ==========================================
# Per-family checks
# ==========================================

def _check_lesson_milestone(c: LessonMilestoneCondition, s: UserMetricSnapshot) -> bool:
    requirements = []
    if c.lessons_completed is not None:
        requirements.append(_at_least(s.lessons_completed, c.lessons_completed))
    if c.lessons_in_one_day is not None:
        today = s.today()
        requirements.append(_at_least(today.lessons_completed if today else None, c.lessons_in_one_day))
    if c.module_completion is not None:
        best_module = max(s.module_progress.values(), default=None)
        requirements.append(_at_least(best_module, c.module_completion))
    return _all(requirements)


def _check_streak_milestone(c: StreakMilestoneCondition, s: UserMetricSnapshot) -> bool:
    requirements = []
    if c.streak is not None:
        requirements.append(_at_least(s.current_streak_days, c.streak))
    if c.weekend_study:
        requirements.append(studied_whole_weekend(s.weekend_days))
    today = s.today()
    if c.study_before is not None:
        earliest = today.earliest_time if today else None
        requirements.append(earliest is not None and earliest.hour < c.study_before)
    if c.study_after is not None:
        latest = today.latest_time if today else None
        requirements.append(latest is not None and latest.hour >= c.study_after)
    return _all(requirements)


def _check_quiz_accuracy(c: QuizAccuracyCondition, s: UserMetricSnapshot) -> bool:
    requirements = []
    if c.quizzes_completed is not None:
        requirements.append(_at_least(s.quizzes_completed, c.quizzes_completed))
    if c.quiz_accuracy is not None:
        if c.min_quizzes is not None:
            requirements.append(s.quizzes_completed >= c.min_quizzes)
        requirements.append(_at_least(s.quiz_accuracy, c.quiz_accuracy))
    if c.perfect_quiz:
        requirements.append(s.event_flags.perfect_quiz)
    if c.consecutive_correct is not None:
        requirements.append(_at_least(s.consecutive_correct, c.consecutive_correct))
    return _all(requirements)


def _check_practice_milestone(c: PracticeMilestoneCondition, s: UserMetricSnapshot) -> bool:
    requirements = []
    if c.essays_submitted is not None:
        requirements.append(_at_least(s.essays_submitted, c.essays_submitted))
    if c.high_scores is not None:
        requirements.append(_at_least(s.high_score_count(c.min_score), c.high_scores))
    if c.under_average_time:
        requirements.append(s.event_flags.under_average_time)
    if c.all_subjects_attempted:
        requirements.append(_at_least(len(s.per_subject_essays_completed), config.SUBJECT_COUNT))
    return _all(requirements)


def _check_exam_simulation(c: ExamSimulationCondition, s: UserMetricSnapshot) -> bool:
    requirements = []
    if c.simulations_completed is not None:
        requirements.append(_at_least(s.simulations_completed, c.simulations_completed))
    if c.simulations_passed is not None:
        requirements.append(_at_least(s.simulations_passed, c.simulations_passed))
    if c.simulation_time is not None:
        fastest = s.fastest_simulation_seconds
        requirements.append(c.simulation_time > 0 and fastest is not None and fastest <= c.simulation_time)
    if c.perfect_simulation:
        requirements.append(_at_least(s.best_simulation_score, 100))
    return _all(requirements)


def _check_subject_mastery(c: SubjectMasteryCondition, s: UserMetricSnapshot) -> bool:
    requirements = []
    if c.essays_completed is not None:
        requirements.append(_at_least(s.per_subject_essays_completed.get(c.subject), c.essays_completed))
    if c.high_scores is not None:
        if c.subject in s.per_subject_score_counts:
            requirements.append(_at_least(s.high_score_count(c.min_score, subject=c.subject), c.high_scores))
        else:
            requirements.append(False)
    return _all(requirements)


def _check_improvement(c: ImprovementCondition, s: UserMetricSnapshot) -> bool:
    requirements = []
    histories = list(s.questions.values())
    if c.score_improvement is not None:
        requirements.append(any(
            _at_least(h.score_improvement, c.score_improvement) for h in histories
        ))
    if c.failed_then_passed:
        requirements.append(any(
            h.attempts >= 2
            and h.first_score is not None
            and h.latest_score is not None
            and h.first_score < config.PASS_SCORE <= h.latest_score
            for h in histories
        ))
    if c.same_question_attempts is not None:
        most_attempts = max((h.attempts for h in histories), default=None)
        requirements.append(_at_least(most_attempts, c.same_question_attempts))
    return _all(requirements)


def _check_time_achievement(c: TimeAchievementCondition, s: UserMetricSnapshot) -> bool:
    requirements = []
    if c.study_time_seconds is not None:
        requirements.append(_at_least(s.best_day_study_seconds, c.study_time_seconds))
    if c.consistent_pacing is not None:
        window = s.pacing_window
        n = c.consistent_pacing
        requirements.append(n > 0 and len(window) >= n and all(window[-n:]))
    return _all(requirements)


def _check_case_law_mastery(c: CaseLawMasteryCondition, s: UserMetricSnapshot) -> bool:
    requirements = []
    if c.cases_referenced is not None:
        requirements.append(_at_least(s.max_cases_in_essay, c.cases_referenced))
    if c.irish_cases_used is not None:
        requirements.append(_at_least(s.irish_cases_used_count, c.irish_cases_used))
    return _all(requirements)


def _check_combo(c: ComboCondition, s: UserMetricSnapshot) -> bool:
    requirements = []
    if c.video_quiz_essay_same_day:
        today = s.today()
        requirements.append(
            today is not None
            and {"LessonCompleted", "QuizAttempted", "EssaySubmitted"} <= today.kinds
        )
    if c.subjects_in_week is not None:
        requirements.append(_at_least(_subjects_studied_in_week(s), c.subjects_in_week))
    if c.simulation_passed:
        requirements.append(s.simulations_passed > 0)
    if c.subject_mastery is not None:
        requirements.append(_at_least(s.quiz_accuracy, c.subject_mastery))
    return _all(requirements)


def _subjects_studied_in_week(s: UserMetricSnapshot) -> Optional[int]:
    """Distinct essay subjects in the 7 local days ending on the current day"""
    if s.current_day is None:
        return None
    week_start = s.current_day - timedelta(days=6)
    return sum(
        1 for studied_on in s.subject_last_studied.values()
        if week_start <= studied_on <= s.current_day
    )


_CHECKS: Dict[type, Callable[[Condition, UserMetricSnapshot], bool]] = {
    LessonMilestoneCondition: _check_lesson_milestone,
    StreakMilestoneCondition: _check_streak_milestone,
    QuizAccuracyCondition: _check_quiz_accuracy,
    PracticeMilestoneCondition: _check_practice_milestone,
    ExamSimulationCondition: _check_exam_simulation,
    SubjectMasteryCondition: _check_subject_mastery,
    ImprovementCondition: _check_improvement,
    TimeAchievementCondition: _check_time_achievement,
    CaseLawMasteryCondition: _check_case_law_mastery,
    ComboCondition: _check_combo,
}


def matches(condition: Condition, snapshot: UserMetricSnapshot) -> bool:
    """
    Check whether snapshot satisfies every requirement of condition

    Args:
        condition: Typed condition descriptor
        snapshot: User's current metric snapshot

    Returns:
        True if all present fields are satisfied
    """
    check = _CHECKS.get(type(condition))
    if check is None:
        logger.warning(f"No evaluator for condition {type(condition).__name__}")
        return False
    return check(condition, snapshot)


# ==========================================
# Progress toward locked achievements
# ==========================================

def progress(condition: Condition, snapshot: UserMetricSnapshot) -> Dict:
    """
    Calculate progress toward a condition's primary counter

    Flag-only conditions report 0/1 or 1/1.

    Returns:
        {
            'current': float,
            'required': float,
            'percentage': int,
            'description': str
        }
    """
    current, required = _progress_pair(condition, snapshot)
    if current is None:
        current = 0
    if required is None:
        current, required = (1 if matches(condition, snapshot) else 0), 1

    percentage = min(100, int(current / required * 100)) if required > 0 else 0

    return {
        'current': current,
        'required': required,
        'percentage': percentage,
        'description': f"{_fmt(current)}/{_fmt(required)}"
    }


def _progress_pair(c: Condition, s: UserMetricSnapshot):
    """(current, required) for the first counter-like field, or (None, None)"""
    if isinstance(c, LessonMilestoneCondition):
        if c.lessons_completed is not None:
            return s.lessons_completed, c.lessons_completed
        if c.lessons_in_one_day is not None:
            today = s.today()
            return (today.lessons_completed if today else 0), c.lessons_in_one_day
        if c.module_completion is not None:
            return max(s.module_progress.values(), default=0), c.module_completion
    elif isinstance(c, StreakMilestoneCondition) and c.streak is not None:
        return s.current_streak_days, c.streak
    elif isinstance(c, QuizAccuracyCondition):
        if c.quizzes_completed is not None:
            return s.quizzes_completed, c.quizzes_completed
        if c.quiz_accuracy is not None and c.min_quizzes is not None and s.quizzes_completed < c.min_quizzes:
            return s.quizzes_completed, c.min_quizzes
        if c.quiz_accuracy is not None:
            return s.quiz_accuracy, c.quiz_accuracy
        if c.consecutive_correct is not None:
            return s.consecutive_correct, c.consecutive_correct
    elif isinstance(c, PracticeMilestoneCondition):
        if c.essays_submitted is not None:
            return s.essays_submitted, c.essays_submitted
        if c.high_scores is not None:
            return s.high_score_count(c.min_score), c.high_scores
        if c.all_subjects_attempted:
            return len(s.per_subject_essays_completed), config.SUBJECT_COUNT
    elif isinstance(c, ExamSimulationCondition):
        if c.simulations_completed is not None:
            return s.simulations_completed, c.simulations_completed
        if c.simulations_passed is not None:
            return s.simulations_passed, c.simulations_passed
    elif isinstance(c, SubjectMasteryCondition):
        if c.essays_completed is not None:
            return s.per_subject_essays_completed.get(c.subject, 0), c.essays_completed
        return s.high_score_count(c.min_score, subject=c.subject), c.high_scores
    elif isinstance(c, ImprovementCondition) and c.same_question_attempts is not None:
        return max((h.attempts for h in s.questions.values()), default=0), c.same_question_attempts
    elif isinstance(c, TimeAchievementCondition):
        if c.study_time_seconds is not None:
            return s.best_day_study_seconds, c.study_time_seconds
    elif isinstance(c, CaseLawMasteryCondition):
        if c.cases_referenced is not None:
            return s.max_cases_in_essay, c.cases_referenced
        if c.irish_cases_used is not None:
            return s.irish_cases_used_count, c.irish_cases_used
    elif isinstance(c, ComboCondition) and c.subjects_in_week is not None:
        return _subjects_studied_in_week(s) or 0, c.subjects_in_week
    return None, None


def _fmt(value) -> str:
    if isinstance(value, float) and not value.is_integer():
        return f"{value:.1f}"
    return str(int(value))
