"""Unit tests for Condition Evaluator (src/gamification/evaluator.py)"""
import pytest
from datetime import date, time

from src.gamification.evaluator import matches, progress
from src.models.achievement import (
    CaseLawMasteryCondition,
    ComboCondition,
    ExamSimulationCondition,
    ImprovementCondition,
    LessonMilestoneCondition,
    PracticeMilestoneCondition,
    QuizAccuracyCondition,
    StreakMilestoneCondition,
    SubjectMasteryCondition,
    TimeAchievementCondition,
)
from src.models.snapshot import DayBucket, EventFlags, QuestionHistory, UserMetricSnapshot

TODAY = date(2025, 3, 5)


def snapshot(**fields) -> UserMetricSnapshot:
    return UserMetricSnapshot(user_id="user-1", **fields)


def today_bucket(**fields) -> dict:
    return {"current_day": TODAY, "day_buckets": {TODAY: DayBucket(**fields)}}


# ============================================================================
# Threshold Semantics
# ============================================================================

class TestThresholds:
    """Test the shared >= / zero / missing-metric rules"""

    def test_at_threshold_matches(self):
        assert matches(LessonMilestoneCondition(lessons_completed=10), snapshot(lessons_completed=10))

    def test_below_threshold(self):
        assert not matches(LessonMilestoneCondition(lessons_completed=10), snapshot(lessons_completed=9))

    def test_zero_threshold_never_matches(self):
        """Test a threshold of 0 is never satisfied"""
        assert not matches(PracticeMilestoneCondition(essays_submitted=0), snapshot(essays_submitted=5))

    def test_missing_metric_never_matches(self):
        """Test an undefined accuracy doesn't satisfy an accuracy rule"""
        condition = QuizAccuracyCondition(quiz_accuracy=50)
        assert not matches(condition, snapshot(quiz_accuracy=None))

    def test_repeat_evaluation_still_true(self):
        """Test a satisfied condition keeps evaluating true"""
        condition = LessonMilestoneCondition(lessons_completed=1)
        s = snapshot(lessons_completed=3)
        assert matches(condition, s) and matches(condition, s)


# ============================================================================
# Per-family checks
# ============================================================================

class TestLessonMilestone:

    def test_lessons_in_one_day(self):
        condition = LessonMilestoneCondition(lessons_in_one_day=5)
        assert matches(condition, snapshot(**today_bucket(lessons_completed=5)))
        assert not matches(condition, snapshot(**today_bucket(lessons_completed=4)))

    def test_lessons_in_one_day_reads_only_today(self):
        """Test yesterday's lessons don't count toward today"""
        s = snapshot(
            current_day=TODAY,
            day_buckets={date(2025, 3, 4): DayBucket(lessons_completed=5), TODAY: DayBucket(lessons_completed=1)},
        )
        assert not matches(LessonMilestoneCondition(lessons_in_one_day=5), s)

    def test_module_completion(self):
        condition = LessonMilestoneCondition(module_completion=100)
        assert matches(condition, snapshot(module_progress={"m-1": 40, "m-2": 100}))
        assert not matches(condition, snapshot(module_progress={"m-1": 99.5}))
        assert not matches(condition, snapshot())


class TestStreakMilestone:

    def test_streak(self):
        assert matches(StreakMilestoneCondition(streak=3), snapshot(current_streak_days=3))
        assert not matches(StreakMilestoneCondition(streak=3), snapshot(current_streak_days=2, best_streak_days=9))

    def test_weekend_study(self):
        condition = StreakMilestoneCondition(weekend_study=True)
        assert matches(condition, snapshot(weekend_days=[date(2025, 3, 8), date(2025, 3, 9)]))
        assert not matches(condition, snapshot(weekend_days=[date(2025, 3, 9)]))

    def test_study_before_is_strict(self):
        """Test studying at exactly 07:00 is not before 7"""
        condition = StreakMilestoneCondition(study_before=7)
        assert matches(condition, snapshot(**today_bucket(earliest_time=time(6, 59))))
        assert not matches(condition, snapshot(**today_bucket(earliest_time=time(7, 0))))

    def test_study_after_counts_the_whole_hour(self):
        """Test any activity during the 22:00 hour counts as after 22"""
        condition = StreakMilestoneCondition(study_after=22)
        assert matches(condition, snapshot(**today_bucket(latest_time=time(22, 0))))
        assert matches(condition, snapshot(**today_bucket(latest_time=time(22, 30))))
        assert not matches(condition, snapshot(**today_bucket(latest_time=time(21, 59))))

    def test_time_of_day_without_activity(self):
        assert not matches(StreakMilestoneCondition(study_before=7), snapshot())


class TestQuizAccuracy:

    def test_accuracy_gated_by_min_quizzes(self):
        """Test 100% accuracy over 49 quizzes doesn't satisfy a 50-quiz gate"""
        condition = QuizAccuracyCondition(quiz_accuracy=90, min_quizzes=50)
        assert not matches(condition, snapshot(quizzes_completed=49, quiz_accuracy=100))
        assert matches(condition, snapshot(quizzes_completed=50, quiz_accuracy=90))
        assert not matches(condition, snapshot(quizzes_completed=50, quiz_accuracy=89.9))

    def test_perfect_quiz_reads_event_flag(self):
        condition = QuizAccuracyCondition(perfect_quiz=True)
        assert matches(condition, snapshot(event_flags=EventFlags(perfect_quiz=True)))
        assert not matches(condition, snapshot())

    def test_consecutive_correct(self):
        condition = QuizAccuracyCondition(consecutive_correct=10)
        assert matches(condition, snapshot(consecutive_correct=12))
        assert not matches(condition, snapshot(consecutive_correct=9))


class TestPracticeMilestone:

    def test_high_scores(self):
        condition = PracticeMilestoneCondition(high_scores=3, min_score=95)
        assert matches(condition, snapshot(essay_score_counts={95: 2, 99: 1, 60: 4}))
        assert not matches(condition, snapshot(essay_score_counts={95: 2, 94: 5}))

    def test_under_average_time(self):
        condition = PracticeMilestoneCondition(under_average_time=True)
        assert matches(condition, snapshot(event_flags=EventFlags(under_average_time=True)))
        assert not matches(condition, snapshot())

    def test_all_subjects_attempted(self):
        condition = PracticeMilestoneCondition(all_subjects_attempted=True)
        eight = {f"Subject {i}": 1 for i in range(8)}
        seven = {f"Subject {i}": 1 for i in range(7)}
        assert matches(condition, snapshot(per_subject_essays_completed=eight))
        assert not matches(condition, snapshot(per_subject_essays_completed=seven))


class TestExamSimulation:

    def test_simulation_time(self):
        condition = ExamSimulationCondition(simulation_time=9000)
        assert matches(condition, snapshot(fastest_simulation_seconds=9000))
        assert not matches(condition, snapshot(fastest_simulation_seconds=9001))
        assert not matches(condition, snapshot())

    def test_perfect_simulation(self):
        condition = ExamSimulationCondition(perfect_simulation=True)
        assert matches(condition, snapshot(best_simulation_score=100))
        assert not matches(condition, snapshot(best_simulation_score=99))

    def test_simulations_passed(self):
        condition = ExamSimulationCondition(simulations_passed=3)
        assert matches(condition, snapshot(simulations_completed=5, simulations_passed=3))
        assert not matches(condition, snapshot(simulations_completed=5, simulations_passed=2))


class TestSubjectMastery:

    def test_subject_isolation(self):
        """Test essays in another subject never count"""
        condition = SubjectMasteryCondition(subject="Criminal Law", essays_completed=10)
        assert not matches(condition, snapshot(per_subject_essays_completed={"Tort Law": 10}))
        assert matches(condition, snapshot(per_subject_essays_completed={"Criminal Law": 10}))

    def test_subject_high_scores(self):
        condition = SubjectMasteryCondition(subject="Contract Law", high_scores=5, min_score=80)
        s = snapshot(
            essay_score_counts={85: 5},
            per_subject_score_counts={"Contract Law": {85: 4}, "Equity": {85: 1}},
        )
        assert not matches(condition, s)
        s = snapshot(per_subject_score_counts={"Contract Law": {80: 3, 92: 2}})
        assert matches(condition, s)

    def test_subject_never_seen(self):
        condition = SubjectMasteryCondition(subject="Equity", high_scores=1, min_score=50)
        assert not matches(condition, snapshot())


class TestImprovement:

    def test_score_improvement(self):
        condition = ImprovementCondition(score_improvement=20, same_question=True)
        assert matches(condition, snapshot(questions={"q": QuestionHistory(attempts=2, first_score=50, latest_score=70)}))
        assert not matches(condition, snapshot(questions={"q": QuestionHistory(attempts=2, first_score=50, latest_score=69)}))

    def test_score_improvement_needs_two_attempts(self):
        condition = ImprovementCondition(score_improvement=20)
        assert not matches(condition, snapshot(questions={"q": QuestionHistory(attempts=1, first_score=10, latest_score=90)}))

    def test_failed_then_passed(self):
        condition = ImprovementCondition(failed_then_passed=True)
        assert matches(condition, snapshot(questions={"q": QuestionHistory(attempts=2, first_score=45, latest_score=50)}))
        assert not matches(condition, snapshot(questions={"q": QuestionHistory(attempts=2, first_score=50, latest_score=80)}))
        assert not matches(condition, snapshot(questions={"q": QuestionHistory(attempts=2, first_score=45, latest_score=None)}))

    def test_same_question_attempts(self):
        condition = ImprovementCondition(same_question_attempts=3)
        assert matches(condition, snapshot(questions={"a": QuestionHistory(attempts=1), "b": QuestionHistory(attempts=3)}))
        assert not matches(condition, snapshot(questions={"a": QuestionHistory(attempts=2)}))


class TestTimeAchievement:

    def test_study_time(self):
        condition = TimeAchievementCondition(study_time_seconds=18000)
        assert matches(condition, snapshot(best_day_study_seconds=18000))
        assert not matches(condition, snapshot(best_day_study_seconds=17999))

    def test_consistent_pacing_last_n(self):
        """Test only the most recent N essays matter"""
        condition = TimeAchievementCondition(consistent_pacing=5)
        assert matches(condition, snapshot(pacing_window=[False, True, True, True, True, True]))
        assert not matches(condition, snapshot(pacing_window=[True, True, True, True, False]))
        assert not matches(condition, snapshot(pacing_window=[True, True, True, True]))


class TestCaseLawMastery:

    def test_cases_in_one_essay(self):
        condition = CaseLawMasteryCondition(cases_referenced=5)
        assert matches(condition, snapshot(max_cases_in_essay=5, cases_referenced=5))
        assert not matches(condition, snapshot(max_cases_in_essay=4, cases_referenced=12))

    def test_irish_cases(self):
        condition = CaseLawMasteryCondition(irish_cases_used=10)
        assert matches(condition, snapshot(irish_cases_used_count=10))
        assert not matches(condition, snapshot(irish_cases_used_count=9))


class TestCombo:

    def test_video_quiz_essay_same_day(self):
        condition = ComboCondition(video_quiz_essay_same_day=True)
        kinds = {"LessonCompleted", "QuizAttempted", "EssaySubmitted"}
        assert matches(condition, snapshot(**today_bucket(kinds=kinds)))
        assert not matches(condition, snapshot(**today_bucket(kinds={"LessonCompleted", "QuizAttempted"})))

    def test_subjects_in_week(self):
        condition = ComboCondition(subjects_in_week=3)
        s = snapshot(current_day=TODAY, subject_last_studied={
            "Equity": date(2025, 3, 5),
            "Tort Law": date(2025, 2, 27),
            "Contract Law": date(2025, 3, 1),
        })
        assert matches(condition, s)

    def test_subjects_outside_week_ignored(self):
        condition = ComboCondition(subjects_in_week=3)
        s = snapshot(current_day=TODAY, subject_last_studied={
            "Equity": date(2025, 3, 5),
            "Tort Law": date(2025, 2, 26),
            "Contract Law": date(2025, 3, 1),
        })
        assert not matches(condition, s)

    def test_all_present_fields_required(self):
        """Test combo requirements are conjunctive"""
        condition = ComboCondition(simulation_passed=True, subject_mastery=50)
        assert matches(condition, snapshot(simulations_passed=1, quiz_accuracy=50))
        assert not matches(condition, snapshot(simulations_passed=1, quiz_accuracy=49))
        assert not matches(condition, snapshot(simulations_passed=0, quiz_accuracy=80))


# ============================================================================
# Progress
# ============================================================================

class TestProgress:
    """Test progress toward locked achievements"""

    def test_counter_progress(self):
        result = progress(LessonMilestoneCondition(lessons_completed=10), snapshot(lessons_completed=4))
        assert result == {'current': 4, 'required': 10, 'percentage': 40, 'description': "4/10"}

    def test_progress_capped_at_100(self):
        result = progress(PracticeMilestoneCondition(essays_submitted=5), snapshot(essays_submitted=8))
        assert result['percentage'] == 100

    def test_gated_accuracy_reports_quiz_count_first(self):
        condition = QuizAccuracyCondition(quiz_accuracy=90, min_quizzes=50)
        result = progress(condition, snapshot(quizzes_completed=20, quiz_accuracy=95))
        assert result['current'] == 20
        assert result['required'] == 50

    def test_flag_progress(self):
        condition = QuizAccuracyCondition(perfect_quiz=True)
        assert progress(condition, snapshot())['description'] == "0/1"

    def test_fractional_metric(self):
        result = progress(QuizAccuracyCondition(quiz_accuracy=90), snapshot(quiz_accuracy=45.5))
        assert result['description'] == "45.5/90"
        assert result['percentage'] == 50
