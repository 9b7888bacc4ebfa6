"""
Default achievement catalog

Raw definitions in the persisted shape (camelCase condition keys), seeded
into the achievements table by scripts/seed_achievements.py. Sort order
follows declaration order within each type.
"""

from typing import Any, Dict, List

from src.models.achievement import AchievementType

T = AchievementType


def _section(achievement_type: AchievementType, *entries) -> List[Dict[str, Any]]:
    return [
        {
            "id": achievement_id,
            "title": title,
            "description": description,
            "icon": icon,
            "type": achievement_type.value,
            "condition": condition,
            "sort_order": position,
        }
        for position, (achievement_id, title, description, icon, condition) in enumerate(entries)
    ]


DEFAULT_ACHIEVEMENTS: List[Dict[str, Any]] = [
    *_section(
        T.LESSON_MILESTONE,
        ("first-lesson", "First Lesson Completed", "Started your learning journey.", "📚",
         {"lessonsCompleted": 1}),
        ("video-enthusiast", "Video Enthusiast", "Watched 10 lesson videos.", "🎥",
         {"lessonsCompleted": 10}),
        ("binge-learner", "Binge Learner", "Watched 5 lessons in one day.", "⚡",
         {"lessonsInOneDay": 5}),
        ("module-master", "Module Master", "Completed 100% of one module.", "🎓",
         {"moduleCompletion": 100}),
    ),
    *_section(
        T.STREAK_MILESTONE,
        ("streak-3", "3-Day Streak", "Consistency begins.", "🔥", {"streak": 3}),
        ("streak-7", "7-Day Streak", "One week of dedication!", "🏆", {"streak": 7}),
        ("streak-30", "30-Day Streak", "Monthly warrior!", "💎", {"streak": 30}),
        ("weekend-warrior", "Weekend Warrior", "Studied on both Saturday and Sunday.", "🛡️",
         {"weekendStudy": True}),
        ("early-bird", "Early Bird", "Studied before 7 AM.", "🌅", {"studyBefore": 7}),
        ("night-owl", "Night Owl", "Studied after 10 PM.", "🦉", {"studyAfter": 22}),
    ),
    *_section(
        T.QUIZ_ACCURACY,
        ("quiz-novice", "Quiz Novice", "Completed your first quiz.", "✅", {"quizzesCompleted": 1}),
        ("subject-mastery-50", "50% Subject Mastery", "Halfway through your core subject.", "📊",
         {"quizAccuracy": 50, "minQuizzes": 10}),
        ("quiz-accuracy-90", "90% Quiz Accuracy", "Excellence in testing.", "🌟",
         {"quizAccuracy": 90, "minQuizzes": 50}),
        ("perfect-quiz", "Perfect Quiz", "100% on a quiz attempt.", "💯", {"perfectQuiz": True}),
        ("quiz-streak", "Quiz Streak", "10 consecutive correct answers.", "🎯",
         {"consecutiveCorrect": 10}),
    ),
    *_section(
        T.PRACTICE_MILESTONE,
        ("first-essay", "First Essay Submitted", "You've taken your first step!", "📝",
         {"essaysSubmitted": 1}),
        ("essays-5", "5 Essays Completed", "Building momentum!", "🚀", {"essaysSubmitted": 5}),
        ("essays-10", "10 Essays Completed", "Dedication paying off!", "💪", {"essaysSubmitted": 10}),
        ("practice-perfectionist", "Practice Perfectionist", "Scored 95%+ on 3 essays.", "⭐",
         {"highScores": 3, "minScore": 95}),
        ("speed-reader", "Speed Reader", "Finished essay under average time.", "⚡",
         {"underAverageTime": True}),
        ("all-subjects", "All Subjects Attempted", "Attempted at least 1 essay per subject.", "🌍",
         {"allSubjectsAttempted": True}),
    ),
    *_section(
        T.EXAM_SIMULATION,
        ("first-simulation", "Exam Simulation Completed", "You practised under real exam conditions.", "🎓",
         {"simulationsCompleted": 1}),
        ("simulation-master", "Simulation Master", "Passed 3 simulations.", "🏅", {"simulationsPassed": 3}),
        ("speed-demon", "Speed Demon", "Finished simulation under 2.5 hours.", "🔥",
         {"simulationTime": 9000}),
        ("perfect-simulation", "Perfect Simulation", "Scored 100% on a simulation.", "💎",
         {"perfectSimulation": True}),
    ),
    *_section(
        T.SUBJECT_MASTERY,
        ("criminal-law-champion", "Criminal Law Champion", "Completed 10 Criminal Law essays.", "⚖️",
         {"subject": "Criminal Law", "essaysCompleted": 10}),
        ("contract-law-expert", "Contract Law Expert", "Scored 80%+ on 5 Contract Law essays.", "📜",
         {"subject": "Contract Law", "highScores": 5, "minScore": 80}),
        ("tort-law-specialist", "Tort Law Specialist", "Completed 10 Tort Law essays.", "🛡️",
         {"subject": "Tort Law", "essaysCompleted": 10}),
        ("equity-scholar", "Equity Scholar", "Completed 10 Equity essays.", "⚖️",
         {"subject": "Equity", "essaysCompleted": 10}),
        ("company-law-pro", "Company Law Pro", "Completed 10 Company Law essays.", "🏢",
         {"subject": "Company Law", "essaysCompleted": 10}),
        ("property-law-master", "Property Law Master", "Completed 10 Property Law essays.", "🏠",
         {"subject": "Property Law", "essaysCompleted": 10}),
    ),
    *_section(
        T.IMPROVEMENT_ACHIEVEMENT,
        ("rising-star", "Rising Star", "Improved score by 20%+ on same question.", "📈",
         {"scoreImprovement": 20, "sameQuestion": True}),
        ("comeback-kid", "Comeback Kid", "Failed first attempt, passed second.", "💪",
         {"failedThenPassed": True}),
        ("growth-mindset", "Growth Mindset", "Attempted same question 3+ times.", "🌱",
         {"sameQuestionAttempts": 3}),
    ),
    *_section(
        T.TIME_ACHIEVEMENT,
        ("marathon-student", "Marathon Student", "Studied for 5+ hours in one day.", "🏃",
         {"studyTimeSeconds": 18000}),
        ("consistent-pacer", "Consistent Pacer", "Finished 5 essays within 10% of average time.", "⏱️",
         {"consistentPacing": 5}),
    ),
    *_section(
        T.CASE_LAW_MASTERY,
        ("case-citation-pro", "Case Citation Pro", "Referenced 5+ cases in one essay.", "📚",
         {"casesReferenced": 5}),
        ("irish-law-scholar", "Irish Law Scholar", "Referenced Irish cases in 10 essays.", "🇮🇪",
         {"irishCasesUsed": 10}),
    ),
    *_section(
        T.COMBO_ACHIEVEMENT,
        ("triple-threat", "Triple Threat", "Watched video + completed quiz + submitted essay in one day.", "🎯",
         {"videoQuizEssaySameDay": True}),
        ("well-rounded", "Well-Rounded", "Studied 3+ subjects in one week.", "🌈", {"subjectsInWeek": 3}),
        ("exam-ready", "Exam Ready", "Passed simulation + 50% subject mastery.", "🎖️",
         {"simulationPassed": True, "subjectMastery": 50}),
    ),
]
