from softexam_tutor.dashboard import (
    accuracy_percent, calc_readiness_score, get_chapter_scores, get_readiness_color,
    get_readiness_label, get_study_summary, get_weak_chapters,
)
from softexam_tutor.models import CategoryStat, DailyPracticeRecord, LearningStatistics, WrongQuestionInfo


def _stats():
    return LearningStatistics(
        total_practices=4, total_questions=20, correct_answers=15, daily_streak=3,
        category_stats={
            "项目整合管理": CategoryStat("项目整合管理", 10, 9, True),
            "项目范围管理": CategoryStat("项目范围管理", 10, 6, False),
            "项目进度管理": CategoryStat("项目进度管理", 0, 0, False),
        },
        achievements={"80% accuracy"},
    )


def test_readiness_label():
    assert get_readiness_label(85) == "READY"
    assert get_readiness_label(70) == "LIKELY"
    assert get_readiness_label(55) == "NEEDS WORK"
    assert get_readiness_label(40) == "NOT READY"


def test_readiness_color():
    assert get_readiness_color(80) == "green"
    assert get_readiness_color(49.9) == "red"


def test_readiness_score_zero_with_no_data():
    assert calc_readiness_score(LearningStatistics(), []) == 0.0


def test_readiness_score_weights_wrong_book_mastery():
    entries = [WrongQuestionInfo("q1", mastered=True), WrongQuestionInfo("q2")]
    # 75% accuracy * 0.7 + 50% mastery * 0.3
    assert calc_readiness_score(_stats(), entries) == 67.5
    assert calc_readiness_score(_stats(), []) == 75.0


def test_accuracy_percent():
    assert accuracy_percent(_stats()) == 75.0


def test_chapter_scores_and_weak_chapters():
    scores = {c["name"]: c for c in get_chapter_scores(_stats())}
    assert scores["项目整合管理"]["score"] == 90.0
    assert scores["项目范围管理"]["label"] == "NEEDS WORK"
    # Chapters never answered are not reported as weak.
    assert get_weak_chapters(_stats()) == ["项目范围管理"]


def test_study_summary():
    summary = get_study_summary(_stats(), DailyPracticeRecord(2, 8, 6, 15))
    assert summary["daily_streak"] == 3
    assert summary["accuracy"] == 75.0
    assert summary["today_questions"] == 8
    assert summary["achievements"] == ["80% accuracy"]
