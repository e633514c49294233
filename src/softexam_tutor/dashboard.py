"""Readiness dashboard scoring and statistics."""
from softexam_tutor.models import DailyPracticeRecord, LearningStatistics


def get_readiness_label(score: float) -> str:
    if score >= 80:
        return "READY"
    elif score >= 65:
        return "LIKELY"
    elif score >= 50:
        return "NEEDS WORK"
    return "NOT READY"


def get_readiness_color(score: float) -> str:
    if score >= 80:
        return "green"
    elif score >= 65:
        return "yellow"
    elif score >= 50:
        return "dark_orange"
    return "red"


def accuracy_percent(stats: LearningStatistics) -> float:
    return round(stats.accuracy * 100, 1)


def _wrong_book_mastery(wrong_entries: list) -> float:
    if not wrong_entries:
        return 0.0
    mastered = sum(1 for e in wrong_entries if e.mastered)
    return mastered / len(wrong_entries) * 100


def calc_readiness_score(stats: LearningStatistics, wrong_entries: list) -> float:
    if stats.total_questions == 0:
        return 0.0
    accuracy = stats.accuracy * 100
    if not wrong_entries:
        return round(accuracy, 1)
    # Weighted: answer accuracy 70%, wrong-question mastery 30%
    score = accuracy * 0.7 + _wrong_book_mastery(wrong_entries) * 0.3
    return round(score, 1)


def get_chapter_scores(stats: LearningStatistics) -> list[dict]:
    results = []
    for name, stat in sorted(stats.category_stats.items()):
        pct = (stat.correct_answers / stat.total_questions * 100) if stat.total_questions else 0.0
        results.append({
            "name": name,
            "answered": stat.total_questions,
            "correct": stat.correct_answers,
            "score": round(pct, 1),
            "label": get_readiness_label(pct),
            "mastered": stat.mastered,
        })
    return results


def get_weak_chapters(stats: LearningStatistics, threshold: float = 65) -> list[str]:
    """Chapters scoring below ``threshold`` percent, weakest first."""
    weak = [c for c in get_chapter_scores(stats) if c["answered"] and c["score"] < threshold]
    weak.sort(key=lambda c: (c["score"], c["name"]))
    return [c["name"] for c in weak]


def get_study_summary(stats: LearningStatistics, today_record: DailyPracticeRecord) -> dict:
    return {
        "total_practices": stats.total_practices,
        "total_questions": stats.total_questions,
        "accuracy": accuracy_percent(stats),
        "study_time_minutes": stats.study_time_minutes,
        "daily_streak": stats.daily_streak,
        "achievements": sorted(stats.achievements),
        "today_practices": today_record.practices,
        "today_questions": today_record.questions_answered,
        "today_correct": today_record.correctly_answered,
    }
