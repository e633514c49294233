"""Learning statistics: totals, daily records, streaks, and achievements."""
import logging
from datetime import date

from softexam_tutor.identity import ExamIdentity
from softexam_tutor.models import (
    CategoryStat, DailyPracticeRecord, LearningStatistics, PracticeSession,
)
from softexam_tutor.tracking import ChangeTracker

logger = logging.getLogger(__name__)

# (name, predicate) pairs checked after every completed session.
ACHIEVEMENTS = [
    ("7-day streak", lambda s: s.daily_streak >= 7),
    ("30-day streak", lambda s: s.daily_streak >= 30),
    ("10 practices", lambda s: s.total_practices >= 10),
    ("50 practices", lambda s: s.total_practices >= 50),
    ("100 questions", lambda s: s.total_questions >= 100),
    ("500 questions", lambda s: s.total_questions >= 500),
    ("80% accuracy", lambda s: s.total_questions > 0 and s.accuracy >= 0.8),
]


def next_streak(streak: int, last_study_date: date | None, today: date) -> int:
    """Streak after studying on ``today``, counted in calendar days."""
    if last_study_date is None:
        return 1
    delta = (today - last_study_date).days
    if delta == 0:
        return streak
    if delta == 1:
        return streak + 1
    # A gap, or a clock that went backwards.
    return 1


def _empty_snapshot(identity: ExamIdentity) -> LearningStatistics:
    return LearningStatistics(exam_level=identity.level, exam_type=identity.exam_type)


class LearningStatisticsAggregator(ChangeTracker):
    """Rolls practice results up into one statistics snapshot per exam identity."""

    def __init__(self):
        super().__init__()
        self._snapshots = {}
        self._daily = {}

    def identities(self) -> list:
        return list(self._snapshots)

    def for_identity(self, identity: ExamIdentity) -> LearningStatistics:
        """Stored snapshot for ``identity``, or a fresh empty one tagged with it."""
        snapshot = self._snapshots.get(identity)
        if snapshot is None:
            logger.debug("No statistics stored for %s, returning an empty snapshot", identity)
            return _empty_snapshot(identity)
        return snapshot

    def daily_records(self, identity: ExamIdentity) -> dict:
        return dict(self._daily.get(identity, {}))

    def today_record(self, identity: ExamIdentity, today: date | None = None) -> DailyPracticeRecord:
        today = today or date.today()
        return self._daily.get(identity, {}).get(today, DailyPracticeRecord())

    def achievements(self, identity: ExamIdentity) -> set:
        return set(self.for_identity(identity).achievements)

    def category_stats(self, identity: ExamIdentity) -> dict:
        return dict(self.for_identity(identity).category_stats)

    def record_single_answer(self, question_id: str, is_correct: bool, identity: ExamIdentity) -> None:
        """Count one answer as it happens; streaks and daily records wait for completion."""
        stats = self._snapshot(identity)
        stats.total_questions += 1
        if is_correct:
            stats.correct_answers += 1
        logger.debug("Live answer %s correct=%s for %s", question_id, is_correct, identity)
        self._changed()

    def record_session_completion(
        self,
        session: PracticeSession,
        identity: ExamIdentity,
        today: date | None = None,
        live_counted: bool = False,
    ) -> LearningStatistics:
        """Fold a finished session into the identity's statistics.

        Args:
            session: The ended session.
            identity: Identity active when the session ran.
            today: Calendar day to book the session on (defaults to today).
            live_counted: The session's answers already went through
                ``record_single_answer``; skip adding them to the totals again.
        """
        today = today or date.today()
        stats = self._snapshot(identity)
        answered = len(session.answers)
        correct = session.correct_count
        minutes = session.elapsed_minutes()

        stats.total_practices += 1
        if not live_counted:
            stats.total_questions += answered
            stats.correct_answers += correct
        stats.study_time_minutes += minutes

        record = self._daily.setdefault(identity, {}).setdefault(today, DailyPracticeRecord())
        record.practices += 1
        record.questions_answered += answered
        record.correctly_answered += correct
        record.time_spent_minutes += minutes

        stats.daily_streak = next_streak(stats.daily_streak, stats.last_study_date, today)
        stats.last_study_date = today

        self._update_categories(stats, session)
        self._check_achievements(stats)
        logger.info(
            "Session %s recorded for %s: %d/%d correct, streak %d",
            session.session_id, identity, correct, answered, stats.daily_streak,
        )
        self._changed()
        return stats

    def clear_all(self, identity: ExamIdentity) -> None:
        self._snapshots[identity] = _empty_snapshot(identity)
        self._daily[identity] = {}
        logger.info("Statistics cleared for %s", identity)
        self._changed()

    def replace_all(self, snapshots: dict, daily: dict) -> None:
        self._snapshots = dict(snapshots)
        self._daily = {identity: dict(records) for identity, records in daily.items()}
        logger.info("Loaded statistics for %d identities", len(self._snapshots))

    def _snapshot(self, identity: ExamIdentity) -> LearningStatistics:
        snapshot = self._snapshots.get(identity)
        if snapshot is None:
            snapshot = self._snapshots[identity] = _empty_snapshot(identity)
        return snapshot

    def _update_categories(self, stats: LearningStatistics, session: PracticeSession) -> None:
        for question in session.questions:
            answer = session.answers.get(question.id)
            if answer is None or not question.chapter:
                continue
            stat = stats.category_stats.get(question.chapter)
            if stat is None:
                stat = stats.category_stats[question.chapter] = CategoryStat(question.chapter)
            stat.record(1, 1 if answer.is_correct else 0)

    def _check_achievements(self, stats: LearningStatistics) -> None:
        for name, reached in ACHIEVEMENTS:
            if name not in stats.achievements and reached(stats):
                stats.achievements.add(name)
                logger.info("Achievement unlocked: %s", name)
