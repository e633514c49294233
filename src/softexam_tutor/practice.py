"""Practice session engine."""
import logging
import threading
from datetime import timedelta

from softexam_tutor.exceptions import NoActiveSessionError, SessionInProgressError
from softexam_tutor.identity import ExamIdentity
from softexam_tutor.models import AnswerRecord, PracticeSession, PracticeType, now
from softexam_tutor.questions import sample_questions
from softexam_tutor.tracking import ChangeTracker

logger = logging.getLogger(__name__)

PRACTICE_QUESTION_COUNT = 10
MOCK_EXAM_QUESTION_COUNT = 50
MOCK_EXAM_TIME_LIMIT_SECONDS = 150 * 60


def build_question_list(
    session_type: PracticeType,
    question_repo,
    identity: ExamIdentity,
    chapter: str | None = None,
    count: int | None = None,
) -> list:
    """Pick the questions for a new session from the identity's pool."""
    if session_type is PracticeType.SPECIAL_TOPIC and chapter:
        pool = question_repo.by_identity_and_chapter(identity.level, identity.exam_type, chapter)
    else:
        pool = question_repo.by_identity(identity.level, identity.exam_type)

    if session_type is PracticeType.MOCK_EXAM:
        return sample_questions(pool, count or MOCK_EXAM_QUESTION_COUNT)
    if session_type is PracticeType.SPECIAL_TOPIC:
        return sample_questions(pool, count or len(pool))
    return sample_questions(pool, count or PRACTICE_QUESTION_COUNT)


def build_review_list(question_repo, wrong_book, identity: ExamIdentity, count: int | None = None) -> list:
    """Unmastered wrong questions of the identity that are still in the bank."""
    entries = wrong_book.for_identity(identity.level.display_name, identity.exam_type.display_name)
    pool = [
        question_repo.get(e.question_id)
        for e in entries
        if not e.mastered and question_repo.exists(e.question_id)
    ]
    return sample_questions(pool, count or len(pool))


class PracticeSessionEngine(ChangeTracker):
    """Runs one practice session at a time and keeps the history of ended ones.

    Every answer is forwarded straight away to the wrong-question book and to
    the statistics aggregator, so an abandoned session still counts. Ending a
    session books it once more as a whole (practice count, time, streak).
    """

    def __init__(self, wrong_book, statistics):
        super().__init__()
        self._wrong_book = wrong_book
        self._statistics = statistics
        self._history = []
        self._current = None
        self._identity = None
        self._timer = None
        self._deadline = None
        self._lock = threading.RLock()

    @property
    def current(self) -> PracticeSession | None:
        return self._current

    def is_in_progress(self) -> bool:
        return self._current is not None

    def history(self) -> list:
        return list(self._history)

    def get_session(self, session_id: str) -> PracticeSession | None:
        return next((s for s in self._history if s.session_id == session_id), None)

    def load_history(self, sessions: list) -> None:
        self._history = list(sessions)
        logger.info("Loaded %d practice sessions", len(self._history))

    def seconds_remaining(self) -> int | None:
        if self._deadline is None:
            return None
        return max(0, int((self._deadline - now()).total_seconds()))

    def start(
        self,
        session_type: PracticeType,
        questions: list,
        identity: ExamIdentity,
        time_limit: float | None = None,
    ) -> PracticeSession:
        """Start a session; raises SessionInProgressError if one is running.

        MOCK_EXAM sessions get a countdown (``time_limit`` seconds, default
        MOCK_EXAM_TIME_LIMIT_SECONDS) that ends the session when it runs out.
        """
        with self._lock:
            if self._current is not None:
                raise SessionInProgressError(self._current.session_id)
            session = PracticeSession(session_type=session_type, questions=list(questions))
            self._current = session
            self._identity = identity
            if session_type is PracticeType.MOCK_EXAM:
                limit = time_limit if time_limit is not None else MOCK_EXAM_TIME_LIMIT_SECONDS
                self._deadline = session.start_time + timedelta(seconds=limit)
                self._timer = threading.Timer(limit, self._expire, args=(session.session_id,))
                self._timer.daemon = True
                self._timer.start()
            logger.info(
                "Started %s session %s with %d questions",
                session_type.name, session.session_id, len(session.questions),
            )
            return session

    def submit_answer(self, question_id: str, selected_options) -> AnswerRecord:
        with self._lock:
            session = self._current
            if session is None:
                raise NoActiveSessionError()
            question = next((q for q in session.questions if q.id == question_id), None)
            if question is None:
                raise ValueError(f"Question {question_id} is not part of session {session.session_id}")
            if question_id in session.answers:
                raise ValueError(f"Question {question_id} was already answered")

            record = AnswerRecord(
                question_id=question_id,
                selected_options=frozenset(selected_options),
                is_correct=question.is_correct(selected_options),
            )
            session.answers[question_id] = record

            if record.is_correct:
                self._wrong_book.record_correct_answer(question_id)
            else:
                self._wrong_book.record_wrong_answer(question_id, self._identity)
            self._statistics.record_single_answer(question_id, record.is_correct, self._identity)

            if session.is_complete:
                self._finish()
            return record

    def end(self) -> PracticeSession | None:
        """End the current session early (manual stop or timeout)."""
        with self._lock:
            if self._current is None:
                return None
            return self._finish()

    def _expire(self, session_id: str) -> None:
        with self._lock:
            if self._current is None or self._current.session_id != session_id:
                return
            logger.info("Time is up for mock exam %s", session_id)
            self._finish()

    def _finish(self) -> PracticeSession:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._deadline = None

        session = self._current
        identity = self._identity
        session.end_time = now()
        self._history.append(session)
        self._current = None
        self._identity = None

        # Answers were already counted one by one in submit_answer.
        self._statistics.record_session_completion(session, identity, live_counted=True)
        logger.info(
            "Session %s ended: %d/%d answered, %d correct",
            session.session_id, len(session.answers), len(session.questions), session.correct_count,
        )
        self._changed()
        return session
