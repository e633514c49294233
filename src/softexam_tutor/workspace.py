"""Wires the tutor components around one identity context."""
import logging

from softexam_tutor.chapters import ChapterRepository
from softexam_tutor.identity import IdentityContext
from softexam_tutor.models import PracticeSession, PracticeType
from softexam_tutor.notes import NoteRepository
from softexam_tutor.practice import PracticeSessionEngine, build_question_list, build_review_list
from softexam_tutor.progress import LearningStatisticsAggregator
from softexam_tutor.questions import QuestionRepository
from softexam_tutor.storage import DEFAULT_DATA_DIR, SAVE_DELAY_SECONDS, TutorStore
from softexam_tutor.wrong_questions import WrongQuestionTracker

logger = logging.getLogger(__name__)


class Workspace:
    """All stateful components of one learner, plus an optional store."""

    def __init__(self, identity: IdentityContext | None = None):
        self.identity = identity or IdentityContext()
        self.questions = QuestionRepository()
        self.chapters = ChapterRepository()
        self.wrong_book = WrongQuestionTracker()
        self.statistics = LearningStatisticsAggregator()
        self.engine = PracticeSessionEngine(self.wrong_book, self.statistics)
        self.notes = NoteRepository()
        self.store = None

    @classmethod
    def open(cls, data_dir=DEFAULT_DATA_DIR, save_delay: float = SAVE_DELAY_SECONDS) -> "Workspace":
        """Load a workspace from ``data_dir`` and save changes back to it."""
        workspace = cls()
        workspace.store = TutorStore(workspace, data_dir, save_delay)
        workspace.store.load()
        workspace.store.attach()
        return workspace

    def close(self) -> None:
        if self.engine.is_in_progress():
            self.engine.end()
        if self.store is not None:
            self.store.detach()
            self.store.close()

    def start_practice(
        self,
        session_type: PracticeType,
        chapter: str | None = None,
        count: int | None = None,
        time_limit: float | None = None,
    ) -> PracticeSession | None:
        """Start a session for the current identity; None if it has no questions."""
        identity = self.identity.identity
        questions = build_question_list(session_type, self.questions, identity, chapter, count)
        if not questions:
            logger.warning("No questions for %s, not starting a %s session", identity, session_type.name)
            return None
        return self.engine.start(session_type, questions, identity, time_limit)

    def start_review(self, count: int | None = None) -> PracticeSession | None:
        """Practice the unmastered wrong questions of the current identity."""
        identity = self.identity.identity
        questions = build_review_list(self.questions, self.wrong_book, identity, count)
        if not questions:
            logger.info("Nothing to review for %s", identity)
            return None
        return self.engine.start(PracticeType.RANDOM, questions, identity)

    def delete_question(self, question_id: str) -> bool:
        """Remove a question together with its wrong-book entry and note."""
        if not self.questions.remove(question_id):
            return False
        self.wrong_book.remove(question_id)
        self.notes.delete(question_id)
        logger.info("Deleted question %s and its learner data", question_id)
        return True
