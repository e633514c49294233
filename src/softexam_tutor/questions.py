"""Question bank: lookup, filtering, and random sampling."""
import logging
import random
from collections import Counter

from softexam_tutor.identity import ExamLevel, ExamType
from softexam_tutor.models import DifficultyLevel, Question
from softexam_tutor.tracking import ChangeTracker

logger = logging.getLogger(__name__)


def sample_questions(pool: list, count: int) -> list:
    """Draw up to ``count`` distinct questions from ``pool`` without replacement.

    A pool smaller than ``count`` comes back whole, shuffled.
    """
    pool = list(pool)
    if count <= 0:
        return []
    if len(pool) <= count:
        random.shuffle(pool)
        return pool
    return random.sample(pool, count)


def _matches_identity(question: Question, level: ExamLevel, exam_type: ExamType) -> bool:
    return question.exam_level == level and question.exam_type == exam_type


class QuestionRepository(ChangeTracker):
    def __init__(self, questions=None):
        super().__init__()
        self._questions = {}
        for question in questions or []:
            self._questions[question.id] = question

    def __len__(self) -> int:
        return len(self._questions)

    def all(self) -> list:
        return list(self._questions.values())

    def get(self, question_id: str) -> Question | None:
        return self._questions.get(question_id)

    def exists(self, question_id: str) -> bool:
        return question_id in self._questions

    def add(self, question: Question) -> None:
        self._questions[question.id] = question
        logger.info(
            "Added question %s (%s, %s)",
            question.id, question.difficulty.display_name, question.exam_type.display_name,
        )
        self._log_distribution("add")
        self._changed()

    def update(self, question: Question) -> bool:
        if question.id not in self._questions:
            logger.warning("Cannot update unknown question %s", question.id)
            return False
        self._questions[question.id] = question
        logger.info("Updated question %s", question.id)
        self._changed()
        return True

    def remove(self, question_id: str) -> bool:
        removed = self._questions.pop(question_id, None)
        if removed is None:
            logger.warning("Cannot remove unknown question %s", question_id)
            return False
        logger.info("Removed question %s, %d left", question_id, len(self._questions))
        self._log_distribution("remove")
        self._changed()
        return True

    def replace_all(self, questions: dict) -> None:
        """Swap in a freshly decoded bank."""
        previous = len(self._questions)
        self._questions = dict(questions)
        logger.info("Loaded %d questions (previously %d)", len(self._questions), previous)

    def by_difficulty(self, difficulty: DifficultyLevel) -> list:
        return [q for q in self._questions.values() if q.difficulty == difficulty]

    def by_exam_type(self, exam_type: ExamType) -> list:
        return [q for q in self._questions.values() if q.exam_type == exam_type]

    def by_identity(self, level: ExamLevel, exam_type: ExamType) -> list:
        return [q for q in self._questions.values() if _matches_identity(q, level, exam_type)]

    def by_identity_and_chapter(self, level: ExamLevel, exam_type: ExamType, chapter: str) -> list:
        wanted = chapter.casefold()
        return [
            q for q in self.by_identity(level, exam_type)
            if q.chapter is not None and q.chapter.casefold() == wanted
        ]

    def by_chapter(self, chapter: str) -> list:
        wanted = chapter.casefold()
        return [
            q for q in self._questions.values()
            if q.chapter is not None and q.chapter.casefold() == wanted
        ]

    def random_sample(self, count: int) -> list:
        return sample_questions(self._questions.values(), count)

    def random_sample_by_difficulty(self, difficulty: DifficultyLevel, count: int) -> list:
        return sample_questions(self.by_difficulty(difficulty), count)

    def difficulty_levels(self) -> list:
        return list(dict.fromkeys(q.difficulty for q in self._questions.values()))

    def exam_types(self) -> list:
        return list(dict.fromkeys(q.exam_type for q in self._questions.values()))

    def _log_distribution(self, operation: str) -> None:
        if not logger.isEnabledFor(logging.DEBUG):
            return
        questions = self._questions.values()
        logger.debug(
            "[%s] %d questions; difficulty=%s exam_type=%s exam_level=%s",
            operation,
            len(self._questions),
            dict(Counter(q.difficulty.name for q in questions)),
            dict(Counter(q.exam_type.name for q in questions)),
            dict(Counter(q.exam_level.name for q in questions)),
        )
