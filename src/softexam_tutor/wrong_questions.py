"""Wrong-question book: per-question mastery tracking."""
import logging

from softexam_tutor.identity import ExamIdentity
from softexam_tutor.models import MASTERY_THRESHOLD, WrongQuestionInfo, now
from softexam_tutor.tracking import ChangeTracker

logger = logging.getLogger(__name__)


class WrongQuestionTracker(ChangeTracker):
    """Tracks every question answered wrong at least once.

    An entry is mastered after MASTERY_THRESHOLD consecutive correct answers;
    any wrong answer resets the run.
    """

    def __init__(self):
        super().__init__()
        self._entries = {}

    def __len__(self) -> int:
        return len(self._entries)

    def all(self) -> list:
        return list(self._entries.values())

    def get(self, question_id: str) -> WrongQuestionInfo | None:
        return self._entries.get(question_id)

    def contains(self, question_id: str) -> bool:
        return question_id in self._entries

    def record_wrong_answer(self, question_id: str, identity: ExamIdentity | None = None) -> WrongQuestionInfo:
        """Add the question to the book or bump its error count.

        The entry is tagged with ``identity``, the identity active when the
        error happened (None leaves it untagged).
        """
        current = self._entries.get(question_id)
        error_count = current.error_count + 1 if current else 1
        info = WrongQuestionInfo(
            question_id=question_id,
            error_count=error_count,
            last_error_time=now(),
            mastered=False,
            consecutive_correct_count=0,
            exam_level=identity.level.display_name if identity else None,
            exam_type=identity.exam_type.display_name if identity else None,
        )
        self._entries[question_id] = info
        logger.info("Recorded wrong answer for %s (errors=%d)", question_id, error_count)
        self._changed()
        return info

    def record_correct_answer(self, question_id: str) -> WrongQuestionInfo | None:
        current = self._entries.get(question_id)
        if current is None:
            # Only questions that were failed before are tracked.
            return None
        current.consecutive_correct_count += 1
        current.mastered = current.consecutive_correct_count >= MASTERY_THRESHOLD
        if current.mastered:
            logger.info("Question %s mastered", question_id)
        self._changed()
        return current

    def remove(self, question_id: str) -> bool:
        if self._entries.pop(question_id, None) is None:
            return False
        logger.info("Removed %s from the wrong-question book", question_id)
        self._changed()
        return True

    def clear(self) -> None:
        self._entries.clear()
        logger.info("Wrong-question book cleared")
        self._changed()

    def replace_all(self, entries: dict) -> None:
        self._entries = dict(entries)
        logger.info("Loaded %d wrong-question entries", len(self._entries))

    def unmastered(self) -> list:
        return [e for e in self._entries.values() if not e.mastered]

    def mastered(self) -> list:
        return [e for e in self._entries.values() if e.mastered]

    def for_identity(self, level: str, exam_type: str) -> list:
        return [
            e for e in self._entries.values()
            if e.exam_level == level and e.exam_type == exam_type
        ]
