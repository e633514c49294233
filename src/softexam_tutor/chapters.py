"""Knowledge chapters, optionally scoped to an exam level and type."""
import logging

from softexam_tutor.models import KnowledgeChapter
from softexam_tutor.tracking import ChangeTracker

logger = logging.getLogger(__name__)


def _in_scope(chapter: KnowledgeChapter, level: str | None, exam_type: str | None) -> bool:
    # An unset level/type on either side matches anything.
    level_ok = level is None or chapter.level is None or chapter.level == level
    type_ok = exam_type is None or chapter.exam_type is None or chapter.exam_type == exam_type
    return level_ok and type_ok


class ChapterRepository(ChangeTracker):
    def __init__(self, chapters=None):
        super().__init__()
        self._chapters = {}
        for chapter in chapters or []:
            self._chapters[chapter.id] = chapter

    def __len__(self) -> int:
        return len(self._chapters)

    def all(self) -> list:
        return list(self._chapters.values())

    def get(self, chapter_id: str) -> KnowledgeChapter | None:
        return self._chapters.get(chapter_id)

    def get_by_name(self, name: str) -> KnowledgeChapter | None:
        return next((c for c in self._chapters.values() if c.name == name), None)

    def exists(self, chapter_id: str) -> bool:
        return chapter_id in self._chapters

    def add(self, chapter: KnowledgeChapter) -> None:
        """Add a chapter. Callers check ``name_exists`` first."""
        self._chapters[chapter.id] = chapter
        logger.info(
            "Added chapter %s (%s) level=%s exam_type=%s",
            chapter.id, chapter.name, chapter.level or "*", chapter.exam_type or "*",
        )
        self._changed()

    def update(self, chapter: KnowledgeChapter) -> bool:
        if chapter.id not in self._chapters:
            logger.warning("Cannot update unknown chapter %s", chapter.id)
            return False
        self._chapters[chapter.id] = chapter
        logger.info("Updated chapter %s (%s)", chapter.id, chapter.name)
        self._changed()
        return True

    def blocking_question_count(self, chapter_id: str, question_repo) -> int:
        """Number of questions whose chapter matches this chapter's name."""
        chapter = self._chapters.get(chapter_id)
        if chapter is None:
            return 0
        return len(question_repo.by_chapter(chapter.name))

    def remove(self, chapter_id: str, question_repo) -> bool:
        """Remove a chapter unless questions still reference it by name."""
        chapter = self._chapters.get(chapter_id)
        if chapter is None:
            return False
        blocking = self.blocking_question_count(chapter_id, question_repo)
        if blocking:
            logger.warning(
                "Chapter %s still has %d questions, not removing", chapter.name, blocking
            )
            return False
        del self._chapters[chapter_id]
        logger.info("Removed chapter %s (%s)", chapter_id, chapter.name)
        self._changed()
        return True

    def replace_all(self, chapters: dict) -> None:
        self._chapters = dict(chapters)
        logger.info("Loaded %d chapters", len(self._chapters))

    def name_exists(self, name: str, level: str | None = None, exam_type: str | None = None) -> bool:
        return any(
            c.name == name and _in_scope(c, level, exam_type)
            for c in self._chapters.values()
        )

    def by_level(self, level: str) -> list:
        return [c for c in self._chapters.values() if _in_scope(c, level, None)]

    def by_identity(self, level: str, exam_type: str) -> list:
        return [c for c in self._chapters.values() if _in_scope(c, level, exam_type)]

    def names_by_identity(self, level: str, exam_type: str) -> set:
        return {c.name for c in self.by_identity(level, exam_type)}

    def children_of(self, parent_id: str | None) -> list:
        return [c for c in self._chapters.values() if c.parent_id == parent_id]

    def roots(self) -> list:
        return self.children_of(None)
