"""Learner notes and tags attached to questions."""
import logging

from softexam_tutor.models import QuestionNote, now
from softexam_tutor.tracking import ChangeTracker

logger = logging.getLogger(__name__)


class NoteRepository(ChangeTracker):
    def __init__(self):
        super().__init__()
        self._notes = {}

    def all(self) -> list:
        return list(self._notes.values())

    def get(self, question_id: str) -> QuestionNote | None:
        return self._notes.get(question_id)

    def add_or_update(self, question_id: str, note: str, tags) -> QuestionNote:
        existing = self._notes.get(question_id)
        timestamp = now()
        updated = QuestionNote(
            question_id=question_id,
            note=note,
            tags=set(tags),
            created_at=existing.created_at if existing else timestamp,
            updated_at=timestamp,
        )
        self._notes[question_id] = updated
        logger.info("Saved note for question %s", question_id)
        self._changed()
        return updated

    def add_tag(self, question_id: str, tag: str) -> QuestionNote:
        existing = self._notes.get(question_id)
        tags = (existing.tags | {tag}) if existing else {tag}
        return self.add_or_update(question_id, existing.note if existing else "", tags)

    def remove_tag(self, question_id: str, tag: str) -> QuestionNote | None:
        existing = self._notes.get(question_id)
        if existing is None:
            return None
        return self.add_or_update(question_id, existing.note, existing.tags - {tag})

    def tags_for(self, question_id: str) -> set:
        note = self._notes.get(question_id)
        return set(note.tags) if note else set()

    def all_tags(self) -> set:
        return {tag for note in self._notes.values() for tag in note.tags}

    def questions_by_tag(self, tag: str) -> list:
        return [question_id for question_id, note in self._notes.items() if tag in note.tags]

    def delete(self, question_id: str) -> bool:
        if self._notes.pop(question_id, None) is None:
            return False
        logger.info("Deleted note for question %s", question_id)
        self._changed()
        return True

    def replace_all(self, notes: dict) -> None:
        self._notes = dict(notes)
        logger.info("Loaded %d question notes", len(self._notes))
