"""Load the built-in question bank shipped with the package."""
import json
import logging
from datetime import date
from pathlib import Path

from softexam_tutor.identity import ExamLevel, ExamType, level_for_type
from softexam_tutor.models import (
    DEFAULT_EXAM_DATE, DifficultyLevel, KnowledgeChapter, Question, QuestionOrigin,
)
from softexam_tutor.persistence import parse_enum_with_fallback

logger = logging.getLogger(__name__)

CONTENT_DIR = Path(__file__).parent / "content"


def available_exam_types() -> list[ExamType]:
    """Exam types that have a built-in question file."""
    return [t for t in ExamType if (CONTENT_DIR / f"{t.name}.json").exists()]


def template_to_question(template: dict, exam_type: ExamType) -> Question:
    """Convert one JSON question template into a BUILT_IN Question."""
    difficulty, _ = parse_enum_with_fallback(template.get("level"), DifficultyLevel, DifficultyLevel.MEDIUM)
    template_type, _ = parse_enum_with_fallback(template.get("examType"), ExamType, exam_type)
    level, _ = parse_enum_with_fallback(template.get("examLevel"), ExamLevel, level_for_type(template_type))
    year = template.get("year")
    return Question(
        id=template["id"],
        title=template["title"],
        options=dict(template["options"]),
        correct_answers=frozenset(template["correctAnswers"]),
        explanation=template.get("explanation", ""),
        difficulty=difficulty,
        chapter=template.get("chapter") or None,
        exam_date=date.fromisoformat(year) if year else DEFAULT_EXAM_DATE,
        exam_type=template_type,
        exam_level=level,
        origin=QuestionOrigin.BUILT_IN,
    )


def load_built_in_questions(questions, chapters, exam_type: ExamType) -> int:
    """Add the built-in questions of ``exam_type`` that are not in the bank yet.

    Chapters named by newly added questions are created as well, scoped to the
    exam type. Returns the number of questions added; running it again adds
    nothing.
    """
    path = CONTENT_DIR / f"{exam_type.name}.json"
    if not path.exists():
        logger.warning("No built-in questions for %s", exam_type.display_name)
        return 0

    templates = json.loads(path.read_text(encoding="utf-8"))
    added = 0
    chapter_names = set()
    for template in templates:
        if questions.exists(template.get("id")):
            logger.debug("Built-in question %s already present", template.get("id"))
            continue
        try:
            question = template_to_question(template, exam_type)
        except (KeyError, TypeError, ValueError):
            logger.exception("Skipping malformed built-in question %r", template.get("id"))
            continue
        questions.add(question)
        added += 1
        if question.chapter:
            chapter_names.add(question.chapter)

    level = level_for_type(exam_type)
    for name in sorted(chapter_names):
        chapter_id = f"{exam_type.name}_{name}"
        if chapters.exists(chapter_id):
            continue
        chapters.add(KnowledgeChapter(
            id=chapter_id,
            name=name,
            level=level.display_name,
            exam_type=exam_type.display_name,
        ))

    logger.info("Loaded %d built-in questions for %s", added, exam_type.display_name)
    return added
