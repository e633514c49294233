"""Element-tree codec for every stateful component.

Each component is stored as one XML document whose element and attribute
names stay compatible with previously saved data. Decoders are tolerant:

* a record without its primary key is dropped,
* a bad enum, number, or date falls back to a default and is logged,
* any failure on the document as a whole makes the decoder return ``None``
  so the caller keeps its current in-memory state.

Question, chapter, statistics and wrong-question enums are written by display
name; session types and the identity selection are written by symbolic name.
Either form is read back by display name, then by symbolic name, then by
default (see ``parse_enum_with_fallback``).

Characters that XML 1.0 cannot carry (control characters other than tab,
newline and carriage return) are dropped when a document is serialized.
"""
import logging
import re
import xml.etree.ElementTree as ET
from datetime import date, datetime, timedelta

from softexam_tutor.identity import (
    DEFAULT_CHAPTER_BY_TYPE, DEFAULT_IDENTITY, ExamIdentity, ExamLevel, ExamType,
    level_for_type,
)
from softexam_tutor.models import (
    DEFAULT_EXAM_DATE, MASTERY_THRESHOLD, AnswerRecord, CategoryStat,
    DailyPracticeRecord, DifficultyLevel, KnowledgeChapter, LearningStatistics,
    PracticeSession, PracticeType, Question, QuestionNote, QuestionOrigin,
    WrongQuestionInfo, now,
)

logger = logging.getLogger(__name__)

QUESTIONS_ROOT = "QuestionService"
CHAPTERS_ROOT = "KnowledgeChapterService"
WRONG_QUESTIONS_ROOT = "WrongQuestionService"
STATISTICS_ROOT = "LearningStatisticsService"
SESSIONS_ROOT = "PracticeService"
IDENTITY_ROOT = "UserIdentityService"
NOTES_ROOT = "QuestionNoteService"

# Names written by older versions of the session store.
LEGACY_PRACTICE_TYPES = {
    "DAILY_PRACTICE": PracticeType.DAILY,
    "RANDOM_PRACTICE": PracticeType.RANDOM,
}

_EPOCH = date(1970, 1, 1)
_MILLIS_PER_DAY = 24 * 60 * 60 * 1000

# Complement of the XML 1.0 Char production.
_INVALID_XML_CHARS = re.compile("[^\t\n\r\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")


def parse_enum_with_fallback(raw: str | None, enum_cls, default, aliases: dict | None = None):
    """Resolve ``raw`` to a member of ``enum_cls``.

    Tries the display name, the symbolic name (as is, then upper-cased), then
    ``aliases``. Returns ``(member, True)`` on success and ``(default, False)``
    otherwise; never raises.
    """
    if raw is None:
        return default, False
    for member in enum_cls:
        if member.value == raw:
            return member, True
    for name in (raw, raw.upper()):
        if name in enum_cls.__members__:
            return enum_cls[name], True
    if aliases and raw in aliases:
        return aliases[raw], True
    return default, False


def _enum_attr(element, name: str, enum_cls, default, context: str, aliases: dict | None = None):
    raw = element.get(name)
    value, ok = parse_enum_with_fallback(raw, enum_cls, default, aliases)
    if not ok and raw is not None:
        logger.warning("%s: unknown %s %r, using %s", context, name, raw, default.name)
    return value


def _int_attr(element, name: str, default: int, context: str) -> int:
    raw = element.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("%s: bad %s %r, using %d", context, name, raw, default)
        return default


def _bool_attr(element, name: str, default: bool, context: str) -> bool:
    raw = element.get(name)
    if raw is None:
        return default
    if raw.lower() in ("true", "false"):
        return raw.lower() == "true"
    logger.warning("%s: bad %s %r, using %s", context, name, raw, default)
    return default


def to_millis(value: datetime) -> int:
    seconds = int(value.replace(microsecond=0).timestamp())
    return seconds * 1000 + value.microsecond // 1000


def from_millis(millis: int) -> datetime:
    return datetime.fromtimestamp(millis // 1000).replace(microsecond=(millis % 1000) * 1000)


def _time_attr(element, name: str, context: str, default=None) -> datetime | None:
    raw = element.get(name)
    if raw is None:
        return default
    try:
        return from_millis(int(raw))
    except (ValueError, OverflowError, OSError):
        logger.warning("%s: bad %s %r", context, name, raw)
        return default


def _date_to_attr(value: date) -> str:
    # Stored as epoch milliseconds at midnight UTC.
    return str((value - _EPOCH).days * _MILLIS_PER_DAY)


def _date_from_attr(raw: str) -> date:
    if raw.lstrip("-").isdigit():
        return _EPOCH + timedelta(days=int(raw) // _MILLIS_PER_DAY)
    return date.fromisoformat(raw)


def _texts(parent, container: str, child: str) -> list:
    holder = parent.find(container)
    if holder is None:
        return []
    return [el.text or "" for el in holder.findall(child)]


def _text_list(parent, container: str, child: str, values) -> None:
    holder = ET.SubElement(parent, container)
    for value in values:
        ET.SubElement(holder, child).text = value


def _check_root(root, expected: str) -> bool:
    if root.tag != expected:
        logger.error("Expected a <%s> document, got <%s>", expected, root.tag)
        return False
    return True


def xml_safe(text: str | None) -> str | None:
    if not text:
        return text
    return _INVALID_XML_CHARS.sub("", text)


def _sanitize(root) -> None:
    for el in root.iter():
        fields = dict(el.attrib)
        fields[None] = el.text
        for name, value in fields.items():
            cleaned = xml_safe(value)
            if cleaned == value:
                continue
            logger.warning("Dropping characters XML cannot store from <%s> %s", el.tag, name or "text")
            if name is None:
                el.text = cleaned
            else:
                el.set(name, cleaned)


def to_xml_bytes(root) -> bytes:
    _sanitize(root)
    tree = ET.ElementTree(root)
    ET.indent(tree)
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


def from_xml_bytes(data: bytes):
    return ET.fromstring(data)


# --- Questions ---------------------------------------------------------------


def encode_questions(questions) -> ET.Element:
    root = ET.Element(QUESTIONS_ROOT)
    for q in questions:
        el = ET.SubElement(root, "question")
        el.set("id", q.id)
        el.set("title", q.title)
        el.set("level", q.difficulty.display_name)
        el.set("examType", q.exam_type.display_name)
        el.set("examLevel", q.exam_level.display_name)
        el.set("year", q.exam_date.isoformat())
        el.set("questionType", q.origin.display_name)
        if q.chapter is not None:
            el.set("chapter", q.chapter)

        options = ET.SubElement(el, "options")
        for key, text in q.options.items():
            option = ET.SubElement(options, "option", key=key)
            option.text = text
        _text_list(el, "correctAnswers", "answer", sorted(q.correct_answers))
        ET.SubElement(el, "explanation").text = q.explanation
    return root


def _decode_question(el) -> Question | None:
    question_id = el.get("id")
    if not question_id:
        logger.warning("Skipping question without id")
        return None
    context = f"question {question_id}"

    exam_type = _enum_attr(el, "examType", ExamType, ExamType.SOFTWARE_DESIGNER, context)
    raw_date = el.get("year")
    exam_date = DEFAULT_EXAM_DATE
    if raw_date:
        try:
            exam_date = date.fromisoformat(raw_date)
        except ValueError:
            logger.warning("%s: bad exam date %r, using %s", context, raw_date, DEFAULT_EXAM_DATE)

    options = {}
    holder = el.find("options")
    if holder is not None:
        for option in holder.findall("option"):
            key = option.get("key")
            if key is not None:
                options[key] = option.text or ""

    explanation = el.find("explanation")
    return Question(
        id=question_id,
        title=el.get("title", ""),
        options=options,
        correct_answers=frozenset(_texts(el, "correctAnswers", "answer")),
        explanation=explanation.text or "" if explanation is not None else "",
        difficulty=_enum_attr(el, "level", DifficultyLevel, DifficultyLevel.MEDIUM, context),
        chapter=el.get("chapter"),
        exam_date=exam_date,
        exam_type=exam_type,
        exam_level=_enum_attr(el, "examLevel", ExamLevel, level_for_type(exam_type), context),
        origin=_enum_attr(el, "questionType", QuestionOrigin, QuestionOrigin.CUSTOM, context),
    )


def decode_questions(root) -> dict | None:
    try:
        if not _check_root(root, QUESTIONS_ROOT):
            return None
        loaded = {}
        elements = root.findall("question")
        for el in elements:
            try:
                question = _decode_question(el)
            except Exception:
                logger.exception("Failed to decode question %r", el.get("id"))
                continue
            if question is not None:
                loaded[question.id] = question
        logger.info("Decoded %d of %d questions", len(loaded), len(elements))
        return loaded
    except Exception:
        logger.exception("Question document could not be decoded")
        return None


# --- Chapters ----------------------------------------------------------------


def encode_chapters(chapters) -> ET.Element:
    root = ET.Element(CHAPTERS_ROOT)
    for c in chapters:
        el = ET.SubElement(root, "chapter")
        el.set("id", c.id)
        el.set("name", c.name)
        if c.level is not None:
            el.set("level", c.level)
        if c.exam_type is not None:
            el.set("examType", c.exam_type)
        el.set("parentId", c.parent_id or "")
        el.set("createdAt", str(to_millis(c.created_at)))
        el.set("updatedAt", str(to_millis(c.updated_at)))
    return root


def decode_chapters(root) -> dict | None:
    try:
        if not _check_root(root, CHAPTERS_ROOT):
            return None
        loaded = {}
        for el in root.findall("chapter"):
            chapter_id = el.get("id")
            if not chapter_id:
                logger.warning("Skipping chapter without id")
                continue
            context = f"chapter {chapter_id}"
            timestamp = now()
            loaded[chapter_id] = KnowledgeChapter(
                id=chapter_id,
                name=el.get("name", ""),
                level=el.get("level"),
                exam_type=el.get("examType"),
                parent_id=el.get("parentId") or None,
                created_at=_time_attr(el, "createdAt", context, timestamp),
                updated_at=_time_attr(el, "updatedAt", context, timestamp),
            )
        return loaded
    except Exception:
        logger.exception("Chapter document could not be decoded")
        return None


# --- Wrong questions ---------------------------------------------------------


def encode_wrong_questions(entries) -> ET.Element:
    root = ET.Element(WRONG_QUESTIONS_ROOT)
    for info in entries:
        el = ET.SubElement(root, "wrongQuestion")
        el.set("questionId", info.question_id)
        el.set("errorCount", str(info.error_count))
        el.set("lastErrorTime", str(to_millis(info.last_error_time)))
        el.set("mastered", str(info.mastered).lower())
        el.set("consecutiveCorrectCount", str(info.consecutive_correct_count))
        if info.exam_level is not None:
            el.set("examLevel", info.exam_level)
        if info.exam_type is not None:
            el.set("examType", info.exam_type)
    return root


def decode_wrong_questions(root) -> dict | None:
    try:
        if not _check_root(root, WRONG_QUESTIONS_ROOT):
            return None
        loaded = {}
        for el in root.findall("wrongQuestion"):
            question_id = el.get("questionId")
            if not question_id:
                logger.warning("Skipping wrong-question entry without questionId")
                continue
            context = f"wrong question {question_id}"
            consecutive = max(0, _int_attr(el, "consecutiveCorrectCount", 0, context))
            mastered = consecutive >= MASTERY_THRESHOLD
            if _bool_attr(el, "mastered", mastered, context) != mastered:
                logger.warning("%s: stored mastered flag disagrees with its count, recomputed", context)
            loaded[question_id] = WrongQuestionInfo(
                question_id=question_id,
                error_count=max(1, _int_attr(el, "errorCount", 1, context)),
                last_error_time=_time_attr(el, "lastErrorTime", context, now()),
                mastered=mastered,
                consecutive_correct_count=consecutive,
                exam_level=el.get("examLevel"),
                exam_type=el.get("examType"),
            )
        return loaded
    except Exception:
        logger.exception("Wrong-question document could not be decoded")
        return None


# --- Learning statistics -----------------------------------------------------


def _set_identity(el, identity: ExamIdentity) -> None:
    el.set("examLevel", identity.level.display_name)
    el.set("examType", identity.exam_type.display_name)


def _identity_of(el, context: str, default: ExamIdentity) -> ExamIdentity:
    if el.get("examType") is None:
        return default
    exam_type = _enum_attr(el, "examType", ExamType, default.exam_type, context)
    return ExamIdentity.for_type(exam_type)


def encode_statistics(snapshots: dict, daily: dict) -> ET.Element:
    """Encode ``{identity: LearningStatistics}`` and ``{identity: {date: record}}``."""
    root = ET.Element(STATISTICS_ROOT)
    for identity, stats in snapshots.items():
        el = ET.SubElement(root, "statistics")
        el.set("totalPractices", str(stats.total_practices))
        el.set("totalQuestions", str(stats.total_questions))
        el.set("correctAnswers", str(stats.correct_answers))
        el.set("studyTimeMinutes", str(stats.study_time_minutes))
        el.set("dailyStreak", str(stats.daily_streak))
        if stats.last_study_date is not None:
            el.set("lastStudyDate", _date_to_attr(stats.last_study_date))
        _set_identity(el, identity)

        categories = ET.SubElement(el, "categoryStats")
        for name, stat in stats.category_stats.items():
            stat_el = ET.SubElement(categories, "stat")
            stat_el.set("categoryName", name)
            stat_el.set("totalQuestions", str(stat.total_questions))
            stat_el.set("correctAnswers", str(stat.correct_answers))
            stat_el.set("mastered", str(stat.mastered).lower())
        _text_list(el, "achievements", "achievement", sorted(stats.achievements))

    for identity, records in daily.items():
        records_el = ET.SubElement(root, "dailyRecords")
        _set_identity(records_el, identity)
        for day, record in sorted(records.items()):
            record_el = ET.SubElement(records_el, "record")
            record_el.set("date", day.isoformat())
            record_el.set("practices", str(record.practices))
            record_el.set("questions", str(record.questions_answered))
            record_el.set("correct", str(record.correctly_answered))
            record_el.set("timeSpent", str(record.time_spent_minutes))
    return root


def _decode_statistics_element(el, identity: ExamIdentity) -> LearningStatistics:
    context = f"statistics {identity}"
    last_study_date = None
    raw_date = el.get("lastStudyDate")
    if raw_date:
        try:
            last_study_date = _date_from_attr(raw_date)
        except (ValueError, OverflowError):
            logger.warning("%s: bad lastStudyDate %r", context, raw_date)

    category_stats = {}
    holder = el.find("categoryStats")
    if holder is not None:
        for stat_el in holder.findall("stat"):
            name = stat_el.get("categoryName")
            if not name:
                logger.warning("%s: skipping category without name", context)
                continue
            category_stats[name] = CategoryStat(
                category_name=name,
                total_questions=_int_attr(stat_el, "totalQuestions", 0, context),
                correct_answers=_int_attr(stat_el, "correctAnswers", 0, context),
                mastered=_bool_attr(stat_el, "mastered", False, context),
            )

    return LearningStatistics(
        total_practices=_int_attr(el, "totalPractices", 0, context),
        total_questions=_int_attr(el, "totalQuestions", 0, context),
        correct_answers=_int_attr(el, "correctAnswers", 0, context),
        study_time_minutes=_int_attr(el, "studyTimeMinutes", 0, context),
        daily_streak=_int_attr(el, "dailyStreak", 0, context),
        last_study_date=last_study_date,
        category_stats=category_stats,
        achievements={a for a in _texts(el, "achievements", "achievement") if a},
        exam_level=identity.level,
        exam_type=identity.exam_type,
    )


def decode_statistics(root):
    """Return ``(snapshots, daily)`` or ``None`` if the document is unusable."""
    try:
        if not _check_root(root, STATISTICS_ROOT):
            return None
        snapshots = {}
        for el in root.findall("statistics"):
            identity = _identity_of(el, "statistics", DEFAULT_IDENTITY)
            if identity in snapshots:
                logger.warning("Duplicate statistics for %s, keeping the last one", identity)
            snapshots[identity] = _decode_statistics_element(el, identity)

        # Untagged daily records belong to the first (single, in old files) snapshot.
        fallback = next(iter(snapshots), DEFAULT_IDENTITY)
        daily = {}
        for records_el in root.findall("dailyRecords"):
            identity = _identity_of(records_el, "dailyRecords", fallback)
            records = daily.setdefault(identity, {})
            for record_el in records_el.findall("record"):
                raw_date = record_el.get("date")
                try:
                    day = date.fromisoformat(raw_date)
                except (TypeError, ValueError):
                    logger.warning("Skipping daily record with bad date %r", raw_date)
                    continue
                context = f"daily record {raw_date}"
                records[day] = DailyPracticeRecord(
                    practices=_int_attr(record_el, "practices", 0, context),
                    questions_answered=_int_attr(record_el, "questions", 0, context),
                    correctly_answered=_int_attr(record_el, "correct", 0, context),
                    time_spent_minutes=_int_attr(record_el, "timeSpent", 0, context),
                )
        return snapshots, daily
    except Exception:
        logger.exception("Statistics document could not be decoded")
        return None


# --- Practice sessions -------------------------------------------------------


def encode_sessions(sessions) -> ET.Element:
    root = ET.Element(SESSIONS_ROOT)
    for session in sessions:
        el = ET.SubElement(root, "session")
        el.set("sessionId", session.session_id)
        el.set("startTime", str(to_millis(session.start_time)))
        if session.end_time is not None:
            el.set("endTime", str(to_millis(session.end_time)))
        el.set("sessionType", session.session_type.name)

        questions = ET.SubElement(el, "questions")
        for question in session.questions:
            ET.SubElement(questions, "question", id=question.id)

        answers = ET.SubElement(el, "answers")
        for question_id, record in session.answers.items():
            answer = ET.SubElement(answers, "answer")
            answer.set("questionId", question_id)
            answer.set("isCorrect", str(record.is_correct).lower())
            answer.set("answeredAt", str(to_millis(record.answered_at)))
            _text_list(answer, "selectedOptions", "option", sorted(record.selected_options))
    return root


def decode_sessions(root, question_lookup) -> list | None:
    """Decode session history; ``question_lookup(id)`` resolves question ids.

    Questions that are no longer in the bank are left out of their session.
    """
    try:
        if not _check_root(root, SESSIONS_ROOT):
            return None
        sessions = []
        for el in root.findall("session"):
            session_id = el.get("sessionId")
            if not session_id:
                logger.warning("Skipping practice session without sessionId")
                continue
            context = f"session {session_id}"

            questions = []
            holder = el.find("questions")
            for question_el in holder.findall("question") if holder is not None else []:
                question = question_lookup(question_el.get("id"))
                if question is None:
                    logger.warning("%s: question %r no longer exists", context, question_el.get("id"))
                    continue
                questions.append(question)

            answers = {}
            holder = el.find("answers")
            for answer_el in holder.findall("answer") if holder is not None else []:
                question_id = answer_el.get("questionId")
                if not question_id:
                    continue
                answers[question_id] = AnswerRecord(
                    question_id=question_id,
                    selected_options=frozenset(_texts(answer_el, "selectedOptions", "option")),
                    is_correct=_bool_attr(answer_el, "isCorrect", False, context),
                    answered_at=_time_attr(answer_el, "answeredAt", context, now()),
                )

            sessions.append(PracticeSession(
                session_id=session_id,
                session_type=_enum_attr(
                    el, "sessionType", PracticeType, PracticeType.RANDOM, context,
                    aliases=LEGACY_PRACTICE_TYPES,
                ),
                questions=questions,
                answers=answers,
                start_time=_time_attr(el, "startTime", context, now()),
                end_time=_time_attr(el, "endTime", context),
            ))
        return sessions
    except Exception:
        logger.exception("Practice session document could not be decoded")
        return None


# --- Identity ----------------------------------------------------------------


def encode_identity(context) -> ET.Element:
    root = ET.Element(IDENTITY_ROOT)
    root.set("selectedExamType", context.exam_type.name)
    root.set("selectedLevel", context.level.name)
    root.set("hasUserMadeSelection", str(context.is_selected()).lower())
    root.set("defaultChapter", context.default_chapter)
    return root


def decode_identity(root):
    """Return ``(identity, selected, default_chapter)`` or ``None``."""
    try:
        if not _check_root(root, IDENTITY_ROOT):
            return None
        exam_type = _enum_attr(
            root, "selectedExamType", ExamType, DEFAULT_IDENTITY.exam_type, "identity",
        )
        selected = _bool_attr(root, "hasUserMadeSelection", False, "identity")
        default_chapter = root.get("defaultChapter") or DEFAULT_CHAPTER_BY_TYPE[exam_type]
        return ExamIdentity.for_type(exam_type), selected, default_chapter
    except Exception:
        logger.exception("Identity document could not be decoded")
        return None


# --- Notes -------------------------------------------------------------------


def encode_notes(notes) -> ET.Element:
    root = ET.Element(NOTES_ROOT)
    for note in notes:
        el = ET.SubElement(root, "note")
        el.set("questionId", note.question_id)
        el.set("note", note.note)
        el.set("createdAt", str(to_millis(note.created_at)))
        el.set("updatedAt", str(to_millis(note.updated_at)))
        _text_list(el, "tags", "tag", sorted(note.tags))
    return root


def decode_notes(root) -> dict | None:
    try:
        if not _check_root(root, NOTES_ROOT):
            return None
        loaded = {}
        for el in root.findall("note"):
            question_id = el.get("questionId")
            if not question_id:
                logger.warning("Skipping note without questionId")
                continue
            context = f"note {question_id}"
            timestamp = now()
            loaded[question_id] = QuestionNote(
                question_id=question_id,
                note=el.get("note", ""),
                tags={t for t in _texts(el, "tags", "tag") if t},
                created_at=_time_attr(el, "createdAt", context, timestamp),
                updated_at=_time_attr(el, "updatedAt", context, timestamp),
            )
        return loaded
    except Exception:
        logger.exception("Note document could not be decoded")
        return None
