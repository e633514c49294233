import time

import pytest

from softexam_tutor.exceptions import NoActiveSessionError, SessionInProgressError
from softexam_tutor.identity import ExamIdentity, ExamType
from softexam_tutor.models import PracticeType
from softexam_tutor.practice import (
    MOCK_EXAM_QUESTION_COUNT, PracticeSessionEngine, build_question_list, build_review_list,
)
from softexam_tutor.progress import LearningStatisticsAggregator
from softexam_tutor.questions import QuestionRepository
from softexam_tutor.wrong_questions import WrongQuestionTracker

PM = ExamIdentity.for_type(ExamType.PROJECT_MANAGER)


@pytest.fixture
def engine():
    return PracticeSessionEngine(WrongQuestionTracker(), LearningStatisticsAggregator())


def test_full_session_auto_finishes(engine, question_repo):
    questions = [question_repo.get("pm1"), question_repo.get("pm2")]
    session = engine.start(PracticeType.RANDOM, questions, PM)
    assert engine.is_in_progress()

    assert engine.submit_answer("pm1", {"A"}).is_correct
    assert not engine.submit_answer("pm2", {"A"}).is_correct

    assert not engine.is_in_progress()
    assert session.end_time is not None
    assert engine.history() == [session]
    assert engine.get_session(session.session_id) is session


def test_answers_feed_wrong_book_and_statistics(engine, question_repo):
    engine.start(PracticeType.RANDOM, [question_repo.get("pm1"), question_repo.get("pm2")], PM)
    engine.submit_answer("pm1", {"B"})
    assert engine._wrong_book.get("pm1").exam_type == "信息系统项目管理师"
    engine.submit_answer("pm2", {"B"})

    stats = engine._statistics.for_identity(PM)
    assert (stats.total_practices, stats.total_questions, stats.correct_answers) == (1, 2, 1)


def test_start_while_running_raises(engine, question_repo):
    session = engine.start(PracticeType.RANDOM, [question_repo.get("pm1")], PM)
    with pytest.raises(SessionInProgressError) as excinfo:
        engine.start(PracticeType.DAILY, [question_repo.get("pm2")], PM)
    assert excinfo.value.session_id == session.session_id
    assert engine.current is session


def test_submit_without_session_raises(engine):
    with pytest.raises(NoActiveSessionError):
        engine.submit_answer("pm1", {"A"})


def test_end_early_counts_partial_session(engine, question_repo):
    engine.start(PracticeType.RANDOM, [question_repo.get("pm1"), question_repo.get("pm2")], PM)
    engine.submit_answer("pm1", {"A"})
    session = engine.end()
    assert len(session.answers) == 1
    stats = engine._statistics.for_identity(PM)
    assert (stats.total_practices, stats.total_questions) == (1, 1)


def test_end_without_session_returns_none(engine):
    assert engine.end() is None


def test_finish_bumps_modification_count(engine, question_repo):
    engine.start(PracticeType.RANDOM, [question_repo.get("pm1")], PM)
    engine.submit_answer("pm1", {"A"})
    assert engine.modification_count == 1


def test_mock_exam_times_out(engine, question_repo):
    session = engine.start(PracticeType.MOCK_EXAM, question_repo.by_identity(PM.level, PM.exam_type), PM, time_limit=0.05)
    assert engine.seconds_remaining() is not None
    deadline = time.monotonic() + 5
    while engine.is_in_progress() and time.monotonic() < deadline:
        time.sleep(0.01)
    assert not engine.is_in_progress()
    assert session.end_time is not None
    assert engine.seconds_remaining() is None
    with pytest.raises(NoActiveSessionError):
        engine.submit_answer("pm1", {"A"})


def test_build_mock_exam_caps_question_count(make_question):
    repo = QuestionRepository([make_question(f"q{i}") for i in range(60)])
    questions = build_question_list(PracticeType.MOCK_EXAM, repo, PM)
    assert len(questions) == MOCK_EXAM_QUESTION_COUNT
    assert len({q.id for q in questions}) == MOCK_EXAM_QUESTION_COUNT


def test_build_list_stays_within_identity(question_repo):
    questions = build_question_list(PracticeType.RANDOM, question_repo, PM, count=10)
    assert {q.id for q in questions} == {"pm1", "pm2", "pm3", "pm4"}


def test_build_special_topic_uses_chapter(question_repo):
    questions = build_question_list(PracticeType.SPECIAL_TOPIC, question_repo, PM, chapter="项目范围管理")
    assert {q.id for q in questions} == {"pm3", "pm4"}


def test_build_review_list_skips_mastered_and_deleted(question_repo):
    book = WrongQuestionTracker()
    book.record_wrong_answer("pm1", PM)
    book.record_wrong_answer("pm2", PM)
    book.record_wrong_answer("gone", PM)
    for _ in range(3):
        book.record_correct_answer("pm2")
    assert [q.id for q in build_review_list(question_repo, book, PM)] == ["pm1"]


# --- Edge case tests ---

def test_question_outside_session_is_rejected(engine, question_repo):
    engine.start(PracticeType.RANDOM, [question_repo.get("pm1"), question_repo.get("pm2")], PM)
    with pytest.raises(ValueError):
        engine.submit_answer("pm3", {"A"})


def test_question_cannot_be_answered_twice(engine, question_repo):
    engine.start(PracticeType.RANDOM, [question_repo.get("pm1"), question_repo.get("pm2")], PM)
    engine.submit_answer("pm1", {"A"})
    with pytest.raises(ValueError):
        engine.submit_answer("pm1", {"B"})
