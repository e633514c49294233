from softexam_tutor.identity import ExamType
from softexam_tutor.models import PracticeType
from softexam_tutor.workspace import Workspace


def test_delete_question_cascades(workspace):
    workspace.wrong_book.record_wrong_answer("pm1")
    workspace.notes.add_or_update("pm1", "note", set())
    assert workspace.delete_question("pm1")
    assert not workspace.questions.exists("pm1")
    assert not workspace.wrong_book.contains("pm1")
    assert workspace.notes.get("pm1") is None


def test_delete_unknown_question(workspace):
    assert workspace.delete_question("nope") is False


def test_start_practice_uses_current_identity(workspace):
    workspace.identity.set_type(ExamType.SOFTWARE_DESIGNER)
    session = workspace.start_practice(PracticeType.DAILY)
    assert [q.id for q in session.questions] == ["sd1"]


def test_start_practice_without_questions_returns_none(workspace):
    workspace.identity.set_type(ExamType.PROGRAMMER)
    assert workspace.start_practice(PracticeType.RANDOM) is None
    assert not workspace.engine.is_in_progress()


def test_review_session_uses_unmastered_wrong_questions(workspace):
    session = workspace.start_practice(PracticeType.SPECIAL_TOPIC, chapter="项目整合管理")
    for question in list(session.questions):
        workspace.engine.submit_answer(question.id, {"D"})
    review = workspace.start_review()
    assert {q.id for q in review.questions} == {"pm1", "pm2"}


def test_review_with_empty_book_returns_none(workspace):
    assert workspace.start_review() is None


def test_close_ends_running_session(workspace):
    workspace.start_practice(PracticeType.RANDOM)
    workspace.close()
    assert not workspace.engine.is_in_progress()
    assert len(workspace.engine.history()) == 1


def test_new_workspace_has_no_store():
    assert Workspace().store is None
