import time

from softexam_tutor.identity import ExamType
from softexam_tutor.models import PracticeType
from softexam_tutor.storage import (
    CORRUPT_SUFFIX, IDENTITY_FILE, QUESTIONS_FILE, STATISTICS_FILE, WRONG_QUESTIONS_FILE, TutorStore,
)
from softexam_tutor.workspace import Workspace


def _wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while not predicate() and time.monotonic() < deadline:
        time.sleep(0.01)
    return predicate()


def test_load_from_empty_directory_is_noop(tmp_data_dir):
    ws = Workspace.open(tmp_data_dir)
    assert len(ws.questions) == 0
    assert not ws.identity.is_selected()
    assert not ws.store.is_dirty()


def test_flush_and_reload(tmp_data_dir, make_question):
    ws = Workspace.open(tmp_data_dir, save_delay=60)
    ws.identity.set_type(ExamType.PROJECT_MANAGER)
    ws.questions.add(make_question("pm1", chapter="项目整合管理"))
    ws.questions.add(make_question("pm2", correct=("B",), chapter="项目整合管理"))
    session = ws.start_practice(PracticeType.RANDOM, count=2)
    for question in list(session.questions):
        ws.engine.submit_answer(question.id, {"B"})
    ws.notes.add_or_update("pm1", "note", {"tag"})
    assert ws.store.is_dirty()
    ws.close()

    for name in (QUESTIONS_FILE, WRONG_QUESTIONS_FILE, STATISTICS_FILE, IDENTITY_FILE):
        assert (tmp_data_dir / name).exists()

    reloaded = Workspace.open(tmp_data_dir)
    assert reloaded.identity.is_selected()
    assert {q.id for q in reloaded.questions.all()} == {"pm1", "pm2"}
    assert len(reloaded.wrong_book) == 1  # pm1 was answered wrong
    stats = reloaded.statistics.for_identity(reloaded.identity.identity)
    assert (stats.total_practices, stats.total_questions, stats.correct_answers) == (1, 2, 1)
    assert [s.session_id for s in reloaded.engine.history()] == [session.session_id]
    assert reloaded.notes.get("pm1").tags == {"tag"}
    assert not reloaded.store.is_dirty()


def test_changes_are_saved_in_background(tmp_data_dir, make_question):
    ws = Workspace.open(tmp_data_dir, save_delay=0.05)
    ws.questions.add(make_question("q1"))
    assert _wait_for(lambda: (tmp_data_dir / QUESTIONS_FILE).exists())
    assert _wait_for(lambda: not ws.store.is_dirty())
    ws.close()


def test_corrupt_file_keeps_current_state(tmp_data_dir, make_question):
    ws = Workspace.open(tmp_data_dir, save_delay=60)
    ws.questions.add(make_question("q1"))
    ws.close()

    (tmp_data_dir / QUESTIONS_FILE).write_text("<QuestionService><question", encoding="utf-8")
    reloaded = Workspace()
    reloaded.questions.add(make_question("kept"))
    TutorStore(reloaded, tmp_data_dir).load()
    assert [q.id for q in reloaded.questions.all()] == ["kept"]


def test_wrong_root_element_keeps_current_state(tmp_data_dir, make_question):
    tmp_data_dir.mkdir(parents=True)
    (tmp_data_dir / QUESTIONS_FILE).write_text("<Other/>", encoding="utf-8")
    ws = Workspace()
    ws.questions.add(make_question("kept"))
    TutorStore(ws, tmp_data_dir).load()
    assert [q.id for q in ws.questions.all()] == ["kept"]
    assert (tmp_data_dir / (QUESTIONS_FILE + CORRUPT_SUFFIX)).exists()


def test_failed_save_stays_dirty(tmp_data_dir, make_question):
    tmp_data_dir.parent.mkdir(parents=True, exist_ok=True)
    tmp_data_dir.write_text("not a directory", encoding="utf-8")
    ws = Workspace()
    store = TutorStore(ws, tmp_data_dir, save_delay=60)
    ws.questions.add(make_question("q1"))
    assert store.flush() is False
    assert store.is_dirty()


def test_only_dirty_documents_are_written(tmp_data_dir, make_question):
    ws = Workspace()
    store = TutorStore(ws, tmp_data_dir, save_delay=60)
    ws.questions.add(make_question("q1"))
    assert store.flush()
    assert (tmp_data_dir / QUESTIONS_FILE).exists()
    assert not (tmp_data_dir / STATISTICS_FILE).exists()
    assert not (tmp_data_dir / IDENTITY_FILE).exists()


def test_control_characters_in_text_survive_reload(tmp_data_dir, make_question):
    ws = Workspace.open(tmp_data_dir, save_delay=60)
    ws.questions.add(make_question("good", title="fine"))
    ws.questions.add(make_question("bad", title="copied from pdf\x0cpage 2"))
    ws.close()

    reloaded = Workspace.open(tmp_data_dir)
    assert reloaded.questions.exists("good")
    assert reloaded.questions.get("bad").title == "copied from pdfpage 2"
    assert not (tmp_data_dir / (QUESTIONS_FILE + CORRUPT_SUFFIX)).exists()


def test_unreadable_file_is_moved_aside_before_next_save(tmp_data_dir, make_question):
    tmp_data_dir.mkdir(parents=True)
    broken = "<QuestionService><question id='old'"
    (tmp_data_dir / QUESTIONS_FILE).write_text(broken, encoding="utf-8")

    ws = Workspace.open(tmp_data_dir, save_delay=60)
    assert not (tmp_data_dir / QUESTIONS_FILE).exists()
    ws.questions.add(make_question("new"))
    ws.close()

    assert (tmp_data_dir / (QUESTIONS_FILE + CORRUPT_SUFFIX)).read_text(encoding="utf-8") == broken
    assert [q.id for q in Workspace.open(tmp_data_dir).questions.all()] == ["new"]
