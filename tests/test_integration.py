"""End-to-end test of the core workflow."""
from softexam_tutor.dashboard import calc_readiness_score, get_weak_chapters
from softexam_tutor.exporter import export_practice_records_csv
from softexam_tutor.identity import ExamType
from softexam_tutor.models import PracticeType
from softexam_tutor.seed import load_built_in_questions
from softexam_tutor.workspace import Workspace


def test_full_practice_workflow(tmp_data_dir, tmp_path):
    """Seed, practice, review, persist, and reload."""
    ws = Workspace.open(tmp_data_dir, save_delay=60)
    ws.identity.set_type(ExamType.SOFTWARE_DESIGNER)
    added = load_built_in_questions(ws.questions, ws.chapters, ExamType.SOFTWARE_DESIGNER)
    assert added > 0

    # Answer everything with 'A': some right, some wrong.
    session = ws.start_practice(PracticeType.RANDOM, count=added)
    for question in list(session.questions):
        ws.engine.submit_answer(question.id, {"A"})
    assert not ws.engine.is_in_progress()

    identity = ws.identity.identity
    stats = ws.statistics.for_identity(identity)
    wrong = ws.wrong_book.for_identity(identity.level.display_name, identity.exam_type.display_name)
    assert stats.total_questions == added
    assert stats.correct_answers + len(wrong) == added
    assert stats.daily_streak == 1
    assert 0 <= calc_readiness_score(stats, wrong) <= 100

    # Three correct reviews master every wrong question.
    for _ in range(3):
        review = ws.start_review()
        for question in list(review.questions):
            ws.engine.submit_answer(question.id, question.correct_answers)
    assert all(e.mastered for e in ws.wrong_book.all())
    assert ws.start_review() is None

    assert export_practice_records_csv(tmp_path / "records.csv", stats, wrong)
    ws.close()

    reloaded = Workspace.open(tmp_data_dir)
    reloaded_stats = reloaded.statistics.for_identity(identity)
    assert reloaded_stats.total_practices == 4
    assert reloaded_stats.category_stats == ws.statistics.for_identity(identity).category_stats
    assert get_weak_chapters(reloaded_stats) == get_weak_chapters(ws.statistics.for_identity(identity))
    assert len(reloaded.engine.history()) == 4
    assert len(reloaded.chapters) == len(ws.chapters)
