from softexam_tutor.identity import ExamLevel, ExamType
from softexam_tutor.models import DifficultyLevel
from softexam_tutor.questions import QuestionRepository, sample_questions


def test_add_and_get(make_question):
    repo = QuestionRepository()
    repo.add(make_question("q1"))
    assert repo.exists("q1")
    assert repo.get("q1").title == "Question q1"
    assert len(repo) == 1


def test_update_unknown_returns_false(make_question):
    repo = QuestionRepository()
    assert repo.update(make_question("missing")) is False
    assert repo.modification_count == 0


def test_update_replaces(question_repo, make_question):
    assert question_repo.update(make_question("pm1", title="Changed"))
    assert question_repo.get("pm1").title == "Changed"


def test_remove(question_repo):
    assert question_repo.remove("pm1")
    assert not question_repo.exists("pm1")
    assert question_repo.remove("pm1") is False


def test_mutations_bump_modification_count_and_notify(make_question):
    repo = QuestionRepository()
    seen = []
    repo.add_listener(seen.append)
    repo.add(make_question("q1"))
    repo.update(make_question("q1", title="x"))
    repo.remove("q1")
    assert repo.modification_count == 3
    assert seen == [repo, repo, repo]


def test_replace_all_does_not_bump_count(make_question):
    repo = QuestionRepository()
    repo.replace_all({"q1": make_question("q1")})
    assert len(repo) == 1
    assert repo.modification_count == 0


def test_by_identity(question_repo):
    ids = {q.id for q in question_repo.by_identity(ExamLevel.SENIOR, ExamType.PROJECT_MANAGER)}
    assert ids == {"pm1", "pm2", "pm3", "pm4"}


def test_by_identity_and_chapter_ignores_case(make_question):
    repo = QuestionRepository([
        make_question("a", chapter="Networking"),
        make_question("b", chapter="networking"),
        make_question("c", chapter="Security"),
    ])
    ids = {q.id for q in repo.by_identity_and_chapter(ExamLevel.SENIOR, ExamType.PROJECT_MANAGER, "NETWORKING")}
    assert ids == {"a", "b"}


def test_by_difficulty(question_repo):
    assert [q.id for q in question_repo.by_difficulty(DifficultyLevel.HARD)] == ["pm3"]


def test_exam_types_and_difficulty_levels(question_repo):
    assert set(question_repo.exam_types()) == {ExamType.PROJECT_MANAGER, ExamType.SOFTWARE_DESIGNER}
    assert set(question_repo.difficulty_levels()) == {
        DifficultyLevel.EASY, DifficultyLevel.MEDIUM, DifficultyLevel.HARD,
    }


def test_random_sample_small_pool_returns_everything(make_question):
    repo = QuestionRepository([
        make_question("q1", correct=("A",), difficulty=DifficultyLevel.EASY),
        make_question("q2", correct=("B",), difficulty=DifficultyLevel.EASY),
    ])
    assert {q.id for q in repo.random_sample(5)} == {"q1", "q2"}


def test_random_sample_has_no_duplicates(make_question):
    repo = QuestionRepository([make_question(f"q{i}") for i in range(30)])
    sample = repo.random_sample(10)
    assert len(sample) == 10
    assert len({q.id for q in sample}) == 10


def test_random_sample_by_difficulty(question_repo):
    assert [q.id for q in question_repo.random_sample_by_difficulty(DifficultyLevel.EASY, 3)] == ["pm4"]


# --- Edge case tests ---

def test_sample_questions_non_positive_count():
    assert sample_questions([1, 2, 3], 0) == []
    assert sample_questions([1, 2, 3], -1) == []


def test_sample_questions_empty_pool():
    assert sample_questions([], 5) == []
