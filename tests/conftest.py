import pytest

from softexam_tutor.identity import ExamType
from softexam_tutor.models import DifficultyLevel, Question
from softexam_tutor.questions import QuestionRepository
from softexam_tutor.workspace import Workspace


@pytest.fixture
def tmp_data_dir(tmp_path):
    """Provide a temporary data directory for the XML store."""
    return tmp_path / "softexam_data"


@pytest.fixture
def make_question():
    """Factory for questions with sensible defaults."""
    def _make(question_id, correct=("A",), exam_type=ExamType.PROJECT_MANAGER,
              chapter=None, difficulty=DifficultyLevel.MEDIUM, **kwargs):
        return Question(
            id=question_id,
            title=kwargs.pop("title", f"Question {question_id}"),
            options=kwargs.pop("options", {"A": "one", "B": "two", "C": "three", "D": "four"}),
            correct_answers=frozenset(correct),
            difficulty=difficulty,
            chapter=chapter,
            exam_type=exam_type,
            **kwargs,
        )
    return _make


@pytest.fixture
def question_repo(make_question):
    """Four project-manager questions in two chapters plus one software-designer question."""
    return QuestionRepository([
        make_question("pm1", correct=("A",), chapter="项目整合管理"),
        make_question("pm2", correct=("B",), chapter="项目整合管理"),
        make_question("pm3", correct=("A", "C"), chapter="项目范围管理", difficulty=DifficultyLevel.HARD),
        make_question("pm4", correct=("D",), chapter="项目范围管理", difficulty=DifficultyLevel.EASY),
        make_question("sd1", correct=("B",), exam_type=ExamType.SOFTWARE_DESIGNER, chapter="数据库技术"),
    ])


@pytest.fixture
def workspace(question_repo):
    """In-memory workspace (no store) holding the question_repo questions."""
    ws = Workspace()
    for question in question_repo.all():
        ws.questions.add(question)
    return ws
