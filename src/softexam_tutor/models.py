"""Data classes for the tutor domain model."""
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional

from softexam_tutor.identity import ExamLevel, ExamType, level_for_type

MASTERY_THRESHOLD = 3
CATEGORY_MASTERY_RATIO = 0.8
DEFAULT_EXAM_DATE = date(2025, 11, 8)


def now() -> datetime:
    """Current local time at millisecond precision (the stored resolution)."""
    current = datetime.now()
    return current.replace(microsecond=current.microsecond // 1000 * 1000)


class DifficultyLevel(Enum):
    EASY = "简单"
    MEDIUM = "中等"
    HARD = "困难"

    @property
    def display_name(self) -> str:
        return self.value


class QuestionOrigin(Enum):
    BUILT_IN = "内置试题"
    CUSTOM = "自定义试题"

    @property
    def display_name(self) -> str:
        return self.value


class PracticeType(Enum):
    DAILY = "每日一练"
    SPECIAL_TOPIC = "专项练习"
    MOCK_EXAM = "模拟考试"
    RANDOM = "随机抽题"

    @property
    def display_name(self) -> str:
        return self.value


@dataclass
class Question:
    id: str
    title: str
    options: dict
    correct_answers: frozenset
    explanation: str = ""
    difficulty: DifficultyLevel = DifficultyLevel.MEDIUM
    chapter: Optional[str] = None
    exam_date: date = DEFAULT_EXAM_DATE
    exam_type: ExamType = ExamType.SOFTWARE_DESIGNER
    exam_level: Optional[ExamLevel] = None
    origin: QuestionOrigin = QuestionOrigin.CUSTOM

    def __post_init__(self):
        self.correct_answers = frozenset(self.correct_answers)
        if self.exam_level is None:
            self.exam_level = level_for_type(self.exam_type)

    def is_correct(self, selected) -> bool:
        return frozenset(selected) == self.correct_answers

    @property
    def is_built_in(self) -> bool:
        return self.origin is QuestionOrigin.BUILT_IN


@dataclass
class KnowledgeChapter:
    id: str
    name: str
    level: Optional[str] = None  # display name, None matches every level
    exam_type: Optional[str] = None  # display name, None matches every type
    parent_id: Optional[str] = None
    created_at: datetime = field(default_factory=now)
    updated_at: datetime = field(default_factory=now)


@dataclass
class AnswerRecord:
    question_id: str
    selected_options: frozenset
    is_correct: bool
    answered_at: datetime = field(default_factory=now)

    def __post_init__(self):
        self.selected_options = frozenset(self.selected_options)


@dataclass
class PracticeSession:
    session_type: PracticeType = PracticeType.RANDOM
    questions: list = field(default_factory=list)
    answers: dict = field(default_factory=dict)
    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    start_time: datetime = field(default_factory=now)
    end_time: Optional[datetime] = None

    @property
    def correct_count(self) -> int:
        return sum(1 for record in self.answers.values() if record.is_correct)

    @property
    def is_complete(self) -> bool:
        return all(q.id in self.answers for q in self.questions)

    def elapsed_minutes(self, until: Optional[datetime] = None) -> int:
        end = self.end_time or until or now()
        return max(0, int((end - self.start_time).total_seconds()) // 60)


@dataclass
class WrongQuestionInfo:
    question_id: str
    error_count: int = 1
    last_error_time: datetime = field(default_factory=now)
    mastered: bool = False
    consecutive_correct_count: int = 0
    exam_level: Optional[str] = None
    exam_type: Optional[str] = None


@dataclass
class CategoryStat:
    category_name: str
    total_questions: int = 0
    correct_answers: int = 0
    mastered: bool = False

    def record(self, answered: int, correct: int) -> None:
        self.total_questions += answered
        self.correct_answers += correct
        self.mastered = (
            self.total_questions > 0
            and self.correct_answers / self.total_questions >= CATEGORY_MASTERY_RATIO
        )


@dataclass
class LearningStatistics:
    total_practices: int = 0
    total_questions: int = 0
    correct_answers: int = 0
    study_time_minutes: int = 0
    daily_streak: int = 0
    last_study_date: Optional[date] = None
    category_stats: dict = field(default_factory=dict)
    achievements: set = field(default_factory=set)
    exam_level: Optional[ExamLevel] = None
    exam_type: Optional[ExamType] = None

    @property
    def accuracy(self) -> float:
        if self.total_questions == 0:
            return 0.0
        return self.correct_answers / self.total_questions


@dataclass
class DailyPracticeRecord:
    practices: int = 0
    questions_answered: int = 0
    correctly_answered: int = 0
    time_spent_minutes: int = 0


@dataclass
class QuestionNote:
    question_id: str
    note: str = ""
    tags: set = field(default_factory=set)
    created_at: datetime = field(default_factory=now)
    updated_at: datetime = field(default_factory=now)
