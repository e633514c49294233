"""Exam identity tables and the learner's current identity."""
import logging
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class ExamLevel(Enum):
    JUNIOR = "软考初级"
    INTERMEDIATE = "软考中级"
    SENIOR = "软考高级"

    @property
    def display_name(self) -> str:
        return self.value


class ExamType(Enum):
    # Senior
    SYSTEM_ANALYST = "系统分析师"
    SYSTEM_ARCHITECT = "系统架构设计师"
    NETWORK_PLANNER = "网络规划设计师"
    PROJECT_MANAGER = "信息系统项目管理师"
    SYSTEM_PLANNING_MANAGER = "系统规划与管理师"
    # Intermediate
    SYSTEM_INTEGRATION_ENGINEER = "系统集成项目管理工程师"
    NETWORK_ENGINEER = "网络工程师"
    INFORMATION_SYSTEM_MANAGEMENT_ENGINEER = "信息系统管理工程师"
    SOFTWARE_TESTER = "软件评测师"
    DATABASE_ENGINEER = "数据库系统工程师"
    MULTIMEDIA_DESIGNER = "多媒体应用设计师"
    SOFTWARE_DESIGNER = "软件设计师"
    INFORMATION_SYSTEM_SUPERVISOR = "信息系统监理师"
    E_COMMERCE_DESIGNER = "电子商务设计师"
    INFORMATION_SECURITY_ENGINEER = "信息安全工程师"
    EMBEDDED_SYSTEM_DESIGNER = "嵌入式系统设计师"
    SOFTWARE_PROCESS_EVALUATOR = "软件过程能力评估师"
    COMPUTER_AIDED_DESIGNER = "计算机辅助设计师"
    COMPUTER_HARDWARE_ENGINEER = "计算机硬件工程师"
    INFORMATION_TECHNOLOGY_SUPPORT_ENGINEER = "信息技术支持工程师"
    # Junior
    PROGRAMMER = "程序员"
    NETWORK_ADMINISTRATOR = "网络管理员"
    INFORMATION_PROCESSING_TECHNICIAN = "信息处理技术员"
    INFORMATION_SYSTEM_OPERATION_MANAGER = "信息系统运行管理员"
    MULTIMEDIA_APPLICATION_DESIGNER = "多媒体应用制作技术员"
    E_COMMERCE_TECHNICIAN = "电子商务技术员"
    WEB_DESIGNER = "网页制作员"

    @property
    def display_name(self) -> str:
        return self.value


# Ordered as offered to the learner; the first entry is not necessarily the default.
TYPES_BY_LEVEL = {
    ExamLevel.SENIOR: [
        ExamType.PROJECT_MANAGER,
        ExamType.SYSTEM_ANALYST,
        ExamType.SYSTEM_ARCHITECT,
        ExamType.NETWORK_PLANNER,
        ExamType.SYSTEM_PLANNING_MANAGER,
    ],
    ExamLevel.INTERMEDIATE: [
        ExamType.SYSTEM_INTEGRATION_ENGINEER,
        ExamType.NETWORK_ENGINEER,
        ExamType.INFORMATION_SYSTEM_MANAGEMENT_ENGINEER,
        ExamType.SOFTWARE_TESTER,
        ExamType.DATABASE_ENGINEER,
        ExamType.MULTIMEDIA_DESIGNER,
        ExamType.SOFTWARE_DESIGNER,
        ExamType.INFORMATION_SYSTEM_SUPERVISOR,
        ExamType.E_COMMERCE_DESIGNER,
        ExamType.INFORMATION_SECURITY_ENGINEER,
        ExamType.EMBEDDED_SYSTEM_DESIGNER,
        ExamType.SOFTWARE_PROCESS_EVALUATOR,
        ExamType.COMPUTER_AIDED_DESIGNER,
        ExamType.COMPUTER_HARDWARE_ENGINEER,
        ExamType.INFORMATION_TECHNOLOGY_SUPPORT_ENGINEER,
    ],
    ExamLevel.JUNIOR: [
        ExamType.PROGRAMMER,
        ExamType.NETWORK_ADMINISTRATOR,
        ExamType.INFORMATION_PROCESSING_TECHNICIAN,
        ExamType.INFORMATION_SYSTEM_OPERATION_MANAGER,
        ExamType.MULTIMEDIA_APPLICATION_DESIGNER,
        ExamType.E_COMMERCE_TECHNICIAN,
        ExamType.WEB_DESIGNER,
    ],
}

LEVEL_BY_TYPE = {
    exam_type: level
    for level, exam_types in TYPES_BY_LEVEL.items()
    for exam_type in exam_types
}

DEFAULT_TYPE_BY_LEVEL = {
    ExamLevel.SENIOR: ExamType.PROJECT_MANAGER,
    ExamLevel.INTERMEDIATE: ExamType.SOFTWARE_DESIGNER,
    ExamLevel.JUNIOR: ExamType.PROGRAMMER,
}

DEFAULT_CHAPTER_BY_TYPE = {
    ExamType.SYSTEM_ANALYST: "系统分析知识域",
    ExamType.SYSTEM_ARCHITECT: "系统架构知识域",
    ExamType.NETWORK_PLANNER: "网络规划知识域",
    ExamType.PROJECT_MANAGER: "项目管理知识域",
    ExamType.SYSTEM_PLANNING_MANAGER: "系统规划知识域",
    ExamType.SYSTEM_INTEGRATION_ENGINEER: "系统集成知识域",
    ExamType.NETWORK_ENGINEER: "网络工程知识域",
    ExamType.INFORMATION_SYSTEM_MANAGEMENT_ENGINEER: "信息系统管理知识域",
    ExamType.SOFTWARE_TESTER: "软件测试知识域",
    ExamType.DATABASE_ENGINEER: "数据库知识域",
    ExamType.MULTIMEDIA_DESIGNER: "多媒体设计知识域",
    ExamType.SOFTWARE_DESIGNER: "软件设计知识域",
    ExamType.INFORMATION_SYSTEM_SUPERVISOR: "信息系统监督知识域",
    ExamType.E_COMMERCE_DESIGNER: "电子商务知识域",
    ExamType.INFORMATION_SECURITY_ENGINEER: "信息安全知识域",
    ExamType.EMBEDDED_SYSTEM_DESIGNER: "嵌入式系统知识域",
    ExamType.SOFTWARE_PROCESS_EVALUATOR: "软件过程评估知识域",
    ExamType.COMPUTER_AIDED_DESIGNER: "计算机辅助设计知识域",
    ExamType.COMPUTER_HARDWARE_ENGINEER: "计算机硬件知识域",
    ExamType.INFORMATION_TECHNOLOGY_SUPPORT_ENGINEER: "信息技术支持知识域",
    ExamType.PROGRAMMER: "程序员知识域",
    ExamType.NETWORK_ADMINISTRATOR: "网络管理员知识域",
    ExamType.INFORMATION_PROCESSING_TECHNICIAN: "信息处理技术员知识域",
    ExamType.INFORMATION_SYSTEM_OPERATION_MANAGER: "信息系统运维管理知识域",
    ExamType.MULTIMEDIA_APPLICATION_DESIGNER: "多媒体应用设计知识域",
    ExamType.E_COMMERCE_TECHNICIAN: "电子商务技术员知识域",
    ExamType.WEB_DESIGNER: "网页设计知识域",
}


@dataclass(frozen=True)
class ExamIdentity:
    level: ExamLevel
    exam_type: ExamType

    @classmethod
    def for_type(cls, exam_type: ExamType) -> "ExamIdentity":
        return cls(LEVEL_BY_TYPE[exam_type], exam_type)

    def __str__(self) -> str:
        return f"{self.level.display_name} - {self.exam_type.display_name}"


DEFAULT_IDENTITY = ExamIdentity(ExamLevel.SENIOR, ExamType.PROJECT_MANAGER)


def level_for_type(exam_type: ExamType) -> ExamLevel:
    return LEVEL_BY_TYPE[exam_type]


def default_type_for_level(level: ExamLevel) -> ExamType:
    return DEFAULT_TYPE_BY_LEVEL[level]


def types_for_level(level: ExamLevel) -> list[ExamType]:
    return list(TYPES_BY_LEVEL[level])


class IdentityContext:
    """Holds the learner's selected exam level and type.

    Listeners are called with the new ExamIdentity after every change.
    """

    def __init__(self, identity: ExamIdentity = DEFAULT_IDENTITY, selected: bool = False):
        self._level = identity.level
        self._exam_type = identity.exam_type
        self._default_chapter = DEFAULT_CHAPTER_BY_TYPE[identity.exam_type]
        self._selected = selected
        self._listeners = []

    @property
    def level(self) -> ExamLevel:
        return self._level

    @property
    def exam_type(self) -> ExamType:
        return self._exam_type

    @property
    def identity(self) -> ExamIdentity:
        return ExamIdentity(self._level, self._exam_type)

    @property
    def default_chapter(self) -> str:
        return self._default_chapter

    def is_selected(self) -> bool:
        return self._selected

    def set_type(self, exam_type: ExamType) -> None:
        self._exam_type = exam_type
        self._level = level_for_type(exam_type)
        self._default_chapter = DEFAULT_CHAPTER_BY_TYPE[exam_type]
        self._selected = True
        self._notify()

    def set_level(self, level: ExamLevel) -> None:
        self._level = level
        self._exam_type = default_type_for_level(level)
        self._default_chapter = DEFAULT_CHAPTER_BY_TYPE[self._exam_type]
        self._selected = True
        self._notify()

    def types_for_level(self, level: ExamLevel) -> list[ExamType]:
        return types_for_level(level)

    def restore(self, identity: ExamIdentity, selected: bool, default_chapter: str | None = None) -> None:
        """Restore persisted state without notifying listeners."""
        self._level = level_for_type(identity.exam_type)
        self._exam_type = identity.exam_type
        self._default_chapter = default_chapter or DEFAULT_CHAPTER_BY_TYPE[identity.exam_type]
        self._selected = selected

    def add_listener(self, listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        identity = self.identity
        logger.info("Exam identity changed to %s", identity)
        for listener in list(self._listeners):
            listener(identity)
