"""CSV export of statistics and the wrong-question book."""
import csv
import logging
from pathlib import Path

from softexam_tutor.models import LearningStatistics

logger = logging.getLogger(__name__)

WRONG_QUESTION_HEADER = ["题目ID", "错误次数", "最后错误时间", "掌握状态", "连续正确次数"]


def _mastery_label(mastered: bool) -> str:
    return "已掌握" if mastered else "未掌握"


def _accuracy_cell(stats: LearningStatistics) -> str:
    if stats.total_questions == 0:
        return "0%"
    return f"{stats.accuracy * 100:.2f}%"


def _overview_rows(writer, stats: LearningStatistics) -> None:
    writer.writerow(["统计项", "数值"])
    writer.writerow(["总练习次数", stats.total_practices])
    writer.writerow(["答题总数", stats.total_questions])
    writer.writerow(["正确数", stats.correct_answers])
    writer.writerow(["正确率", _accuracy_cell(stats)])
    writer.writerow(["学习时长(分钟)", stats.study_time_minutes])
    writer.writerow(["连续学习天数", stats.daily_streak])

    writer.writerow([])
    writer.writerow(["分类统计:"])
    writer.writerow(["分类", "总题数", "答对题数", "掌握状态"])
    for name, stat in stats.category_stats.items():
        writer.writerow([name, stat.total_questions, stat.correct_answers, _mastery_label(stat.mastered)])


def _wrong_question_rows(writer, entries) -> None:
    writer.writerow(WRONG_QUESTION_HEADER)
    for info in entries:
        writer.writerow([
            info.question_id,
            info.error_count,
            info.last_error_time.strftime("%Y-%m-%d %H:%M:%S"),
            _mastery_label(info.mastered),
            info.consecutive_correct_count,
        ])


def _export(path, what: str, write_rows) -> bool:
    try:
        with open(Path(path), "w", newline="", encoding="utf-8") as handle:
            write_rows(csv.writer(handle))
    except OSError:
        logger.exception("Failed to export %s to %s", what, path)
        return False
    logger.info("Exported %s to %s", what, path)
    return True


def export_statistics_csv(path, stats: LearningStatistics) -> bool:
    """Overview, per-chapter statistics, and achievements."""
    def write_rows(writer):
        _overview_rows(writer, stats)
        writer.writerow([])
        writer.writerow(["获得成就:"])
        for achievement in sorted(stats.achievements):
            writer.writerow([achievement])

    return _export(path, "learning statistics", write_rows)


def export_wrong_questions_csv(path, entries) -> bool:
    return _export(path, "wrong-question book", lambda writer: _wrong_question_rows(writer, entries))


def export_practice_records_csv(path, stats: LearningStatistics, entries) -> bool:
    """Statistics overview followed by the wrong-question book."""
    def write_rows(writer):
        _overview_rows(writer, stats)
        writer.writerow([])
        writer.writerow(["错题本数据:"])
        _wrong_question_rows(writer, entries)

    return _export(path, "practice records", write_rows)
