import csv

from softexam_tutor.exporter import (
    export_practice_records_csv, export_statistics_csv, export_wrong_questions_csv,
)
from softexam_tutor.models import CategoryStat, LearningStatistics, WrongQuestionInfo


def _rows(path):
    with open(path, newline="", encoding="utf-8") as handle:
        return list(csv.reader(handle))


def _stats():
    return LearningStatistics(
        total_practices=2, total_questions=8, correct_answers=6, study_time_minutes=30, daily_streak=2,
        category_stats={"数据库技术": CategoryStat("数据库技术", 4, 4, True)},
        achievements={"80% accuracy"},
    )


def test_export_statistics(tmp_path):
    path = tmp_path / "stats.csv"
    assert export_statistics_csv(path, _stats())
    rows = _rows(path)
    assert rows[0] == ["统计项", "数值"]
    assert ["正确率", "75.00%"] in rows
    assert ["数据库技术", "4", "4", "已掌握"] in rows
    assert rows[-1] == ["80% accuracy"]


def test_export_wrong_questions(tmp_path):
    path = tmp_path / "wrong.csv"
    assert export_wrong_questions_csv(path, [WrongQuestionInfo("q1", error_count=3, consecutive_correct_count=1)])
    rows = _rows(path)
    assert rows[0] == ["题目ID", "错误次数", "最后错误时间", "掌握状态", "连续正确次数"]
    assert rows[1][0:2] == ["q1", "3"]
    assert rows[1][3:] == ["未掌握", "1"]


def test_export_practice_records(tmp_path):
    path = tmp_path / "records.csv"
    assert export_practice_records_csv(path, _stats(), [WrongQuestionInfo("q1")])
    rows = _rows(path)
    assert ["错题本数据:"] in rows
    assert rows[-1][0] == "q1"


# --- Edge case tests ---

def test_export_accuracy_without_questions(tmp_path):
    path = tmp_path / "empty.csv"
    assert export_statistics_csv(path, LearningStatistics())
    assert ["正确率", "0%"] in _rows(path)


def test_export_to_missing_directory_fails(tmp_path):
    assert export_wrong_questions_csv(tmp_path / "missing" / "wrong.csv", []) is False
