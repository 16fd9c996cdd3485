import pytest

from gradebook.results import COLUMNS, results_table


def test_results_table_all_students(book):
    df = results_table(book.students, book.modules, book.grades)
    assert list(df.columns) == COLUMNS
    assert list(df["name"]) == ["Alice Martin", "Bob Durand", "Chloe Petit", "Driss Alaoui"]

    alice = df.iloc[0]
    assert alice["average"] == pytest.approx(14.0)
    assert alice["status"] == "Passed"
    assert alice["mention"] == "Very Good"
    assert (alice["graded"], alice["total_modules"]) == (2, 2)


def test_student_without_grades_row(book):
    df = results_table(book.students, book.modules, book.grades)
    bob = df[df["name"] == "Bob Durand"].iloc[0]
    assert bob["average"] is None
    assert bob["mention"] is None
    assert bob["status"] == "No Grades"
    assert bob["graded"] == 0


def test_filter_passed_and_failed(book):
    passed = results_table(book.students, book.modules, book.grades, status="passed")
    failed = results_table(book.students, book.modules, book.grades, status="failed")
    assert list(passed["name"]) == ["Alice Martin", "Driss Alaoui"]
    assert list(failed["name"]) == ["Chloe Petit"]


def test_sort_by_average_puts_ungraded_last(book):
    desc = results_table(book.students, book.modules, book.grades, sort_by="average-desc")
    asc = results_table(book.students, book.modules, book.grades, sort_by="average-asc")
    assert list(desc["student_id"]) == [4, 1, 3, 2]
    assert list(asc["student_id"]) == [3, 1, 4, 2]


def test_name_sort_ignores_case(book):
    book.add_student("aaron Zed", "AB1005")
    df = results_table(book.students, book.modules, book.grades)
    assert df.iloc[0]["name"] == "aaron Zed"


def test_unknown_filter_or_sort(book):
    with pytest.raises(ValueError):
        results_table(book.students, book.modules, book.grades, status="honours")
    with pytest.raises(ValueError):
        results_table(book.students, book.modules, book.grades, sort_by="cin")


def test_empty_cohort():
    df = results_table([], [], {})
    assert df.empty
    assert list(df.columns) == COLUMNS
