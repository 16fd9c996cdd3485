from datetime import date

import pytest

from gradebook.records import (
    DuplicateRecordError,
    GradeBook,
    InvalidAbsenceError,
    InvalidGradeError,
    Module,
    RecordNotFoundError,
    Student,
    is_valid_grade,
    parse_absence_count,
    parse_grade,
)


def test_entities_check_their_fields():
    with pytest.raises(ValueError):
        Student(id=1, name="  ", cin="X1")
    with pytest.raises(ValueError):
        Student(id=1, name="Ana", cin="")
    with pytest.raises(ValueError):
        Module(id=1, name="Math", coefficient=0)
    with pytest.raises(ValueError):
        Module(id=1, name="Math", coefficient=-1.5)


def test_ids_are_assigned_incrementally():
    book = GradeBook()
    assert book.add_student("Ana", "C1").id == 1
    assert book.add_student("Ben", "C2").id == 2
    assert book.add_module("Math", 2).id == 1
    assert book.add_module("Art", 1, exam_date=date(2026, 6, 1)).exam_date == date(2026, 6, 1)


def test_cin_is_unique():
    book = GradeBook()
    book.add_student("Ana", "C1")
    ben = book.add_student("Ben", "C2")
    with pytest.raises(DuplicateRecordError):
        book.add_student("Other Ana", "C1")
    with pytest.raises(DuplicateRecordError):
        book.update_student(ben.id, cin="C1")

    # keeping its own CIN is fine
    assert book.update_student(ben.id, cin="C2", group="G3").group == "G3"


def test_module_names_are_unique_ignoring_case():
    book = GradeBook()
    book.add_module("Math", 2)
    physics = book.add_module("Physics", 1)
    with pytest.raises(DuplicateRecordError):
        book.add_module("MATH", 3)
    with pytest.raises(DuplicateRecordError):
        book.update_module(physics.id, name="math")


def test_update_unknown_record():
    book = GradeBook()
    with pytest.raises(RecordNotFoundError):
        book.update_student(7, name="Nobody")
    with pytest.raises(RecordNotFoundError):
        book.update_module(7, coefficient=2)


def test_update_keeps_the_id():
    book = GradeBook()
    math = book.add_module("Math", 2)
    updated = book.update_module(math.id, id=99, coefficient=4)
    assert updated.id == math.id
    assert book.get_module(math.id).coefficient == 4


def test_parse_grade():
    assert parse_grade("12.5") == 12.5
    assert parse_grade(0) == 0.0
    assert parse_grade(20) == 20.0
    assert parse_grade("") is None
    assert parse_grade(None) is None
    assert parse_grade(float("nan")) is None
    with pytest.raises(InvalidGradeError):
        parse_grade(20.5)
    with pytest.raises(InvalidGradeError):
        parse_grade("-1")
    with pytest.raises(InvalidGradeError):
        parse_grade("abc")
    with pytest.raises(InvalidGradeError):
        parse_grade("l2")


def test_is_valid_grade():
    assert is_valid_grade("15")
    assert not is_valid_grade("21")
    assert not is_valid_grade("abc")
    assert not is_valid_grade("")


def test_parse_absence_count():
    assert parse_absence_count("3") == 3
    assert parse_absence_count(None) == 0
    assert parse_absence_count(2.0) == 2
    with pytest.raises(InvalidAbsenceError):
        parse_absence_count(-1)
    with pytest.raises(InvalidAbsenceError):
        parse_absence_count(1.5)
    with pytest.raises(InvalidAbsenceError):
        parse_absence_count("many")


def test_set_grade_overwrites_and_clears(book):
    book.set_grade(1, 1, 15)
    assert book.get_grade(1, 1) == 15.0
    assert len([k for k in book.grades if k == (1, 1)]) == 1

    book.set_grade(1, 1, "")
    assert book.get_grade(1, 1) is None
    assert (1, 1) not in book.grades


def test_out_of_range_grade_is_rejected_not_clamped(book):
    with pytest.raises(InvalidGradeError):
        book.set_grade(1, 1, 25)
    assert book.get_grade(1, 1) == 12.0


def test_typo_in_grade_keeps_previous_grade(book):
    with pytest.raises(InvalidGradeError):
        book.set_grade(1, 1, "abc")
    assert book.get_grade(1, 1) == 12.0


def test_facts_need_known_student_and_module(book):
    with pytest.raises(RecordNotFoundError):
        book.set_grade(99, 1, 10)
    with pytest.raises(RecordNotFoundError):
        book.set_absence(1, 99, 2)


def test_zero_absence_removes_the_record(book):
    assert book.get_absence_count(1, 1) == 3
    book.set_absence(1, 1, 0)
    assert (1, 1) not in book.absences
    assert book.get_absence_count(1, 1) == 0


def test_delete_student_cascades(book):
    book.delete_student(3)
    assert book.get_student(3) is None
    assert all(sid != 3 for sid, _ in book.grades)
    assert all(sid != 3 for sid, _ in book.absences)
    assert book.get_grade(1, 1) == 12.0


def test_delete_module_cascades(book):
    book.delete_module(1)
    assert book.get_module(1) is None
    assert all(mid != 1 for _, mid in book.grades)
    assert all(mid != 1 for _, mid in book.absences)
    assert book.student_grades(1) == {2: 18.0}


def test_lookups(book):
    assert book.get_student_by_user_id(42).name == "Driss Alaoui"
    assert book.get_student_by_user_id(7) is None
    assert book.student_grades(1) == {1: 12.0, 2: 18.0}
    assert book.student_absences(3) == {2: 1, 1: 2}
    assert book.student_grades(2) == {}
