import copy
import logging
from typing import Optional

import pandas as pd

from .records import GradeBook

logger = logging.getLogger(__name__)

# ------------------------
# CSV helpers
# ------------------------
_COLUMN_ALIASES = {
    "student": "student_id",
    "module": "module_id",
    "coef": "coefficient",
    "absences": "count",
    "user": "user_id",
}


def _normalise_cols(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df.columns = [str(c).strip().lower().replace(" ", "_") for c in df.columns]
    # allow short names, but never clobber a column that is already there
    renames = {
        alias: name for alias, name in _COLUMN_ALIASES.items()
        if alias in df.columns and name not in df.columns
    }
    return df.rename(columns=renames)


def read_csv(source) -> pd.DataFrame:
    """source: a path or any file-like object pandas can read."""
    df = pd.read_csv(source, dtype=str, skipinitialspace=True)
    return _normalise_cols(df)


def _require_columns(df: pd.DataFrame, required, expected: str) -> None:
    missing = set(required) - set(df.columns)
    if missing:
        raise ValueError(f"Missing columns: {sorted(missing)}. Expected: {expected}.")


def validate_students_csv(df: pd.DataFrame) -> pd.DataFrame:
    _require_columns(df, {"id", "name", "cin"}, "id, name, cin[, group, user_id]")
    out = df.copy()
    for optional in ("group", "user_id"):
        if optional not in out.columns:
            out[optional] = None
    return out[["id", "name", "cin", "group", "user_id"]]


def validate_modules_csv(df: pd.DataFrame) -> pd.DataFrame:
    _require_columns(df, {"id", "name", "coefficient"}, "id, name, coefficient[, exam_date]")
    out = df.copy()
    if "exam_date" not in out.columns:
        out["exam_date"] = None
    return out[["id", "name", "coefficient", "exam_date"]]


def validate_grades_csv(df: pd.DataFrame) -> pd.DataFrame:
    _require_columns(df, {"student_id", "module_id", "grade"}, "student_id, module_id, grade")
    return df[["student_id", "module_id", "grade"]].copy()


def validate_absences_csv(df: pd.DataFrame) -> pd.DataFrame:
    _require_columns(df, {"student_id", "module_id", "count"}, "student_id, module_id, count")
    return df[["student_id", "module_id", "count"]].copy()


def _to_id(value, column: str) -> int:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Column {column!r} must hold whole numbers (got {value!r}).") from None
    if pd.isna(number) or not number.is_integer():
        raise ValueError(f"Column {column!r} must hold whole numbers (got {value!r}).")
    return int(number)


def _to_number(value, column: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Column {column!r} must hold numbers (got {value!r}).") from None


def _text(value) -> str:
    return "" if pd.isna(value) else str(value).strip()


# ------------------------
# Loading
# ------------------------
def load_gradebook(students_csv, modules_csv,
                   grades_csv=None, absences_csv=None,
                   book: Optional[GradeBook] = None) -> GradeBook:
    """
    Build a GradeBook from CSV files. Rows go through the GradeBook setters,
    so a bad grade, duplicate CIN or unknown id raises like a manual edit would.

    Rows are loaded into a copy of `book`; the given book only changes once
    every file has loaded.
    """
    target = book
    book = copy.deepcopy(target) if target is not None else GradeBook()

    students = validate_students_csv(read_csv(students_csv))
    for _, row in students.iterrows():
        user_id = row.get("user_id")
        book.add_student(
            name=_text(row.get("name")),
            cin=_text(row.get("cin")),
            group=_text(row.get("group")),
            user_id=None if pd.isna(user_id) else _to_id(user_id, "user_id"),
            student_id=_to_id(row.get("id"), "id"),
        )

    modules = validate_modules_csv(read_csv(modules_csv))
    for _, row in modules.iterrows():
        exam_date = row.get("exam_date")
        book.add_module(
            name=_text(row.get("name")),
            coefficient=_to_number(row.get("coefficient"), "coefficient"),
            exam_date=None if pd.isna(exam_date) else pd.to_datetime(exam_date).date(),
            module_id=_to_id(row.get("id"), "id"),
        )

    graded = 0
    if grades_csv is not None:
        grades = validate_grades_csv(read_csv(grades_csv))
        for _, row in grades.iterrows():
            grade = row.get("grade")
            if pd.isna(grade):
                continue
            saved = book.set_grade(
                _to_id(row.get("student_id"), "student_id"),
                _to_id(row.get("module_id"), "module_id"),
                grade,
            )
            if saved is not None:
                graded += 1

    if absences_csv is not None:
        absences = validate_absences_csv(read_csv(absences_csv))
        for _, row in absences.iterrows():
            count = row.get("count")
            if pd.isna(count):
                continue
            book.set_absence(
                _to_id(row.get("student_id"), "student_id"),
                _to_id(row.get("module_id"), "module_id"),
                count,
            )

    logger.info(
        "Loaded %d students, %d modules, %d grades, %d absence records",
        len(book.students), len(book.modules), graded, len(book.absences),
    )
    if target is None:
        return book

    target.students, target.modules = book.students, book.modules
    target.grades, target.absences = book.grades, book.absences
    return target
