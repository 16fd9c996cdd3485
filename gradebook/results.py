from typing import Sequence

import pandas as pd

from .aggregation import Grades, classify_mention, grade_coefficient_pairs, student_average, status_label
from .config import PASS_MARK, RESULT_FILTERS, RESULT_SORTS
from .records import Module, Student

COLUMNS = [
    "student_id", "name", "cin", "group",
    "average", "status", "mention", "graded", "total_modules",
]


def results_table(students: Sequence[Student], modules: Sequence[Module], grades: Grades,
                  status: str = "all", sort_by: str = "name") -> pd.DataFrame:
    """
    One row per student with average, status and mention.

    status: "all", "passed" (average >= 10) or "failed" (graded, below 10).
    sort_by: "name", "average-desc" or "average-asc"; students without an
    average always sort last.
    """
    if status not in RESULT_FILTERS:
        raise ValueError(f"status must be one of {list(RESULT_FILTERS)} (got {status!r})")
    if sort_by not in RESULT_SORTS:
        raise ValueError(f"sort_by must be one of {list(RESULT_SORTS)} (got {sort_by!r})")

    rows = []
    for student in students:
        average = student_average(student.id, modules, grades)
        rows.append({
            "student_id": student.id,
            "name": student.name,
            "cin": student.cin,
            "group": student.group,
            "average": average,
            "status": status_label(average),
            "mention": classify_mention(average) if average is not None else None,
            "graded": len(grade_coefficient_pairs(student.id, modules, grades)),
            "total_modules": len(modules),
        })
    df = pd.DataFrame(rows, columns=COLUMNS)
    df["average"] = pd.to_numeric(df["average"], errors="coerce").astype(float)

    # ---- filter ----
    if status == "passed":
        df = df[df["average"] >= PASS_MARK]
    elif status == "failed":
        df = df[df["average"] < PASS_MARK]

    # ---- sort ----
    if sort_by == "name":
        df = df.sort_values("name", key=lambda s: s.str.lower(), kind="stable")
    else:
        df = df.sort_values(
            "average",
            ascending=(sort_by == "average-asc"),
            na_position="last",
            kind="stable",
        )

    df = df.reset_index(drop=True)
    # missing values come back out as None, not NaN
    for column in ("average", "mention"):
        df[column] = df[column].astype(object).where(df[column].notna(), None)
    return df
