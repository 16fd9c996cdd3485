import logging
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .config import (
    FAIL_MENTION,
    GRADE_MAX,
    MENTION_BANDS,
    MENTION_ORDER,
    PASS_MARK,
    STATUS_FAILED,
    STATUS_NO_GRADES,
    STATUS_PASSED,
    STRONG_SUBJECT_MARK,
    WEAK_SUBJECT_MARK,
)
from .records import FactKey, Module, Student

logger = logging.getLogger(__name__)

Grades = Mapping[FactKey, float]
Absences = Mapping[FactKey, int]


# ------------------------
# Result types
# ------------------------
@dataclass(frozen=True)
class StudentAverage:
    student: Student
    average: float


@dataclass(frozen=True)
class Ranking:
    rank: int
    total: int
    percentile: int


@dataclass(frozen=True)
class StudentSummary:
    average: Optional[float]
    mention: Optional[str]
    status: str
    graded_modules: int
    total_modules: int
    passed_modules: int
    module_pass_rate: int
    exam_readiness: int
    weak_subjects: List[str] = field(default_factory=list)
    strong_subjects: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ClassStatistics:
    student_count: int
    module_count: int
    grade_count: int
    success_rate: int
    overall_average: Optional[float]
    passed: int
    failed: int
    best: Optional[StudentAverage]
    worst: Optional[StudentAverage]
    distribution: Dict[str, int]


# ------------------------
# Rounding
# ------------------------
def round_half_up(x: float, places: int = 1) -> float:
    return float(Decimal(str(x)).quantize(Decimal(10) ** -places, rounding=ROUND_HALF_UP))


def percent(part: float, whole: float) -> int:
    """Integer percentage of part over whole, 0 when whole is empty."""
    if whole <= 0:
        return 0
    return int(round_half_up(part * 100 / whole, 0))


def format_average(average: Optional[float], places: int = 2) -> str:
    if average is None:
        return "N/A"
    return f"{round_half_up(average, places):.{places}f}/{GRADE_MAX:g}"


# ------------------------
# Averages
# ------------------------
def weighted_mean(gc: np.ndarray) -> Tuple[Optional[float], float]:
    """
    gc: Nx2 numpy array -> [grade, coefficient]
    returns: (coefficient-weighted mean grade or None, total coefficient)
    """
    if gc.size == 0:
        return None, 0.0

    grades = gc[:, 0].astype(float)
    coefficients = gc[:, 1].astype(float)
    total_coefficient = float(coefficients.sum())
    if total_coefficient <= 0:
        return None, 0.0

    mean = float(np.dot(grades, coefficients) / total_coefficient)
    return mean, total_coefficient


def grade_coefficient_pairs(student_id: int, modules: Sequence[Module], grades: Grades) -> np.ndarray:
    # Only modules that exist count, so stray grade facts are ignored
    rows = [
        (grades[(student_id, m.id)], m.coefficient)
        for m in modules
        if grades.get((student_id, m.id)) is not None
    ]
    if not rows:
        return np.zeros((0, 2), dtype=float)
    return np.array(rows, dtype=float)


def student_average(student_id: int, modules: Sequence[Module], grades: Grades) -> Optional[float]:
    mean, _ = weighted_mean(grade_coefficient_pairs(student_id, modules, grades))
    return mean


def students_with_averages(students: Sequence[Student], modules: Sequence[Module],
                           grades: Grades) -> List[StudentAverage]:
    averaged = []
    for student in students:
        average = student_average(student.id, modules, grades)
        if average is not None:
            averaged.append(StudentAverage(student, average))
    return averaged


def overall_average(students: Sequence[Student], modules: Sequence[Module],
                    grades: Grades) -> Optional[float]:
    averages = [sa.average for sa in students_with_averages(students, modules, grades)]
    if not averages:
        return None
    return float(np.mean(averages))


# ------------------------
# Mentions and pass/fail
# ------------------------
def classify_mention(average: float) -> str:
    if average is None:
        raise ValueError("Cannot classify a student without an average")

    for lower_bound, label in MENTION_BANDS:
        if average >= lower_bound:
            return label
    return FAIL_MENTION


def is_passing(average: Optional[float]) -> bool:
    return average is not None and average >= PASS_MARK


def status_label(average: Optional[float]) -> str:
    if average is None:
        return STATUS_NO_GRADES
    return STATUS_PASSED if average >= PASS_MARK else STATUS_FAILED


def success_rate(students: Sequence[Student], modules: Sequence[Module], grades: Grades) -> int:
    """
    Percentage of the whole cohort that passes. Students without any grade
    stay in the denominator and count as not passed.
    """
    passed = sum(1 for s in students if is_passing(student_average(s.id, modules, grades)))
    return percent(passed, len(students))


def pass_fail_counts(students: Sequence[Student], modules: Sequence[Module],
                     grades: Grades) -> Tuple[int, int]:
    passed = failed = 0
    for sa in students_with_averages(students, modules, grades):
        if sa.average >= PASS_MARK:
            passed += 1
        else:
            failed += 1
    return passed, failed


# ------------------------
# Ranking
# ------------------------
def best_student(students: Sequence[Student], modules: Sequence[Module],
                 grades: Grades) -> Optional[StudentAverage]:
    averaged = students_with_averages(students, modules, grades)
    if not averaged:
        return None
    # max() keeps the first of equal averages
    return max(averaged, key=lambda sa: sa.average)


def worst_student(students: Sequence[Student], modules: Sequence[Module],
                  grades: Grades) -> Optional[StudentAverage]:
    averaged = students_with_averages(students, modules, grades)
    if not averaged:
        return None
    return min(averaged, key=lambda sa: sa.average)


def rank_student(student_id: int, students: Sequence[Student], modules: Sequence[Module],
                 grades: Grades) -> Optional[Ranking]:
    ranked = sorted(
        students_with_averages(students, modules, grades),
        key=lambda sa: sa.average,
        reverse=True,
    )
    for position, sa in enumerate(ranked, start=1):
        if sa.student.id == student_id:
            total = len(ranked)
            return Ranking(rank=position, total=total, percentile=percent(total - position + 1, total))
    return None


# ------------------------
# Distribution
# ------------------------
def distribution_of(averages: Iterable[float]) -> Dict[str, int]:
    """
    Count averages per mention band, Excellent first.
    """
    averages = np.asarray(list(averages), dtype=float)

    ascending = sorted(MENTION_BANDS)
    bounds = [lower for lower, _ in ascending]
    labels = [FAIL_MENTION] + [label for _, label in ascending]

    # digitize puts x in bucket i when bounds[i-1] <= x < bounds[i]
    buckets = np.digitize(averages, bounds)
    counts = np.bincount(buckets, minlength=len(labels))

    by_label = dict(zip(labels, counts.tolist()))
    return {label: by_label[label] for label in sorted(by_label, key=MENTION_ORDER.get)}


def grade_distribution(students: Sequence[Student], modules: Sequence[Module],
                       grades: Grades) -> Dict[str, int]:
    return distribution_of(sa.average for sa in students_with_averages(students, modules, grades))


# ------------------------
# Completion
# ------------------------
def module_completion(students: Sequence[Student], modules: Sequence[Module],
                      grades: Grades) -> Dict[int, int]:
    completion = {}
    for module in modules:
        graded = sum(1 for s in students if grades.get((s.id, module.id)) is not None)
        completion[module.id] = percent(graded, len(students))
    return completion


def student_module_completion(student_id: int, modules: Sequence[Module],
                              grades: Grades) -> Dict[int, int]:
    return {
        m.id: 100 if grades.get((student_id, m.id)) is not None else 0
        for m in modules
    }


# ------------------------
# Absences
# ------------------------
def total_absences(student_id: int, absences: Absences) -> int:
    return sum(count for (sid, _), count in absences.items() if sid == student_id)


def absence_totals(students: Sequence[Student], absences: Absences) -> Dict[int, int]:
    return {s.id: total_absences(s.id, absences) for s in students}


# ------------------------
# Summaries
# ------------------------
def student_summary(student_id: int, modules: Sequence[Module], grades: Grades) -> StudentSummary:
    graded = [m for m in modules if grades.get((student_id, m.id)) is not None]
    passed = [m for m in graded if grades[(student_id, m.id)] >= PASS_MARK]
    average = student_average(student_id, modules, grades)

    return StudentSummary(
        average=average,
        mention=classify_mention(average) if average is not None else None,
        status=status_label(average),
        graded_modules=len(graded),
        total_modules=len(modules),
        passed_modules=len(passed),
        module_pass_rate=percent(len(passed), len(graded)),
        exam_readiness=percent(average, GRADE_MAX) if average is not None else 0,
        weak_subjects=[m.name for m in graded if grades[(student_id, m.id)] < WEAK_SUBJECT_MARK],
        strong_subjects=[m.name for m in graded if grades[(student_id, m.id)] >= STRONG_SUBJECT_MARK],
    )


def class_statistics(students: Sequence[Student], modules: Sequence[Module],
                     grades: Grades) -> ClassStatistics:
    student_ids = {s.id for s in students}
    module_ids = {m.id for m in modules}
    grade_count = sum(
        1 for (sid, mid), g in grades.items()
        if g is not None and sid in student_ids and mid in module_ids
    )
    passed, failed = pass_fail_counts(students, modules, grades)

    stats = ClassStatistics(
        student_count=len(students),
        module_count=len(modules),
        grade_count=grade_count,
        success_rate=success_rate(students, modules, grades),
        overall_average=overall_average(students, modules, grades),
        passed=passed,
        failed=failed,
        best=best_student(students, modules, grades),
        worst=worst_student(students, modules, grades),
        distribution=grade_distribution(students, modules, grades),
    )
    logger.debug(
        "Class statistics: %d students, %d graded, success rate %d%%",
        stats.student_count, passed + failed, stats.success_rate,
    )
    return stats
