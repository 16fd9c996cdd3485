import logging
import math
from dataclasses import dataclass, replace
from datetime import date
from typing import Dict, List, Optional, Tuple

from .config import GRADE_MAX, GRADE_MIN

logger = logging.getLogger(__name__)

FactKey = Tuple[int, int]


class RecordError(ValueError):
    pass


class DuplicateRecordError(RecordError):
    pass


class InvalidGradeError(RecordError):
    pass


class InvalidAbsenceError(RecordError):
    pass


class RecordNotFoundError(LookupError):
    pass


def _require_non_empty(value, field: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field} must not be empty")


# ------------------------
# Entities
# ------------------------
@dataclass(frozen=True)
class Student:
    id: int
    name: str
    cin: str
    group: str = ""
    user_id: Optional[int] = None

    def __post_init__(self) -> None:
        _require_non_empty(self.name, "Student name")
        _require_non_empty(self.cin, "Student CIN")


@dataclass(frozen=True)
class Module:
    id: int
    name: str
    coefficient: float
    exam_date: Optional[date] = None

    def __post_init__(self) -> None:
        _require_non_empty(self.name, "Module name")
        if not self.coefficient > 0:
            raise ValueError(f"Module coefficient must be positive (got {self.coefficient}).")


# ------------------------
# Value parsing
# ------------------------
def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_grade(value) -> Optional[float]:
    """
    Returns the grade as a float, or None when the value means "no grade"
    (blank or NaN). Text that is not a number and numbers outside [0, 20]
    are rejected.
    """
    if _is_blank(value):
        return None
    try:
        grade = float(value)
    except (TypeError, ValueError):
        raise InvalidGradeError(f"Grade must be a number (got {value!r}).") from None
    if math.isnan(grade):
        return None

    if not GRADE_MIN <= grade <= GRADE_MAX:
        raise InvalidGradeError(
            f"Grade must be between {GRADE_MIN:g} and {GRADE_MAX:g} (got {value})."
        )
    return grade


def is_valid_grade(value) -> bool:
    try:
        return parse_grade(value) is not None
    except InvalidGradeError:
        return False


def parse_absence_count(value) -> int:
    if _is_blank(value):
        return 0
    try:
        count = float(value)
    except (TypeError, ValueError):
        raise InvalidAbsenceError(f"Absence count must be a whole number (got {value!r}).") from None

    if not count.is_integer() or count < 0:
        raise InvalidAbsenceError(f"Absence count must be 0 or a positive whole number (got {value}).")
    return int(count)


# ------------------------
# In-memory snapshot
# ------------------------
class GradeBook:
    """
    Students, modules and the two sparse fact tables for one classroom.

    Grades and absences are keyed by (student_id, module_id), so there is at
    most one fact per pair. Deleting a student or module removes its facts.
    """

    def __init__(self):
        self.students: List[Student] = []
        self.modules: List[Module] = []
        self.grades: Dict[FactKey, float] = {}
        self.absences: Dict[FactKey, int] = {}

    # ---- students ----
    def get_student(self, student_id: int) -> Optional[Student]:
        return next((s for s in self.students if s.id == student_id), None)

    def get_student_by_user_id(self, user_id: int) -> Optional[Student]:
        return next((s for s in self.students if s.user_id == user_id), None)

    def _check_cin(self, cin: str, student_id: Optional[int] = None) -> None:
        if any(s.cin == cin and s.id != student_id for s in self.students):
            raise DuplicateRecordError(f"A student with CIN {cin!r} already exists.")

    def add_student(self, name: str, cin: str, group: str = "",
                    user_id: Optional[int] = None,
                    student_id: Optional[int] = None) -> Student:
        self._check_cin(cin)
        if student_id is None:
            student_id = max((s.id for s in self.students), default=0) + 1
        elif self.get_student(student_id) is not None:
            raise DuplicateRecordError(f"Student id {student_id} is already taken.")

        student = Student(id=student_id, name=name, cin=cin, group=group, user_id=user_id)
        self.students.append(student)
        logger.debug("Added student %s (%s)", student.id, student.name)
        return student

    def update_student(self, student_id: int, **changes) -> Student:
        current = self.get_student(student_id)
        if current is None:
            raise RecordNotFoundError(f"No student with id {student_id}.")

        changes.pop("id", None)
        updated = replace(current, **changes)
        self._check_cin(updated.cin, student_id)
        self.students[self.students.index(current)] = updated
        logger.debug("Updated student %s", student_id)
        return updated

    def delete_student(self, student_id: int) -> None:
        self.students = [s for s in self.students if s.id != student_id]
        self.grades = {k: v for k, v in self.grades.items() if k[0] != student_id}
        self.absences = {k: v for k, v in self.absences.items() if k[0] != student_id}
        logger.debug("Deleted student %s with its grades and absences", student_id)

    # ---- modules ----
    def get_module(self, module_id: int) -> Optional[Module]:
        return next((m for m in self.modules if m.id == module_id), None)

    def _check_module_name(self, name: str, module_id: Optional[int] = None) -> None:
        wanted = name.strip().lower()
        if any(m.name.strip().lower() == wanted and m.id != module_id for m in self.modules):
            raise DuplicateRecordError(f"A module named {name!r} already exists.")

    def add_module(self, name: str, coefficient: float,
                   exam_date: Optional[date] = None,
                   module_id: Optional[int] = None) -> Module:
        self._check_module_name(name)
        if module_id is None:
            module_id = max((m.id for m in self.modules), default=0) + 1
        elif self.get_module(module_id) is not None:
            raise DuplicateRecordError(f"Module id {module_id} is already taken.")

        module = Module(id=module_id, name=name, coefficient=coefficient, exam_date=exam_date)
        self.modules.append(module)
        logger.debug("Added module %s (%s, coef %s)", module.id, module.name, module.coefficient)
        return module

    def update_module(self, module_id: int, **changes) -> Module:
        current = self.get_module(module_id)
        if current is None:
            raise RecordNotFoundError(f"No module with id {module_id}.")

        changes.pop("id", None)
        updated = replace(current, **changes)
        self._check_module_name(updated.name, module_id)
        self.modules[self.modules.index(current)] = updated
        logger.debug("Updated module %s", module_id)
        return updated

    def delete_module(self, module_id: int) -> None:
        self.modules = [m for m in self.modules if m.id != module_id]
        self.grades = {k: v for k, v in self.grades.items() if k[1] != module_id}
        self.absences = {k: v for k, v in self.absences.items() if k[1] != module_id}
        logger.debug("Deleted module %s with its grades and absences", module_id)

    # ---- facts ----
    def _check_pair(self, student_id: int, module_id: int) -> None:
        if self.get_student(student_id) is None:
            raise RecordNotFoundError(f"No student with id {student_id}.")
        if self.get_module(module_id) is None:
            raise RecordNotFoundError(f"No module with id {module_id}.")

    def get_grade(self, student_id: int, module_id: int) -> Optional[float]:
        return self.grades.get((student_id, module_id))

    def set_grade(self, student_id: int, module_id: int, value) -> Optional[float]:
        """Record a grade; a blank value removes the existing one."""
        self._check_pair(student_id, module_id)
        grade = parse_grade(value)

        if grade is None:
            self.grades.pop((student_id, module_id), None)
            logger.debug("Cleared grade for student %s, module %s", student_id, module_id)
        else:
            self.grades[(student_id, module_id)] = grade
            logger.debug("Grade saved: student %s, module %s, grade %s", student_id, module_id, grade)
        return grade

    def get_absence_count(self, student_id: int, module_id: int) -> int:
        return self.absences.get((student_id, module_id), 0)

    def set_absence(self, student_id: int, module_id: int, count) -> int:
        self._check_pair(student_id, module_id)
        count = parse_absence_count(count)

        # zero is stored as no record
        if count == 0:
            self.absences.pop((student_id, module_id), None)
        else:
            self.absences[(student_id, module_id)] = count
        logger.debug("Absence saved: student %s, module %s, count %s", student_id, module_id, count)
        return count

    def student_grades(self, student_id: int) -> Dict[int, float]:
        return {mid: g for (sid, mid), g in self.grades.items() if sid == student_id}

    def student_absences(self, student_id: int) -> Dict[int, int]:
        return {mid: c for (sid, mid), c in self.absences.items() if sid == student_id}
