import pytest

from gradebook.records import GradeBook


@pytest.fixture
def book():
    """Two modules, four students, one of them without any grade."""
    book = GradeBook()
    math = book.add_module("Math", 2)
    physics = book.add_module("Physics", 1)

    alice = book.add_student("Alice Martin", "AB1001", group="G1")
    book.add_student("Bob Durand", "AB1002", group="G1")
    chloe = book.add_student("Chloe Petit", "AB1003", group="G2")
    driss = book.add_student("Driss Alaoui", "AB1004", group="G2", user_id=42)

    book.set_grade(alice.id, math.id, 12)
    book.set_grade(alice.id, physics.id, 18)
    book.set_grade(chloe.id, math.id, 8)
    book.set_grade(chloe.id, physics.id, 9.5)
    book.set_grade(driss.id, math.id, 18)
    book.set_grade(driss.id, physics.id, 17)

    book.set_absence(alice.id, math.id, 3)
    book.set_absence(chloe.id, physics.id, 1)
    book.set_absence(chloe.id, math.id, 2)
    return book
