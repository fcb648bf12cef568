"""
Certificate Grading Helpers

Pure functions shared by the certificate service and the PDF renderer.
"""

from datetime import date
from typing import NamedTuple


class Grade(NamedTuple):
    grade: str
    grade_point: int


class GenderTokens(NamedTuple):
    salutation: str
    relation: str
    pronoun: str
    possessive: str


# (minimum marks, grade); first match wins
GRADE_SCALE: tuple[tuple[int, Grade], ...] = (
    (90, Grade("O (Outstanding)", 10)),
    (80, Grade("A+", 9)),
    (70, Grade("A", 8)),
    (60, Grade("B+", 7)),
    (50, Grade("B", 6)),
    (45, Grade("C", 5)),
    (40, Grade("D", 4)),
)

FAIL = Grade("F (Fail)", 0)


def calculate_grade(marks: int) -> Grade:
    """
    Map marks (0-100) to a letter grade and grade point.

    Raises:
        ValueError: If marks are outside 0-100
    """
    if not 0 <= marks <= 100:
        raise ValueError("marks must be an integer between 0 and 100")

    for minimum, grade in GRADE_SCALE:
        if marks >= minimum:
            return grade
    return FAIL


def calculate_duration_days(start: date, end: date) -> int:
    """Inclusive length of the internship in days."""
    return (end - start).days + 1


def gender_tokens(gender: str | None) -> GenderTokens:
    """Salutation, relation and pronouns for the certificate body."""
    if (gender or "").strip().lower().startswith("f"):
        return GenderTokens("Ms.", "D/o", "her", "her")
    return GenderTokens("Mr.", "S/o", "him", "his")


def format_date_dmy(value: date) -> str:
    return value.strftime("%d-%m-%Y")


def format_serial(prefix: str, year: int, sequence: int) -> str:
    """Serial number such as ``RTS/2026/0007``."""
    return f"{prefix}/{year}/{sequence:04d}"
