"""
Semester tokens and the local preconditions checked before any request.
"""

import math
import re
from datetime import date
from typing import Any, Optional

from .enums import ACADEMIC_YEAR_START_MONTH, SECOND_TERM_START_MONTH
from .exceptions import ValidationError


SEMESTER_PATTERN = re.compile(r"^(\d{4})-(\d{4})-([12])$")

MIN_SCORE = 0.0
MAX_SCORE = 100.0


def default_semester(today: Optional[date] = None) -> str:
    """Semester token for the term that contains ``today``.

    September through February is term 1 of the academic year starting in
    September; March through August is term 2 of the year that started the
    previous September.
    """
    today = today or date.today()
    year = today.year
    if today.month >= ACADEMIC_YEAR_START_MONTH:
        return f"{year}-{year + 1}-1"
    if today.month >= SECOND_TERM_START_MONTH:
        return f"{year - 1}-{year}-2"
    return f"{year - 1}-{year}-1"


def validate_semester(token: Any) -> str:
    """Return the normalized token or raise ValidationError."""
    if token is None or not str(token).strip():
        raise ValidationError("Semester is required", error_code="SEMESTER_REQUIRED")

    token = str(token).strip()
    match = SEMESTER_PATTERN.match(token)
    if not match:
        raise ValidationError(
            f"Semester must look like 2024-2025-1, got {token!r}",
            error_code="SEMESTER_FORMAT",
        )

    start, end = int(match.group(1)), int(match.group(2))
    if end != start + 1:
        raise ValidationError(
            f"Semester years must be consecutive, got {token!r}",
            error_code="SEMESTER_FORMAT",
        )
    return token


def parse_score(value: Any) -> float:
    """Parse a score entered by the user; must be a finite number in [0, 100]."""
    if value is None or isinstance(value, bool):
        raise ValidationError("Score is required", error_code="SCORE_REQUIRED")

    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValidationError("Score is required", error_code="SCORE_REQUIRED")

    try:
        score = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Score must be a number, got {value!r}", error_code="SCORE_NOT_NUMBER")

    if math.isnan(score) or math.isinf(score) or score < MIN_SCORE or score > MAX_SCORE:
        raise ValidationError("Score must be between 0 and 100", error_code="SCORE_OUT_OF_RANGE")
    return score


def require_selection(student, course, semester: Optional[str]) -> None:
    """Shared precondition for enrollment and grade operations."""
    if student is None:
        raise ValidationError("Look up a student first", error_code="STUDENT_REQUIRED")
    if course is None:
        raise ValidationError("Look up a course first", error_code="COURSE_REQUIRED")
    if not semester or not semester.strip():
        raise ValidationError("Semester is required", error_code="SEMESTER_REQUIRED")
