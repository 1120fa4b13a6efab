"""
Enumerations and constants for gradedesk.
"""

from enum import Enum


# Envelope code that marks a successful response. The backend's response
# wrapper emits 200; the alternative 0 convention is not accepted.
SUCCESS_CODE = 200

# First month of term 1 of an academic year.
ACADEMIC_YEAR_START_MONTH = 9

# First month of term 2.
SECOND_TERM_START_MONTH = 3

PASS_MARK = 60


class EnrollmentStatus(Enum):
    """Lifecycle stage of an enrollment, assigned by the server."""
    ENROLLED = 1
    REGULAR_SCORE_ENTERED = 2
    EXAM_SCORE_ENTERED = 3
    COMPLETED = 4

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


_STATUS_LABELS = {
    EnrollmentStatus.ENROLLED: "Enrolled",
    EnrollmentStatus.REGULAR_SCORE_ENTERED: "Regular score entered",
    EnrollmentStatus.EXAM_SCORE_ENTERED: "Exam score entered",
    EnrollmentStatus.COMPLETED: "Completed",
}

UNKNOWN_STATUS_LABEL = "Unknown status"


def status_text(code) -> str:
    """Display text for a server status code."""
    try:
        return EnrollmentStatus(code).label
    except ValueError:
        return UNKNOWN_STATUS_LABEL


class ActionOutcome(Enum):
    """Outcome of a session action."""
    OK = "ok"
    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"
    SERVER_ERROR = "server_error"
    TRANSPORT_ERROR = "transport_error"
    CANCELLED = "cancelled"
    STALE = "stale"


class Selection(Enum):
    """Which reference drives the grade list."""
    NONE = "none"
    STUDENT = "student"
    COURSE = "course"
