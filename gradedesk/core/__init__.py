"""
Core module containing enums, exceptions and local validation rules.
"""

from .enums import *
from .exceptions import *
from .semester import default_semester, validate_semester, parse_score, require_selection

__all__ = [
    # Enums
    "EnrollmentStatus",
    "ActionOutcome",
    "Selection",
    "SUCCESS_CODE",
    "PASS_MARK",
    "status_text",

    # Exceptions
    "GradedeskException",
    "ValidationError",
    "ResourceNotFoundError",
    "EnrollmentError",
    "ApiError",
    "NetworkError",
    "ConfigurationError",

    # Validation
    "default_semester",
    "validate_semester",
    "parse_score",
    "require_selection",
]
