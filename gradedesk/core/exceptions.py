"""
Custom exceptions for gradedesk.
"""

from typing import Optional, Any, Dict


class GradedeskException(Exception):
    """Base exception for all gradedesk errors."""

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}


class ValidationError(GradedeskException):
    """Raised when input fails validation before any request is sent."""
    pass


class ResourceNotFoundError(GradedeskException):
    """Raised when a requested student, course or enrollment does not exist."""
    pass


class EnrollmentError(GradedeskException):
    """Raised when an enrollment or grade rule rejects the operation."""
    pass


class ApiError(GradedeskException):
    """Raised when the backend answers with a non-success envelope."""

    def __init__(self, message: str, code: Optional[int] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code=str(code) if code is not None else None, details=details)
        self.code = code


class NetworkError(GradedeskException):
    """Raised when a request cannot be completed or its body cannot be decoded."""
    pass


class ConfigurationError(GradedeskException):
    """Raised when configuration is invalid."""
    pass
