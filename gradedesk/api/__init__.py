"""
API module: backend client, wire models and the reference REST backend.
"""

from .client import GradeApiClient
from .models import ApiEnvelope, StudentRef, CourseRef, GradeRecord, GradeStats
from .rest_api import GradedeskRestAPI

__all__ = [
    "GradeApiClient",
    "GradedeskRestAPI",
    "ApiEnvelope",
    "StudentRef",
    "CourseRef",
    "GradeRecord",
    "GradeStats",
]
