"""
In-memory storage for the reference backend.
"""

from .registry import Registry, StudentRow, CourseRow, EnrollmentRow, create_sample_registry

__all__ = [
    "Registry",
    "StudentRow",
    "CourseRow",
    "EnrollmentRow",
    "create_sample_registry",
]
