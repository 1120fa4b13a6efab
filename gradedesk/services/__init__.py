"""
Services module containing the enrollment and grade session.
"""

from .grade_session import GradeSession, SessionState, ActionResult

__all__ = [
    "GradeSession",
    "SessionState",
    "ActionResult",
]
