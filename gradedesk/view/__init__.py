"""
Text rendering of the session state.
"""

from .console import (
    format_score, render_selection, render_grade_table, render_stats,
    render_enrollments, render_session,
)

__all__ = [
    "format_score",
    "render_selection",
    "render_grade_table",
    "render_stats",
    "render_enrollments",
    "render_session",
]
