"""
Pure text projections of SessionState for the command line.

Nothing here reads from the backend or mutates the session.
"""

from typing import List, Optional, Sequence

from ..api.models import GradeRecord, GradeStats
from ..services.grade_session import SessionState


EMPTY = "-"
NO_GRADES = "No grade data"

GRADE_COLUMNS = ("Student No", "Name", "Course No", "Course", "Semester",
                 "Regular", "Exam", "Final", "Status")
ENROLLMENT_COLUMNS = ("Semester", "Course No", "Course", "Credit", "Selected", "Status")


def format_score(score: Optional[float]) -> str:
    return f"{score:.1f}" if score is not None else EMPTY


def _cell(value) -> str:
    return str(value) if value not in (None, "") else EMPTY


def _table(columns: Sequence[str], rows: List[Sequence[str]]) -> str:
    widths = [len(c) for c in columns]
    for row in rows:
        widths = [max(w, len(cell)) for w, cell in zip(widths, row)]

    def line(cells):
        return " | ".join(f"{cell:<{w}}" for cell, w in zip(cells, widths)).rstrip()

    separator = "-+-".join("-" * w for w in widths)
    return "\n".join([line(columns), separator] + [line(row) for row in rows])


def render_selection(state: SessionState) -> str:
    student = f"{state.student.name} ({state.student.sno})" if state.student else "[none]"
    course = f"{state.course.name} ({state.course.course_no})" if state.course else "[none]"
    return "\n".join([
        f"Student:  {student}",
        f"Course:   {course}",
        f"Semester: {state.semester or '[none]'}",
    ])


def render_grade_table(grades: List[GradeRecord]) -> str:
    if not grades:
        return NO_GRADES

    rows = [
        (
            _cell(g.student_no),
            _cell(g.student_name),
            _cell(g.course_no),
            _cell(g.course_name),
            _cell(g.semester),
            format_score(g.regular_score),
            format_score(g.exam_score),
            format_score(g.final_score),
            g.status_text,
        )
        for g in grades
    ]
    return _table(GRADE_COLUMNS, rows)


def render_stats(stats: GradeStats) -> str:
    return "\n".join([
        "Course statistics",
        f"... Average:   {format_score(stats.average_score)}",
        f"... Max:       {format_score(stats.max_score)}",
        f"... Min:       {format_score(stats.min_score)}",
        f"... Pass rate: {stats.pass_rate * 100:.1f}%",
    ])


def render_enrollments(records: List[GradeRecord]) -> str:
    if not records:
        return "No enrollments"

    rows = [
        (
            r.semester,
            _cell(r.course_no),
            _cell(r.course_name),
            _cell(r.credit),
            r.selection_date.strftime("%Y-%m-%d") if r.selection_date else EMPTY,
            r.status_text,
        )
        for r in records
    ]
    return _table(ENROLLMENT_COLUMNS, rows)


def render_session(state: SessionState) -> str:
    """Selection header, last message, grade table and, for a course, statistics."""
    parts = [render_selection(state)]
    if state.last_error:
        parts.append(f"Error: {state.last_error}")
    elif state.last_message:
        parts.append(state.last_message)
    parts.append(render_grade_table(state.grades))
    if state.stats_visible:
        parts.append(render_stats(state.stats))
    return "\n\n".join(parts)
