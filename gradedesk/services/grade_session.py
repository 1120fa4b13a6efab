"""
Enrollment and grade session.

Holds the selected student, course and semester and drives the backend
requests for enrollment and score entry. Every operation is a coroutine that
returns an ActionResult; failures never escape the session.
"""

import asyncio
import functools
import logging
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, List, Optional

from ..api.client import GradeApiClient
from ..api.models import CourseRef, GradeRecord, GradeStats, StudentRef
from ..core.enums import ActionOutcome, Selection
from ..core.exceptions import (
    ApiError, GradedeskException, NetworkError, ResourceNotFoundError, ValidationError
)
from ..core.semester import default_semester, parse_score, require_selection, validate_semester


logger = logging.getLogger(__name__)

STUDENT_SLOT = "student"
COURSE_SLOT = "course"
GRADES_SLOT = "grades"


@dataclass
class ActionResult:
    """Result of a session action."""
    success: bool
    outcome: ActionOutcome
    message: str
    data: Any = None

    @classmethod
    def ok(cls, message: str, data: Any = None) -> "ActionResult":
        return cls(success=True, outcome=ActionOutcome.OK, message=message, data=data)

    @classmethod
    def failed(cls, outcome: ActionOutcome, message: str) -> "ActionResult":
        return cls(success=False, outcome=outcome, message=message)


@dataclass
class SessionState:
    """Everything the view needs to render the page."""
    student: Optional[StudentRef] = None
    course: Optional[CourseRef] = None
    semester: str = ""
    grades: List[GradeRecord] = field(default_factory=list)
    grades_for: Selection = Selection.NONE
    stats: Optional[GradeStats] = None
    last_message: Optional[str] = None
    last_error: Optional[str] = None

    @property
    def active_selection(self) -> Selection:
        """The student wins when both references are set."""
        if self.student is not None:
            return Selection.STUDENT
        if self.course is not None:
            return Selection.COURSE
        return Selection.NONE

    @property
    def stats_visible(self) -> bool:
        return (self.active_selection is Selection.COURSE
                and self.grades_for is Selection.COURSE
                and self.stats is not None)


class GradeSession:
    """Coordinates lookups, enrollment and score entry against the backend."""

    def __init__(self, client: GradeApiClient, semester: Optional[str] = None,
                 executor: Optional[ThreadPoolExecutor] = None, max_workers: int = 4,
                 today: Optional[date] = None):
        self._client = client
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=max_workers,
                                                        thread_name_prefix="gradedesk")
        self._sequence: Dict[str, int] = defaultdict(int)
        initial = validate_semester(semester) if semester else default_semester(today)
        self.state = SessionState(semester=initial)

    async def __aenter__(self) -> "GradeSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        """Release the worker threads owned by this session."""
        if self._owns_executor:
            self._executor.shutdown(wait=False)

    # Lookups

    async def resolve_student(self, student_number: Any) -> ActionResult:
        """Look up a student by number and make it the selected student."""
        number = str(student_number or "").strip()
        if not number:
            return self._failure("Student lookup", ValidationError("Enter a student number"))

        ticket = self._next_ticket(STUDENT_SLOT)
        try:
            student = await self._call(self._client.get_student_by_number, number)
        except (ResourceNotFoundError, ApiError) as e:
            if not self._is_current(STUDENT_SLOT, ticket):
                return self._stale("Student lookup")
            self.state.student = None
            self._drop_grades()
            return self._failure("Student lookup", e)
        except NetworkError as e:
            if not self._is_current(STUDENT_SLOT, ticket):
                return self._stale("Student lookup")
            return self._failure("Student lookup", e)

        if not self._is_current(STUDENT_SLOT, ticket):
            return self._stale("Student lookup")
        self.state.student = student
        self._drop_grades()
        return self._success(f"Student: {student.name} ({student.sno})", student)

    async def resolve_course(self, course_number: Any) -> ActionResult:
        """Look up a course by number and make it the selected course."""
        number = str(course_number or "").strip()
        if not number:
            return self._failure("Course lookup", ValidationError("Enter a course number"))

        ticket = self._next_ticket(COURSE_SLOT)
        try:
            course = await self._call(self._client.get_course_by_number, number)
        except (ResourceNotFoundError, ApiError) as e:
            if not self._is_current(COURSE_SLOT, ticket):
                return self._stale("Course lookup")
            self.state.course = None
            self._drop_grades()
            return self._failure("Course lookup", e)
        except NetworkError as e:
            if not self._is_current(COURSE_SLOT, ticket):
                return self._stale("Course lookup")
            return self._failure("Course lookup", e)

        if not self._is_current(COURSE_SLOT, ticket):
            return self._stale("Course lookup")
        self.state.course = course
        self._drop_grades()
        return self._success(f"Course: {course.name} ({course.course_no})", course)

    def set_semester(self, token: Any) -> ActionResult:
        try:
            self.state.semester = validate_semester(token)
        except ValidationError as e:
            return self._failure("Semester", e)
        return self._success(f"Semester: {self.state.semester}", self.state.semester)

    def clear_selection(self) -> None:
        """Forget both references and the rendered grade list."""
        for slot in (STUDENT_SLOT, COURSE_SLOT):
            self._next_ticket(slot)
        self.state.student = None
        self.state.course = None
        self._drop_grades()
        self.state.last_message = None
        self.state.last_error = None

    # Enrollment

    async def enroll(self) -> ActionResult:
        """Enroll the selected student in the selected course for the semester."""
        try:
            require_selection(self.state.student, self.state.course, self.state.semester)
        except ValidationError as e:
            return self._failure("Enrollment", e)

        return await self._mutate(
            "Enrollment", "Course selected",
            self._client.select_course,
            self.state.student.sid, self.state.course.cid, self.state.semester,
        )

    async def drop(self, student_sid: int, course_cid: int, semester: str,
                   confirm: Callable[[str], bool]) -> ActionResult:
        """Drop an enrollment after the user confirms it."""
        if student_sid is None or course_cid is None:
            return self._failure("Drop", ValidationError("Choose an enrollment to drop"))
        if not semester or not str(semester).strip():
            return self._failure("Drop", ValidationError("Semester is required"))

        prompt = f"Drop course {course_cid} for student {student_sid} in {semester}?"
        if not confirm(prompt):
            logger.info("Drop of %s/%s/%s cancelled by user", student_sid, course_cid, semester)
            return ActionResult.failed(ActionOutcome.CANCELLED, "Drop cancelled")

        return await self._mutate(
            "Drop", "Course dropped",
            self._client.drop_course, student_sid, course_cid, str(semester).strip(),
        )

    async def list_enrollments(self) -> ActionResult:
        """Fetch the selected student's enrollments without touching the grade list."""
        if self.state.student is None:
            return self._failure("Enrollment list", ValidationError("Look up a student first"))
        try:
            records = await self._call(self._client.list_student_courses,
                                       self.state.student.sid, self.state.semester or None)
        except GradedeskException as e:
            return self._failure("Enrollment list", e)
        return self._success(f"{len(records)} enrollment(s)", records)

    # Scores

    async def record_regular_score(self, value: Any) -> ActionResult:
        return await self._record_score("Regular score", self._client.update_regular_score, value)

    async def record_exam_score(self, value: Any) -> ActionResult:
        return await self._record_score("Exam score", self._client.update_exam_score, value)

    async def finalize_grade(self) -> ActionResult:
        """Ask the server to compute the final score and complete the enrollment."""
        try:
            require_selection(self.state.student, self.state.course, self.state.semester)
        except ValidationError as e:
            return self._failure("Final score", e)

        return await self._mutate(
            "Final score", "Final score calculated",
            self._client.calculate_final_score,
            self.state.student.sid, self.state.course.cid, self.state.semester,
        )

    async def _record_score(self, action: str, send: Callable, value: Any) -> ActionResult:
        try:
            require_selection(self.state.student, self.state.course, self.state.semester)
            score = parse_score(value)
        except ValidationError as e:
            return self._failure(action, e)

        return await self._mutate(
            action, f"{action} recorded",
            send, self.state.student.sid, self.state.course.cid, self.state.semester, score,
        )

    # Grade list

    async def refresh_grades(self) -> ActionResult:
        """Reload the grade list for the active selection.

        The student's grades are shown when a student is selected, otherwise
        the course's grades together with the course statistics. A response
        that arrives after the selection moved on is discarded.
        """
        active = self.state.active_selection
        if active is Selection.NONE:
            return self._failure("Grade list", ValidationError("Look up a student or course first"))

        ticket = self._next_ticket(GRADES_SLOT)
        target = self._reference_id(active)
        semester = self.state.semester or None
        try:
            if active is Selection.STUDENT:
                grades = await self._call(self._client.get_student_grades, target, semester)
            else:
                grades = await self._call(self._client.get_course_grades, target, semester)
        except GradedeskException as e:
            if not self._still_targets(ticket, active, target):
                return self._stale("Grade list")
            return self._failure("Grade list", e)

        stats = None
        if active is Selection.COURSE and self._still_targets(ticket, active, target):
            try:
                stats = await self._call(self._client.get_course_stats, target, semester)
            except GradedeskException as e:
                logger.warning("Course statistics unavailable: %s", e.message)

        if not self._still_targets(ticket, active, target):
            return self._stale("Grade list")

        self.state.grades = grades
        self.state.grades_for = active
        self.state.stats = stats
        self.state.last_error = None
        return ActionResult.ok(f"{len(grades)} grade record(s)", grades)

    # Internals

    async def _mutate(self, action: str, done: str, send: Callable, *args) -> ActionResult:
        try:
            await self._call(send, *args)
        except GradedeskException as e:
            return self._failure(action, e)

        logger.info("%s succeeded: %s", action, args)
        if self.state.active_selection is Selection.NONE:
            return self._success(done)

        refresh = await self.refresh_grades()
        if refresh.success or refresh.outcome is ActionOutcome.STALE:
            return self._success(done)
        message = f"{done}; the grade list could not be refreshed: {refresh.message}"
        self.state.last_message = message
        return ActionResult.ok(message)

    def _reference_id(self, selection: Selection) -> Optional[int]:
        if selection is Selection.STUDENT and self.state.student is not None:
            return self.state.student.sid
        if selection is Selection.COURSE and self.state.course is not None:
            return self.state.course.cid
        return None

    def _still_targets(self, ticket: int, active: Selection, target: int) -> bool:
        return (self._is_current(GRADES_SLOT, ticket)
                and self.state.active_selection is active
                and self._reference_id(active) == target)

    def _drop_grades(self) -> None:
        """Forget the grade list and outdate any refresh still in flight."""
        self._next_ticket(GRADES_SLOT)
        self.state.grades = []
        self.state.grades_for = Selection.NONE
        self.state.stats = None

    async def _call(self, fn: Callable, *args) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, functools.partial(fn, *args))

    def _next_ticket(self, slot: str) -> int:
        self._sequence[slot] += 1
        return self._sequence[slot]

    def _is_current(self, slot: str, ticket: int) -> bool:
        return self._sequence[slot] == ticket

    def _success(self, message: str, data: Any = None) -> ActionResult:
        self.state.last_message = message
        self.state.last_error = None
        return ActionResult.ok(message, data)

    def _stale(self, action: str) -> ActionResult:
        logger.debug("%s response discarded; a newer request is in flight", action)
        return ActionResult.failed(ActionOutcome.STALE, f"{action} superseded by a newer request")

    def _failure(self, action: str, error: GradedeskException) -> ActionResult:
        if isinstance(error, ValidationError):
            outcome, message = ActionOutcome.VALIDATION_ERROR, error.message
            logger.warning("%s rejected locally: %s", action, message)
        elif isinstance(error, ResourceNotFoundError):
            outcome, message = ActionOutcome.NOT_FOUND, error.message
            logger.warning("%s: %s", action, message)
        elif isinstance(error, NetworkError):
            outcome, message = ActionOutcome.TRANSPORT_ERROR, f"{action} failed: the server could not be reached"
            logger.error("%s transport failure: %s", action, error.message)
        else:
            outcome, message = ActionOutcome.SERVER_ERROR, error.message
            logger.warning("%s rejected by server: %s", action, message)

        self.state.last_message = None
        self.state.last_error = message
        return ActionResult.failed(outcome, message)
