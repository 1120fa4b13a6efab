"""
In-memory student/course/enrollment registry backing the reference server.
"""

import itertools
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Tuple

from ..core.enums import EnrollmentStatus, PASS_MARK
from ..core.exceptions import EnrollmentError, ResourceNotFoundError, ValidationError
from ..core.semester import parse_score


REGULAR_WEIGHT = Decimal("0.4")
EXAM_WEIGHT = Decimal("0.6")
TWO_PLACES = Decimal("0.01")


@dataclass
class StudentRow:
    sid: int
    sno: str
    name: str
    major: Optional[str] = None


@dataclass
class CourseRow:
    cid: int
    course_no: str
    name: str
    credit: Optional[float] = None


@dataclass
class EnrollmentRow:
    student_sid: int
    course_cid: int
    semester: str
    status: EnrollmentStatus = EnrollmentStatus.ENROLLED
    selection_date: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    regular_score: Optional[Decimal] = None
    exam_score: Optional[Decimal] = None
    final_score: Optional[Decimal] = None

    @property
    def key(self) -> Tuple[int, int, str]:
        return (self.student_sid, self.course_cid, self.semester)


def _as_float(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


class Registry:
    """Thread-safe registry applying the enrollment and grading rules."""

    def __init__(self):
        self._students: Dict[int, StudentRow] = {}
        self._courses: Dict[int, CourseRow] = {}
        self._enrollments: Dict[Tuple[int, int, str], EnrollmentRow] = {}
        self._student_ids = itertools.count(1)
        self._course_ids = itertools.count(1)
        self._lock = threading.RLock()

    # Students and courses

    def add_student(self, sno: str, name: str, major: Optional[str] = None) -> StudentRow:
        with self._lock:
            if self.find_student_by_no(sno):
                raise EnrollmentError(f"Student number {sno} already exists")
            student = StudentRow(sid=next(self._student_ids), sno=sno, name=name, major=major)
            self._students[student.sid] = student
            return student

    def add_course(self, course_no: str, name: str, credit: Optional[float] = None) -> CourseRow:
        with self._lock:
            if self.find_course_by_no(course_no):
                raise EnrollmentError(f"Course number {course_no} already exists")
            course = CourseRow(cid=next(self._course_ids), course_no=course_no, name=name, credit=credit)
            self._courses[course.cid] = course
            return course

    def find_student_by_no(self, sno: str) -> Optional[StudentRow]:
        with self._lock:
            return next((s for s in self._students.values() if s.sno == sno), None)

    def find_course_by_no(self, course_no: str) -> Optional[CourseRow]:
        with self._lock:
            return next((c for c in self._courses.values() if c.course_no == course_no), None)

    # Enrollment

    def select_course(self, student_sid: int, course_cid: int, semester: str) -> EnrollmentRow:
        with self._lock:
            self._validate_keys(student_sid, course_cid, semester)
            if student_sid not in self._students:
                raise ResourceNotFoundError("Student does not exist")
            if course_cid not in self._courses:
                raise ResourceNotFoundError("Course does not exist")

            key = (student_sid, course_cid, semester)
            if key in self._enrollments:
                raise EnrollmentError("Course already selected")

            row = EnrollmentRow(student_sid=student_sid, course_cid=course_cid, semester=semester)
            self._enrollments[key] = row
            return row

    def drop_course(self, student_sid: int, course_cid: int, semester: str) -> None:
        with self._lock:
            row = self._get(student_sid, course_cid, semester, "Course not selected")
            if row.status.value > EnrollmentStatus.ENROLLED.value:
                raise EnrollmentError("Courses with recorded scores cannot be dropped")
            del self._enrollments[row.key]

    # Scores

    def update_regular_score(self, student_sid: int, course_cid: int, semester: str, score) -> EnrollmentRow:
        with self._lock:
            value = self._score(score)
            row = self._get(student_sid, course_cid, semester, "Enrollment not found")
            row.regular_score = value
            row.status = EnrollmentStatus.REGULAR_SCORE_ENTERED
            return row

    def update_exam_score(self, student_sid: int, course_cid: int, semester: str, score) -> EnrollmentRow:
        with self._lock:
            value = self._score(score)
            row = self._get(student_sid, course_cid, semester, "Enrollment not found")
            if row.status.value < EnrollmentStatus.REGULAR_SCORE_ENTERED.value:
                raise EnrollmentError("Enter the regular score first")
            row.exam_score = value
            row.status = EnrollmentStatus.EXAM_SCORE_ENTERED
            return row

    def calculate_final_score(self, student_sid: int, course_cid: int, semester: str) -> EnrollmentRow:
        with self._lock:
            row = self._get(student_sid, course_cid, semester, "Enrollment not found")
            if row.status.value < EnrollmentStatus.EXAM_SCORE_ENTERED.value:
                raise EnrollmentError("Enter the regular and exam scores first")
            final = row.regular_score * REGULAR_WEIGHT + row.exam_score * EXAM_WEIGHT
            row.final_score = final.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
            row.status = EnrollmentStatus.COMPLETED
            return row

    # Queries

    def student_grades(self, student_sid: int, semester: Optional[str] = None) -> List[dict]:
        with self._lock:
            rows = [r for r in self._enrollments.values()
                    if r.student_sid == student_sid and (not semester or r.semester == semester)]
            return [self._to_record(r) for r in sorted(rows, key=lambda r: (r.semester, r.course_cid))]

    def course_grades(self, course_cid: int, semester: Optional[str] = None) -> List[dict]:
        with self._lock:
            rows = [r for r in self._enrollments.values()
                    if r.course_cid == course_cid and (not semester or r.semester == semester)]
            return [self._to_record(r) for r in sorted(rows, key=lambda r: (r.semester, r.student_sid))]

    def course_stats(self, course_cid: int, semester: Optional[str] = None) -> dict:
        """Statistics over enrollments that have a final score."""
        with self._lock:
            scores = [r.final_score for r in self._enrollments.values()
                      if r.course_cid == course_cid
                      and (not semester or r.semester == semester)
                      and r.final_score is not None]

        if not scores:
            return {"averageScore": 0.0, "maxScore": 0.0, "minScore": 0.0,
                    "passRate": 0.0, "gradedCount": 0}

        average = (sum(scores) / len(scores)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
        passed = sum(1 for s in scores if s >= PASS_MARK)
        return {
            "averageScore": float(average),
            "maxScore": float(max(scores)),
            "minScore": float(min(scores)),
            "passRate": passed / len(scores),
            "gradedCount": len(scores),
        }

    # Internals

    def _get(self, student_sid: int, course_cid: int, semester: str, missing: str) -> EnrollmentRow:
        self._validate_keys(student_sid, course_cid, semester)
        row = self._enrollments.get((student_sid, course_cid, semester))
        if row is None:
            raise ResourceNotFoundError(missing)
        return row

    @staticmethod
    def _validate_keys(student_sid, course_cid, semester) -> None:
        if student_sid is None:
            raise ValidationError("Student id is required")
        if course_cid is None:
            raise ValidationError("Course id is required")
        if not semester or not semester.strip():
            raise ValidationError("Semester is required")

    @staticmethod
    def _score(score) -> Decimal:
        return Decimal(str(parse_score(score)))

    def _to_record(self, row: EnrollmentRow) -> dict:
        student = self._students.get(row.student_sid)
        course = self._courses.get(row.course_cid)
        return {
            "studentSid": row.student_sid,
            "studentNo": student.sno if student else None,
            "studentName": student.name if student else None,
            "courseCid": row.course_cid,
            "courseNo": course.course_no if course else None,
            "courseName": course.name if course else None,
            "credit": course.credit if course else None,
            "semester": row.semester,
            "status": row.status.value,
            "selectionDate": row.selection_date.isoformat(),
            "regularScore": _as_float(row.regular_score),
            "examScore": _as_float(row.exam_score),
            "finalScore": _as_float(row.final_score),
        }


def create_sample_registry() -> Registry:
    """Registry seeded with a few students and courses for demos."""
    registry = Registry()
    registry.add_student("S001", "Alice Johnson", "Computer Science")
    registry.add_student("S002", "Bob Smith", "Mathematics")
    registry.add_student("S003", "Carol Davis", "Physics")
    registry.add_course("C001", "Introduction to Computer Science", 3.0)
    registry.add_course("C002", "Linear Algebra", 4.0)
    return registry
