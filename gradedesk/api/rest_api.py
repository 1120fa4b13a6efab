"""
Reference REST backend implemented with FastAPI.

Serves the student, course and enrollment endpoints consumed by the grade
session, wrapping every response in the ``{code, message, data}`` envelope.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from fastapi import FastAPI, Form, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..core.exceptions import EnrollmentError, ResourceNotFoundError, ValidationError
from ..persistence import CourseRow, Registry, StudentRow
from .models import ApiEnvelope


logger = logging.getLogger(__name__)


def _envelope(http_status: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=http_status, content=ApiEnvelope.error(http_status, message).to_wire())


def _ok(data=None) -> Dict:
    return ApiEnvelope.success(data).to_wire()


def _student_payload(student: StudentRow) -> Dict:
    return {"sid": student.sid, "sno": student.sno, "name": student.name, "major": student.major}


def _course_payload(course: CourseRow) -> Dict:
    return {"cid": course.cid, "courseNo": course.course_no, "name": course.name, "credit": course.credit}


class GradedeskRestAPI:
    """REST API over an in-memory registry."""

    def __init__(self, registry: Optional[Registry] = None):
        self._registry = registry or Registry()

        self.app = FastAPI(
            title="gradedesk reference backend",
            description="Student, course and enrollment endpoints used by the grade session",
            version="1.0.0",
            docs_url="/docs",
            redoc_url="/redoc"
        )

        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        self._setup_exception_handlers()
        self._setup_routes()

    @property
    def registry(self) -> Registry:
        return self._registry

    def _setup_exception_handlers(self):
        """Map domain errors onto envelope responses."""

        @self.app.exception_handler(ValidationError)
        async def handle_validation_error(request: Request, exc: ValidationError):
            logger.warning("Validation failed on %s: %s", request.url.path, exc.message)
            return _envelope(status.HTTP_400_BAD_REQUEST, exc.message)

        @self.app.exception_handler(RequestValidationError)
        async def handle_request_validation_error(request: Request, exc: RequestValidationError):
            logger.warning("Bad parameters on %s: %s", request.url.path, exc.errors())
            return _envelope(status.HTTP_400_BAD_REQUEST, "Invalid request parameters")

        @self.app.exception_handler(StarletteHTTPException)
        async def handle_http_error(request: Request, exc: StarletteHTTPException):
            return _envelope(exc.status_code, str(exc.detail))

        @self.app.exception_handler(ResourceNotFoundError)
        async def handle_not_found(request: Request, exc: ResourceNotFoundError):
            return _envelope(status.HTTP_404_NOT_FOUND, exc.message)

        @self.app.exception_handler(EnrollmentError)
        async def handle_enrollment_error(request: Request, exc: EnrollmentError):
            logger.warning("Rejected %s: %s", request.url.path, exc.message)
            return _envelope(status.HTTP_409_CONFLICT, exc.message)

        @self.app.exception_handler(Exception)
        async def handle_unexpected(request: Request, exc: Exception):
            logger.exception("Unhandled error on %s", request.url.path)
            return _envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")

    def _setup_routes(self):
        """Setup API routes."""
        registry = self._registry

        @self.app.get("/health")
        async def health_check():
            return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}

        # Lookups
        @self.app.get("/api/students/no/{student_number}")
        async def get_student_by_number(student_number: str):
            student = registry.find_student_by_no(student_number)
            if student is None:
                raise ResourceNotFoundError("Student not found")
            return _ok(_student_payload(student))

        @self.app.get("/api/courses/no/{course_number}")
        async def get_course_by_number(course_number: str):
            course = registry.find_course_by_no(course_number)
            if course is None:
                raise ResourceNotFoundError("Course not found")
            return _ok(_course_payload(course))

        # Enrollment
        @self.app.post("/api/student-courses/select")
        async def select_course(studentSid: int = Form(...), courseCid: int = Form(...),
                                semester: str = Form(...)):
            registry.select_course(studentSid, courseCid, semester)
            logger.info("Course selected: studentSid=%s courseCid=%s semester=%s", studentSid, courseCid, semester)
            return _ok()

        @self.app.post("/api/student-courses/drop")
        async def drop_course(studentSid: int = Form(...), courseCid: int = Form(...),
                              semester: str = Form(...)):
            registry.drop_course(studentSid, courseCid, semester)
            logger.info("Course dropped: studentSid=%s courseCid=%s semester=%s", studentSid, courseCid, semester)
            return _ok()

        @self.app.get("/api/student-courses/student/{student_sid}")
        async def get_student_courses(student_sid: int, semester: Optional[str] = None):
            return _ok(registry.student_grades(student_sid, semester))

        @self.app.get("/api/student-courses/course/{course_cid}")
        async def get_course_students(course_cid: int, semester: Optional[str] = None):
            return _ok(registry.course_grades(course_cid, semester))

        # Scores
        @self.app.post("/api/student-courses/regular-score")
        async def update_regular_score(studentSid: int = Query(...), courseCid: int = Query(...),
                                       semester: str = Query(...), regularScore: float = Query(...)):
            registry.update_regular_score(studentSid, courseCid, semester, regularScore)
            logger.info("Regular score recorded: studentSid=%s courseCid=%s semester=%s score=%s",
                        studentSid, courseCid, semester, regularScore)
            return _ok()

        @self.app.post("/api/student-courses/exam-score")
        async def update_exam_score(studentSid: int = Query(...), courseCid: int = Query(...),
                                    semester: str = Query(...), examScore: float = Query(...)):
            registry.update_exam_score(studentSid, courseCid, semester, examScore)
            logger.info("Exam score recorded: studentSid=%s courseCid=%s semester=%s score=%s",
                        studentSid, courseCid, semester, examScore)
            return _ok()

        @self.app.post("/api/student-courses/final-score")
        async def calculate_final_score(studentSid: int = Form(...), courseCid: int = Form(...),
                                        semester: str = Form(...)):
            registry.calculate_final_score(studentSid, courseCid, semester)
            return _ok()

        # Grade queries
        @self.app.get("/api/student-courses/grades/student/{student_sid}")
        async def get_student_grades(student_sid: int, semester: Optional[str] = None):
            return _ok(registry.student_grades(student_sid, semester))

        @self.app.get("/api/student-courses/grades/course/{course_cid}")
        async def get_course_grades(course_cid: int, semester: Optional[str] = None):
            return _ok(registry.course_grades(course_cid, semester))

        @self.app.get("/api/student-courses/grades/stats/{course_cid}")
        async def get_course_grade_stats(course_cid: int, semester: Optional[str] = None):
            return _ok(registry.course_stats(course_cid, semester))
