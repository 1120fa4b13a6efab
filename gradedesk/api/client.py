"""
Blocking HTTP client for the student/course backend.

Every call returns the envelope's ``data`` on success. A non-success envelope
raises ResourceNotFoundError (code 404) or ApiError; a request that cannot be
completed, or whose body is not an envelope, raises NetworkError.
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests
from pydantic import TypeAdapter

from ..config import ClientConfig
from ..core.exceptions import ApiError, NetworkError, ResourceNotFoundError
from .models import ApiEnvelope, CourseRef, GradeRecord, GradeStats, StudentRef


logger = logging.getLogger(__name__)

_grade_list = TypeAdapter(List[GradeRecord])

NOT_FOUND_CODE = 404


class GradeApiClient:
    """Client for the ``/api`` endpoints used by the grade session."""

    def __init__(self, config: Optional[ClientConfig] = None, session=None):
        self._config = config or ClientConfig()
        self._http = session if session is not None else requests.Session()

    @property
    def base_url(self) -> str:
        return self._config.base_url

    def close(self) -> None:
        self._http.close()

    # Lookups

    def get_student_by_number(self, student_number: str) -> StudentRef:
        data = self._request("GET", f"/api/students/no/{quote(student_number, safe='')}")
        return self._parse(StudentRef, self._require_data(data, "Student not found"))

    def get_course_by_number(self, course_number: str) -> CourseRef:
        data = self._request("GET", f"/api/courses/no/{quote(course_number, safe='')}")
        return self._parse(CourseRef, self._require_data(data, "Course not found"))

    # Enrollment

    def select_course(self, student_sid: int, course_cid: int, semester: str) -> None:
        self._request("POST", "/api/student-courses/select",
                      form=self._enrollment_fields(student_sid, course_cid, semester))

    def drop_course(self, student_sid: int, course_cid: int, semester: str) -> None:
        self._request("POST", "/api/student-courses/drop",
                      form=self._enrollment_fields(student_sid, course_cid, semester))

    def list_student_courses(self, student_sid: int, semester: Optional[str] = None) -> List[GradeRecord]:
        data = self._request("GET", f"/api/student-courses/student/{student_sid}",
                             params=self._semester_param(semester))
        return self._grades(data)

    # Scores

    def update_regular_score(self, student_sid: int, course_cid: int, semester: str, score: float) -> None:
        params = self._enrollment_fields(student_sid, course_cid, semester)
        params["regularScore"] = score
        self._request("POST", "/api/student-courses/regular-score", params=params)

    def update_exam_score(self, student_sid: int, course_cid: int, semester: str, score: float) -> None:
        params = self._enrollment_fields(student_sid, course_cid, semester)
        params["examScore"] = score
        self._request("POST", "/api/student-courses/exam-score", params=params)

    def calculate_final_score(self, student_sid: int, course_cid: int, semester: str) -> None:
        self._request("POST", "/api/student-courses/final-score",
                      form=self._enrollment_fields(student_sid, course_cid, semester))

    # Grade queries

    def get_student_grades(self, student_sid: int, semester: Optional[str] = None) -> List[GradeRecord]:
        data = self._request("GET", f"/api/student-courses/grades/student/{student_sid}",
                             params=self._semester_param(semester))
        return self._grades(data)

    def get_course_grades(self, course_cid: int, semester: Optional[str] = None) -> List[GradeRecord]:
        data = self._request("GET", f"/api/student-courses/grades/course/{course_cid}",
                             params=self._semester_param(semester))
        return self._grades(data)

    def get_course_stats(self, course_cid: int, semester: Optional[str] = None) -> Optional[GradeStats]:
        data = self._request("GET", f"/api/student-courses/grades/stats/{course_cid}",
                             params=self._semester_param(semester))
        if data is None:
            return None
        return self._parse(GradeStats, data)

    def check_health(self) -> bool:
        """Return True if the backend answers its health endpoint."""
        try:
            response = self._http.get(f"{self.base_url}/health", timeout=self._config.timeout)
            return response.status_code == 200
        except requests.RequestException:
            return False

    # Internals

    def _request(self, method: str, path: str, params: Optional[Dict[str, Any]] = None,
                 form: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}{path}"
        logger.debug("%s %s params=%s form=%s", method, url, params, form)

        try:
            if method == "GET":
                response = self._http.get(url, params=params, timeout=self._config.timeout)
            else:
                response = self._http.post(url, params=params, data=form, timeout=self._config.timeout)
        except requests.RequestException as e:
            logger.error("%s %s failed: %s", method, url, e)
            raise NetworkError(f"Request to {path} failed: {e}")

        try:
            envelope = ApiEnvelope.model_validate(response.json())
        except ValueError as e:
            logger.error("%s %s returned an unreadable body (HTTP %s)", method, url, response.status_code)
            raise NetworkError(f"Unreadable response from {path} (HTTP {response.status_code})",
                               details={"error": str(e)})

        if not envelope.is_success:
            message = envelope.message or "Request failed"
            logger.warning("%s %s rejected: code=%s message=%s", method, url, envelope.code, message)
            if envelope.code == NOT_FOUND_CODE:
                raise ResourceNotFoundError(message, error_code=str(envelope.code))
            raise ApiError(message, code=envelope.code)

        return envelope.data

    @staticmethod
    def _require_data(data: Any, message: str) -> Any:
        if not data:
            raise ResourceNotFoundError(message)
        return data

    @staticmethod
    def _parse(model, data: Any):
        try:
            return model.model_validate(data)
        except ValueError as e:
            raise NetworkError(f"Malformed {model.__name__} payload: {e}")

    @staticmethod
    def _grades(data: Any) -> List[GradeRecord]:
        try:
            return _grade_list.validate_python(data or [])
        except ValueError as e:
            raise NetworkError(f"Malformed grade list payload: {e}")

    @staticmethod
    def _enrollment_fields(student_sid: int, course_cid: int, semester: str) -> Dict[str, Any]:
        return {"studentSid": student_sid, "courseCid": course_cid, "semester": semester}

    @staticmethod
    def _semester_param(semester: Optional[str]) -> Optional[Dict[str, str]]:
        return {"semester": semester} if semester else None
