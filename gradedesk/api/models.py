"""
Pydantic models for the backend's JSON payloads.

Wire names are camelCase; Python attributes are snake_case. Models accept
either form on input and are serialized with ``by_alias=True``.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..core.enums import SUCCESS_CODE, status_text


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class ApiEnvelope(WireModel):
    """The ``{code, message, data}`` wrapper on every response."""
    code: int
    message: Optional[str] = None
    data: Any = None

    @property
    def is_success(self) -> bool:
        return self.code == SUCCESS_CODE

    @classmethod
    def success(cls, data: Any = None) -> "ApiEnvelope":
        return cls(code=SUCCESS_CODE, message="success", data=data)

    @classmethod
    def error(cls, code: int, message: str) -> "ApiEnvelope":
        return cls(code=code, message=message)


class StudentRef(WireModel):
    """A resolved student."""
    sid: int
    sno: str
    name: str


class CourseRef(WireModel):
    """A resolved course."""
    cid: int
    course_no: str = Field(..., alias="courseNo")
    name: str
    credit: Optional[float] = None


class GradeRecord(WireModel):
    """One (student, course, semester) row as returned by the grade endpoints."""
    student_sid: int = Field(..., alias="studentSid")
    student_no: Optional[str] = Field(None, alias="studentNo")
    student_name: Optional[str] = Field(None, alias="studentName")
    course_cid: int = Field(..., alias="courseCid")
    course_no: Optional[str] = Field(None, alias="courseNo")
    course_name: Optional[str] = Field(None, alias="courseName")
    semester: str
    status: int
    regular_score: Optional[float] = Field(None, alias="regularScore", ge=0, le=100)
    exam_score: Optional[float] = Field(None, alias="examScore", ge=0, le=100)
    final_score: Optional[float] = Field(None, alias="finalScore", ge=0, le=100)
    selection_date: Optional[datetime] = Field(None, alias="selectionDate")
    credit: Optional[float] = None

    @property
    def status_text(self) -> str:
        return status_text(self.status)

    @property
    def key(self) -> tuple:
        return (self.student_sid, self.course_cid, self.semester)


class GradeStats(WireModel):
    """Aggregate final-score statistics for one course."""
    average_score: float = Field(0.0, alias="averageScore")
    max_score: float = Field(0.0, alias="maxScore")
    min_score: float = Field(0.0, alias="minScore")
    pass_rate: float = Field(0.0, alias="passRate", ge=0, le=1)
    graded_count: int = Field(0, alias="gradedCount")
