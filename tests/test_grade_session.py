# tests/test_grade_session.py

import asyncio
import threading

from gradedesk.api.models import StudentRef
from gradedesk.core import ActionOutcome, EnrollmentStatus, NetworkError, Selection
from gradedesk.services import GradeSession

from conftest import SEMESTER


class PartlyDownClient:
    """Delegates to a real client; the named calls fail as if the server were down."""

    def __init__(self, inner, failing=()):
        self.inner = inner
        self.failing = set(failing)

    def __getattr__(self, name):
        if name in self.failing:
            def unavailable(*args):
                raise NetworkError(f"{name} unavailable")
            return unavailable
        return getattr(self.inner, name)


def select(session, student="S001", course="C001"):
    if student:
        assert asyncio.run(session.resolve_student(student)).success
    if course:
        assert asyncio.run(session.resolve_course(course)).success


# === lookups ===


def test_resolve_student(session):
    result = asyncio.run(session.resolve_student("S001"))

    assert result.success
    assert session.state.student.sid == 1
    assert session.state.student.name == "Alice Johnson"


def test_resolve_unknown_student_clears_reference(session):
    select(session, course=None)

    result = asyncio.run(session.resolve_student("S999"))

    assert result.outcome is ActionOutcome.NOT_FOUND
    assert session.state.student is None
    assert session.state.last_error == "Student not found"


def test_resolve_unknown_course_clears_reference(session):
    select(session, student=None)

    result = asyncio.run(session.resolve_course("C999"))

    assert result.outcome is ActionOutcome.NOT_FOUND
    assert session.state.course is None


def test_resolve_blank_number_sends_nothing(session, http):
    result = asyncio.run(session.resolve_student("   "))

    assert result.outcome is ActionOutcome.VALIDATION_ERROR
    assert http.calls == 0


def test_resolve_number_with_url_characters_is_not_found(session):
    result = asyncio.run(session.resolve_student("S001?x"))

    assert result.outcome is ActionOutcome.NOT_FOUND
    assert session.state.student is None


def test_resolving_another_student_drops_previous_grades(session):
    select(session)
    asyncio.run(session.enroll())
    assert [g.student_no for g in session.state.grades] == ["S001"]

    assert asyncio.run(session.resolve_student("S002")).success

    assert session.state.grades == []
    assert session.state.grades_for is Selection.NONE

    asyncio.run(session.refresh_grades())
    assert all(g.student_no == "S002" for g in session.state.grades)


def test_failed_lookup_drops_grades(session):
    select(session, student=None)
    asyncio.run(session.refresh_grades())
    assert session.state.stats is not None

    asyncio.run(session.resolve_course("C999"))

    assert session.state.grades == []
    assert session.state.stats is None
    assert not session.state.stats_visible


def test_transport_failure_keeps_reference(session, http):
    select(session, course=None)
    http.down = True

    result = asyncio.run(session.resolve_student("S002"))

    assert result.outcome is ActionOutcome.TRANSPORT_ERROR
    assert session.state.student.sno == "S001"
    assert session.state.last_error


# === semester ===


def test_default_semester_set_on_construction(api_client):
    session = GradeSession(api_client)
    try:
        assert session.state.semester
    finally:
        session.close()


def test_set_semester_rejects_malformed_token(session):
    result = session.set_semester("2024")

    assert result.outcome is ActionOutcome.VALIDATION_ERROR
    assert session.state.semester == SEMESTER


# === enrollment ===


def test_enroll_without_references_sends_nothing(session, http):
    result = asyncio.run(session.enroll())

    assert result.outcome is ActionOutcome.VALIDATION_ERROR
    assert http.calls == 0


def test_enroll_without_course_sends_nothing(session, http):
    select(session, course=None)
    calls = http.calls

    result = asyncio.run(session.enroll())

    assert result.outcome is ActionOutcome.VALIDATION_ERROR
    assert http.calls == calls


def test_enroll_with_empty_semester_sends_nothing(session, http):
    select(session)
    session.state.semester = ""
    calls = http.calls

    result = asyncio.run(session.enroll())

    assert result.outcome is ActionOutcome.VALIDATION_ERROR
    assert http.calls == calls


def test_enroll_twice_surfaces_server_message(session):
    select(session)
    assert asyncio.run(session.enroll()).success

    result = asyncio.run(session.enroll())

    assert result.outcome is ActionOutcome.SERVER_ERROR
    assert result.message == "Course already selected"
    assert session.state.last_error == "Course already selected"


def test_drop_removes_row_after_refresh(session):
    select(session)
    asyncio.run(session.enroll())
    assert len(session.state.grades) == 1

    result = asyncio.run(session.drop(1, 1, SEMESTER, confirm=lambda prompt: True))
    assert result.success

    asyncio.run(session.refresh_grades())
    keys = [g.key for g in session.state.grades]
    assert (1, 1, SEMESTER) not in keys


def test_drop_declined_sends_nothing(session, http):
    select(session)
    asyncio.run(session.enroll())
    calls = http.calls

    result = asyncio.run(session.drop(1, 1, SEMESTER, confirm=lambda prompt: False))

    assert result.outcome is ActionOutcome.CANCELLED
    assert http.calls == calls
    assert len(session.state.grades) == 1


def test_drop_after_scores_is_rejected(session):
    select(session)
    asyncio.run(session.enroll())
    asyncio.run(session.record_regular_score(70))

    result = asyncio.run(session.drop(1, 1, SEMESTER, confirm=lambda prompt: True))

    assert result.outcome is ActionOutcome.SERVER_ERROR
    assert "cannot be dropped" in result.message


def test_list_enrollments(session):
    select(session)
    asyncio.run(session.enroll())

    result = asyncio.run(session.list_enrollments())

    assert result.success
    assert [r.course_no for r in result.data] == ["C001"]


# === scores ===


def test_invalid_scores_rejected_locally(session, http):
    select(session)
    calls = http.calls

    for value in (-1, 100.5, "abc", "", None, float("nan")):
        regular = asyncio.run(session.record_regular_score(value))
        exam = asyncio.run(session.record_exam_score(value))
        assert regular.outcome is ActionOutcome.VALIDATION_ERROR
        assert exam.outcome is ActionOutcome.VALIDATION_ERROR

    assert http.calls == calls


def test_score_without_student_rejected_locally(session, http):
    select(session, student=None)
    calls = http.calls

    result = asyncio.run(session.record_regular_score(85))

    assert result.outcome is ActionOutcome.VALIDATION_ERROR
    assert http.calls == calls


def test_exam_score_before_regular_score_is_rejected(session):
    select(session)
    asyncio.run(session.enroll())

    result = asyncio.run(session.record_exam_score(90))

    assert result.outcome is ActionOutcome.SERVER_ERROR
    assert result.message == "Enter the regular score first"


def test_enrollment_and_grading_scenario(session):
    select(session)

    assert asyncio.run(session.enroll()).success
    [row] = session.state.grades
    assert row.status == EnrollmentStatus.ENROLLED.value
    assert row.regular_score is None
    assert row.exam_score is None

    assert asyncio.run(session.record_regular_score(85)).success
    [row] = session.state.grades
    assert row.status == EnrollmentStatus.REGULAR_SCORE_ENTERED.value
    assert row.regular_score == 85.0

    assert asyncio.run(session.record_exam_score(90)).success
    [row] = session.state.grades
    assert row.status == EnrollmentStatus.EXAM_SCORE_ENTERED.value
    assert row.exam_score == 90.0

    assert asyncio.run(session.finalize_grade()).success
    [row] = session.state.grades
    assert row.status == EnrollmentStatus.COMPLETED.value
    assert row.final_score == 88.0


# === grade list and statistics ===


def test_refresh_without_selection(session, http):
    result = asyncio.run(session.refresh_grades())

    assert result.outcome is ActionOutcome.VALIDATION_ERROR
    assert http.calls == 0


def test_stats_shown_only_for_course_selection(session):
    select(session, student=None)
    asyncio.run(session.refresh_grades())

    assert session.state.grades_for is Selection.COURSE
    assert session.state.stats_visible

    select(session, course=None)
    asyncio.run(session.refresh_grades())

    assert session.state.grades_for is Selection.STUDENT
    assert session.state.stats is None
    assert not session.state.stats_visible


def test_stats_failure_does_not_fail_refresh(api_client):
    session = GradeSession(PartlyDownClient(api_client, failing=["get_course_stats"]), semester=SEMESTER)
    try:
        select(session)
        asyncio.run(session.enroll())
        session.state.student = None

        result = asyncio.run(session.refresh_grades())
    finally:
        session.close()

    assert result.success
    assert [g.student_no for g in session.state.grades] == ["S001"]
    assert session.state.grades_for is Selection.COURSE
    assert session.state.stats is None
    assert not session.state.stats_visible


def test_mutation_reports_failed_refresh(api_client):
    client = PartlyDownClient(api_client)
    session = GradeSession(client, semester=SEMESTER)
    try:
        select(session)
        client.failing.add("get_student_grades")

        result = asyncio.run(session.enroll())
    finally:
        session.close()

    assert result.success
    assert result.message.startswith("Course selected")
    assert "could not be refreshed" in result.message
    assert session.state.last_message == result.message
    assert session.state.last_error


def test_course_grades_list_every_student(session):
    for number in ("S001", "S002"):
        select(session, student=number)
        asyncio.run(session.enroll())

    session.state.student = None
    asyncio.run(session.refresh_grades())

    assert sorted(g.student_no for g in session.state.grades) == ["S001", "S002"]


def test_clear_selection(session):
    select(session)
    asyncio.run(session.enroll())

    session.clear_selection()

    assert session.state.student is None
    assert session.state.course is None
    assert session.state.grades == []
    assert session.state.active_selection is Selection.NONE


# === stale responses ===


class SlowLookupClient:
    """The first lookup finishes only after the second one has started."""

    def __init__(self):
        self.release = threading.Event()

    def get_student_by_number(self, number):
        if number == "S001":
            self.release.wait(timeout=5)
        else:
            self.release.set()
        return StudentRef(sid=int(number[1:]), sno=number, name=f"Student {number}")


def test_stale_lookup_is_discarded():
    session = GradeSession(SlowLookupClient(), semester=SEMESTER)

    async def resolve_both():
        return await asyncio.gather(
            session.resolve_student("S001"),
            session.resolve_student("S002"),
        )

    try:
        first, second = asyncio.run(resolve_both())
    finally:
        session.close()

    assert first.outcome is ActionOutcome.STALE
    assert second.success
    assert session.state.student.sno == "S002"


class HeldGradesClient(PartlyDownClient):
    """Student grade queries wait until released."""

    def __init__(self, inner):
        super().__init__(inner)
        self.release = threading.Event()

    def get_student_grades(self, student_sid, semester=None):
        grades = self.inner.get_student_grades(student_sid, semester)
        self.release.wait(timeout=5)
        return grades


def test_refresh_for_previous_student_is_discarded(api_client):
    client = HeldGradesClient(api_client)
    session = GradeSession(client, semester=SEMESTER)

    async def refresh_then_switch():
        refresh = asyncio.ensure_future(session.refresh_grades())
        await asyncio.sleep(0)
        lookup = await session.resolve_student("S002")
        client.release.set()
        return await refresh, lookup

    try:
        select(session)
        client.release.set()
        asyncio.run(session.enroll())
        client.release.clear()

        refreshed, lookup = asyncio.run(refresh_then_switch())
    finally:
        session.close()

    assert lookup.success
    assert refreshed.outcome is ActionOutcome.STALE
    assert session.state.student.sno == "S002"
    assert all(g.student_sid == 2 for g in session.state.grades)
