# tests/test_rest_api.py

from conftest import SEMESTER


def enroll(backend, sid=1, cid=1, semester=SEMESTER):
    return backend.post(
        "/api/student-courses/select",
        data={"studentSid": sid, "courseCid": cid, "semester": semester},
    )


def score(backend, kind, value, sid=1, cid=1):
    field = "regularScore" if kind == "regular" else "examScore"
    return backend.post(
        f"/api/student-courses/{kind}-score",
        params={"studentSid": sid, "courseCid": cid, "semester": SEMESTER, field: value},
    )


def finalize(backend, sid=1, cid=1):
    return backend.post(
        "/api/student-courses/final-score",
        data={"studentSid": sid, "courseCid": cid, "semester": SEMESTER},
    )


def test_health(backend):
    assert backend.get("/health").json()["status"] == "healthy"


def test_lookup_student_by_number(backend):
    body = backend.get("/api/students/no/S002").json()

    assert body["code"] == 200
    assert body["data"]["name"] == "Bob Smith"


def test_lookup_missing_course_is_404_envelope(backend):
    response = backend.get("/api/courses/no/NOPE")

    assert response.status_code == 404
    assert response.json() == {"code": 404, "message": "Course not found", "data": None}


def test_unknown_route_is_404_envelope(backend):
    response = backend.get("/api/nothing-here")

    assert response.status_code == 404
    assert response.json()["code"] == 404


def test_enroll_unknown_student(backend):
    body = enroll(backend, sid=99).json()

    assert body["code"] == 404
    assert body["message"] == "Student does not exist"


def test_bad_parameters_are_400_envelope(backend):
    response = backend.post("/api/student-courses/select", data={"studentSid": "x"})

    assert response.status_code == 400
    assert response.json()["code"] == 400


def test_score_out_of_range_rejected(backend):
    enroll(backend)

    body = score(backend, "regular", 101).json()

    assert body["code"] == 400
    assert body["message"] == "Score must be between 0 and 100"


def test_final_score_requires_exam_score(backend):
    enroll(backend)
    score(backend, "regular", 80)

    body = finalize(backend).json()

    assert body["code"] == 409


def test_course_stats_use_final_scores(backend):
    for sid, regular, exam in ((1, 90, 90), (2, 50, 40), (3, 70, 80)):
        enroll(backend, sid=sid)
        score(backend, "regular", regular, sid=sid)
        score(backend, "exam", exam, sid=sid)
    finalize(backend, sid=1)
    finalize(backend, sid=2)

    stats = backend.get(f"/api/student-courses/grades/stats/1?semester={SEMESTER}").json()["data"]

    # final scores: 90.0 and 44.0; student 3 is not finalized
    assert stats["gradedCount"] == 2
    assert stats["averageScore"] == 67.0
    assert stats["maxScore"] == 90.0
    assert stats["minScore"] == 44.0
    assert stats["passRate"] == 0.5


def test_course_stats_empty(backend):
    stats = backend.get("/api/student-courses/grades/stats/2").json()["data"]

    assert stats == {"averageScore": 0.0, "maxScore": 0.0, "minScore": 0.0, "passRate": 0.0, "gradedCount": 0}


def test_grades_filtered_by_semester(backend):
    enroll(backend, semester=SEMESTER)
    enroll(backend, semester="2024-2025-2")

    all_rows = backend.get("/api/student-courses/grades/student/1").json()["data"]
    one_term = backend.get(f"/api/student-courses/grades/student/1?semester={SEMESTER}").json()["data"]

    assert len(all_rows) == 2
    assert [r["semester"] for r in one_term] == [SEMESTER]
