import logging
from datetime import timedelta

from tests.conftest import NOW, add_submission, auth_header, login, TestingSessionLocal


def payload(**overrides) -> dict:
    body = {
        "title": "Essay 1",
        "description": "Write 500 words on recursion.",
        "due_date": (NOW + timedelta(days=10)).isoformat(),
        "allowed_formats": ["pdf", "docx"],
        "max_files": 2,
    }
    body.update(overrides)
    return body


def create(client, course_id, token, **overrides):
    return client.post(f"/courses/{course_id}/assignments", headers=auth_header(token), json=payload(**overrides))


def test_full_flow(client, seed):
    instructor = login(client, "instructor1@example.com")
    student = login(client, "student1@example.com")

    r = create(client, seed.course_id, instructor)
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["is_published"] is False
    assert body["max_file_size"] == 52428800
    assignment_id = body["id"]

    # drafts stay hidden from students
    r = client.get(f"/courses/{seed.course_id}/assignments", headers=auth_header(student))
    assert r.status_code == 200, r.text
    assert r.json() == []

    r = client.post(f"/assignments/{assignment_id}/publish", headers=auth_header(instructor))
    assert r.status_code == 200, r.text
    assert r.json()["is_published"] is True

    r = client.get(f"/courses/{seed.course_id}/assignments", headers=auth_header(student))
    (row,) = r.json()
    assert row["id"] == assignment_id
    assert row["eligibility"]["can_submit_now"] is True
    assert row["eligibility"]["is_overdue"] is False

    r = client.post(
        f"/assignments/{assignment_id}/submissions",
        headers=auth_header(student),
        json={"content": "my essay"},
    )
    assert r.status_code == 201, r.text

    r = client.get(f"/assignments/{assignment_id}", headers=auth_header(instructor))
    assert r.json()["submission_count"] == 1

    # file requirements are frozen now
    r = client.patch(
        f"/assignments/{assignment_id}",
        headers=auth_header(instructor),
        json={"max_files": 4},
    )
    assert r.status_code == 409, r.text
    assert r.json()["code"] == "CANNOT_MODIFY_WITH_SUBMISSIONS"

    r = client.delete(f"/assignments/{assignment_id}", headers=auth_header(instructor))
    assert r.status_code == 409, r.text


def test_validation_errors_are_listed_per_field(client, seed):
    instructor = login(client, "instructor1@example.com")
    r = create(client, seed.course_id, instructor, title="", allow_late_submission=True)
    assert r.status_code == 422, r.text

    body = r.json()
    assert body["code"] == "INVALID_INPUT"
    assert sorted(e["field"] for e in body["errors"]) == ["late_penalty", "title"]


def test_foreign_course_gets_generic_denial(client, seed):
    instructor = login(client, "instructor1@example.com")
    r = create(client, seed.other_course_id, instructor)
    assert r.status_code == 403, r.text
    assert r.json()["message"] == "Not found or access denied"


def test_students_cannot_manage_assignments(client, seed):
    student = login(client, "student1@example.com")
    r = create(client, seed.course_id, student)
    assert r.status_code == 403


def test_requests_need_a_token(client, seed):
    r = client.get(f"/courses/{seed.course_id}/assignments")
    assert r.status_code == 401


def test_update_and_delete(client, seed):
    instructor = login(client, "instructor1@example.com")
    assignment_id = create(client, seed.course_id, instructor).json()["id"]

    r = client.patch(
        f"/assignments/{assignment_id}",
        headers=auth_header(instructor),
        json={"instructions": "Cite at least two sources.", "total_points": 50},
    )
    assert r.status_code == 200, r.text
    assert r.json()["total_points"] == 50

    r = client.patch(f"/assignments/{assignment_id}", headers=auth_header(instructor), json={"instructions": None})
    assert r.json()["instructions"] is None

    r = client.delete(f"/assignments/{assignment_id}", headers=auth_header(instructor))
    assert r.status_code == 204
    # a deleted assignment reads the same as somebody else's
    r = client.get(f"/assignments/{assignment_id}", headers=auth_header(instructor))
    assert r.status_code == 403
    assert r.json()["message"] == "Not found or access denied"

    admin = login(client, "admin@example.com")
    r = client.get(f"/assignments/{assignment_id}", headers=auth_header(admin))
    assert r.status_code == 404
    assert r.json()["code"] == "ASSIGNMENT_NOT_FOUND"


def test_admin_sees_everything(client, seed):
    instructor = login(client, "instructor1@example.com")
    other = login(client, "instructor2@example.com")
    admin = login(client, "admin@example.com")
    create(client, seed.course_id, instructor)
    create(client, seed.other_course_id, other)

    assert len(client.get("/assignments", headers=auth_header(instructor)).json()) == 1
    assert len(client.get("/assignments", headers=auth_header(admin)).json()) == 2


def test_extension_and_eligibility(client, seed):
    instructor = login(client, "instructor1@example.com")
    student = login(client, "student1@example.com")
    assignment_id = create(client, seed.course_id, instructor).json()["id"]
    client.post(f"/assignments/{assignment_id}/publish", headers=auth_header(instructor))

    r = client.put(
        f"/assignments/{assignment_id}/extensions/{seed.student_id}",
        headers=auth_header(instructor),
        json={"new_due_date": (NOW + timedelta(days=20)).isoformat(), "reason": "Medical leave, documented."},
    )
    assert r.status_code == 200, r.text

    r = client.put(
        f"/assignments/{assignment_id}/extensions/{seed.student_id}",
        headers=auth_header(instructor),
        json={"new_due_date": (NOW + timedelta(days=45)).isoformat(), "reason": "Medical leave, documented."},
    )
    assert r.status_code == 400
    assert r.json()["code"] == "EXTENSION_TOO_LONG"

    r = client.get(f"/assignments/{assignment_id}/extensions", headers=auth_header(instructor))
    assert [e["student_id"] for e in r.json()] == [seed.student_id]

    r = client.get(f"/assignments/{assignment_id}/eligibility", headers=auth_header(student))
    assert r.status_code == 200, r.text
    assert r.json()["effective_due_date"].startswith((NOW + timedelta(days=20)).date().isoformat())


def test_extension_after_submission_conflicts(client, seed):
    instructor = login(client, "instructor1@example.com")
    assignment_id = create(client, seed.course_id, instructor).json()["id"]

    db = TestingSessionLocal()
    try:
        add_submission(db, assignment_id, seed.student_id)
    finally:
        db.close()

    r = client.put(
        f"/assignments/{assignment_id}/extensions/{seed.student_id}",
        headers=auth_header(instructor),
        json={"new_due_date": (NOW + timedelta(days=12)).isoformat(), "reason": "Medical leave, documented."},
    )
    assert r.status_code == 409
    assert r.json()["code"] == "EXTENSION_AFTER_SUBMISSION"


def test_dropped_student_cannot_see_course_work(client, seed):
    dropped = login(client, "dropped@example.com")
    r = client.get(f"/courses/{seed.course_id}/assignments", headers=auth_header(dropped))
    assert r.status_code == 404


def test_staff_roster_and_single_student_standing(client, clock, seed):
    instructor = login(client, "instructor1@example.com")
    other = login(client, "instructor2@example.com")
    student = login(client, "student1@example.com")
    assignment_id = create(client, seed.course_id, instructor).json()["id"]
    client.post(f"/assignments/{assignment_id}/publish", headers=auth_header(instructor))
    client.post(f"/assignments/{assignment_id}/submissions", headers=auth_header(student), json={"content": "done"})

    clock.advance(days=11)
    r = client.get(f"/assignments/{assignment_id}/roster", headers=auth_header(instructor))
    assert r.status_code == 200, r.text
    standing = {row["student_id"]: row["eligibility"] for row in r.json()}
    assert sorted(standing) == sorted([seed.student_id, seed.student2_id])
    assert standing[seed.student_id]["has_submitted"] is True
    assert standing[seed.student2_id]["is_overdue"] is True

    r = client.get(f"/assignments/{assignment_id}/eligibility/{seed.student2_id}", headers=auth_header(instructor))
    assert r.status_code == 200, r.text
    assert r.json()["can_submit_now"] is False

    r = client.get(f"/assignments/{assignment_id}/roster", headers=auth_header(other))
    assert r.status_code == 403
    r = client.get(f"/assignments/{assignment_id}/roster", headers=auth_header(student))
    assert r.status_code == 403


def test_request_id_is_echoed_and_logged(client, seed, caplog):
    r = client.get("/health", headers={"X-Request-ID": "abc123"})
    assert r.headers["X-Request-ID"] == "abc123"

    assert client.get("/health").headers["X-Request-ID"]

    instructor = login(client, "instructor1@example.com")
    with caplog.at_level(logging.INFO, logger="assignment_engine.core.logging_middleware"):
        r = client.get("/assignments/999999", headers={**auth_header(instructor), "X-Request-ID": "req-403"})
    assert r.status_code == 403
    (record,) = [
        rec
        for rec in caplog.records
        if rec.name == "assignment_engine.core.logging_middleware" and "req-403" in rec.getMessage()
    ]
    assert record.levelno == logging.WARNING
