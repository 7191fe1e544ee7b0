from __future__ import annotations

from fastapi.testclient import TestClient

from tests.conftest import auth, seed_assignment, seed_course, seed_user
from tutoring.repos.unit_of_work import InMemoryStore


def test_tutor_dashboard_summary(client: TestClient, store: InMemoryStore) -> None:
    tutor = seed_user(store, "tutor")
    student = seed_user(store)
    course, _ = seed_course(store, tutor, lessons=3)
    seed_course(store, tutor, published=False)
    client.post(
        "/v1/enrollments",
        json={"student_id": str(student.id), "course_id": str(course.id)},
        headers=auth(student),
    )

    resp = client.get("/v1/dashboard/tutor", headers=auth(tutor))
    assert resp.status_code == 200
    assert resp.json() == {
        "courses": 2,
        "lessons": 3,
        "enrollments": 1,
        "students": 1,
        "pending_submissions": 0,
    }


def test_tutor_enrollment_stats(client: TestClient, store: InMemoryStore) -> None:
    tutor = seed_user(store, "tutor")
    student = seed_user(store)
    course, _ = seed_course(store, tutor, title="Geometry")
    empty, _ = seed_course(store, tutor, title="Algebra")
    client.post(
        "/v1/enrollments",
        json={"student_id": str(student.id), "course_id": str(course.id)},
        headers=auth(student),
    )

    resp = client.get("/v1/dashboard/tutor/enrollments", headers=auth(tutor))
    assert resp.status_code == 200
    assert resp.json() == {
        "total_enrollments": 1,
        "unique_students": 1,
        "by_course": [
            {"course_id": str(empty.id), "course_title": "Algebra", "enrollment_count": 0},
            {"course_id": str(course.id), "course_title": "Geometry", "enrollment_count": 1},
        ],
    }


def test_student_dashboard_summary(client: TestClient, store: InMemoryStore) -> None:
    tutor = seed_user(store, "tutor")
    student = seed_user(store)
    course, lessons = seed_course(store, tutor, lessons=1)
    assignment = seed_assignment(store, lessons[0])
    enrolled = client.post(
        "/v1/enrollments",
        json={"student_id": str(student.id), "course_id": str(course.id)},
        headers=auth(student),
    ).json()
    client.put(
        f"/v1/enrollments/{enrolled['id']}/lessons/{lessons[0].id}/completion",
        headers=auth(student),
    )
    client.post(
        f"/v1/assignments/{assignment.id}/submissions", json={"payload": "x"}, headers=auth(student)
    )

    resp = client.get("/v1/dashboard/student", headers=auth(student))
    assert resp.status_code == 200
    assert resp.json() == {
        "enrollments": 1,
        "completed_courses": 1,
        "pending_submissions": 1,
        "total_assignments": 1,
    }
    assert client.get("/v1/dashboard/student", headers=auth(tutor)).status_code == 403
