from __future__ import annotations

from fastapi.testclient import TestClient

from tests.conftest import auth, seed_course, seed_user
from tutoring.repos.unit_of_work import InMemoryStore


def _enroll(client: TestClient, student, course) -> str:
    resp = client.post(
        "/v1/enrollments",
        json={"student_id": str(student.id), "course_id": str(course.id)},
        headers=auth(student),
    )
    assert resp.status_code == 201
    return resp.json()["id"]


def test_completion_roundtrip_updates_progress(client: TestClient, store: InMemoryStore) -> None:
    tutor = seed_user(store, "tutor")
    student = seed_user(store)
    course, lessons = seed_course(store, tutor, lessons=4)
    eid = _enroll(client, student, course)
    url = f"/v1/enrollments/{eid}/lessons/{{}}/completion"

    r1 = client.put(url.format(lessons[0].id), headers=auth(student))
    assert r1.status_code == 200
    assert r1.json()["progress_percent"] == 25
    assert r1.json()["changed"] is True

    client.put(url.format(lessons[1].id), headers=auth(student))
    repeat = client.put(url.format(lessons[0].id), headers=auth(student))
    assert repeat.json()["progress_percent"] == 50
    assert repeat.json()["changed"] is False
    assert repeat.json()["completed_at"] == r1.json()["completed_at"]

    cleared = client.delete(url.format(lessons[0].id), headers=auth(student))
    assert cleared.status_code == 200
    assert cleared.json()["progress_percent"] == 25

    view = client.get(f"/v1/enrollments/{eid}", headers=auth(student)).json()
    assert view["progress_percent"] == 25
    assert view["completed_lessons"] == 1

    statuses = client.get(f"/v1/enrollments/{eid}/lessons", headers=auth(student)).json()
    assert [s["completed"] for s in statuses] == [False, True, False, False]


def test_lesson_of_other_course_is_403(client: TestClient, store: InMemoryStore) -> None:
    tutor = seed_user(store, "tutor")
    student = seed_user(store)
    course, _ = seed_course(store, tutor, lessons=1)
    _, foreign = seed_course(store, tutor, lessons=1)
    eid = _enroll(client, student, course)

    resp = client.put(
        f"/v1/enrollments/{eid}/lessons/{foreign[0].id}/completion", headers=auth(student)
    )
    assert resp.status_code == 403
    assert resp.json()["error"] == "forbidden"
