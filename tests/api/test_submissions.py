from __future__ import annotations

from fastapi.testclient import TestClient

from tests.conftest import auth, seed_assignment, seed_course, seed_user
from tutoring.repos.unit_of_work import InMemoryStore


def test_scenario_c_over_http(client: TestClient, store: InMemoryStore) -> None:
    tutor = seed_user(store, "tutor")
    student = seed_user(store)
    course, lessons = seed_course(store, tutor, lessons=1)
    assignment = seed_assignment(store, lessons[0], max_score=100)
    client.post(
        "/v1/enrollments",
        json={"student_id": str(student.id), "course_id": str(course.id)},
        headers=auth(student),
    )
    url = f"/v1/assignments/{assignment.id}/submissions"

    first = client.post(url, json={"payload": "42"}, headers=auth(student))
    assert first.status_code == 201
    sid = first.json()["id"]
    assert first.json()["grade"] is None

    second = client.post(url, json={"payload": "43"}, headers=auth(student))
    assert second.status_code == 409

    too_high = client.put(f"/v1/submissions/{sid}/grade", json={"grade": 150}, headers=auth(tutor))
    assert too_high.status_code == 422
    assert too_high.json()["error"] == "validation_error"

    ok = client.put(
        f"/v1/submissions/{sid}/grade",
        json={"grade": 85, "feedback": "nice"},
        headers=auth(tutor),
    )
    assert ok.status_code == 200
    assert ok.json()["grade"] == 85

    pending = client.get("/v1/submissions/pending-count", headers=auth(tutor))
    assert pending.json() == {"pending": 0}

    listed = client.get(url, headers=auth(tutor)).json()
    assert [s["id"] for s in listed] == [sid]

    assert client.delete(f"/v1/submissions/{sid}", headers=auth(tutor)).status_code == 204
    assert client.post(url, json={"payload": "44"}, headers=auth(student)).status_code == 201


def test_unenrolled_student_cannot_submit(client: TestClient, store: InMemoryStore) -> None:
    tutor = seed_user(store, "tutor")
    student = seed_user(store)
    _, lessons = seed_course(store, tutor, lessons=1)
    assignment = seed_assignment(store, lessons[0])

    resp = client.post(
        f"/v1/assignments/{assignment.id}/submissions",
        json={"payload": "x"},
        headers=auth(student),
    )
    assert resp.status_code == 403


def test_non_integer_grade_rejected_at_boundary(client: TestClient, store: InMemoryStore) -> None:
    tutor = seed_user(store, "tutor")
    resp = client.put(
        "/v1/submissions/00000000-0000-0000-0000-000000000000/grade",
        json={"grade": "85"},
        headers=auth(tutor),
    )
    assert resp.status_code == 422
    assert resp.json()["error"] == "validation_error"


def test_submission_inbox_over_http(client: TestClient, store: InMemoryStore) -> None:
    tutor = seed_user(store, "tutor")
    student = seed_user(store, full_name="Alice Smith")
    course, lessons = seed_course(store, tutor, title="Geometry", lessons=1)
    proofs = seed_assignment(store, lessons[0], title="Proofs")
    angles = seed_assignment(store, lessons[0], title="Angles")
    client.post(
        "/v1/enrollments",
        json={"student_id": str(student.id), "course_id": str(course.id)},
        headers=auth(student),
    )
    first = client.post(
        f"/v1/assignments/{proofs.id}/submissions", json={"payload": "a"}, headers=auth(student)
    )
    client.post(
        f"/v1/assignments/{angles.id}/submissions", json={"payload": "b"}, headers=auth(student)
    )
    client.put(
        f"/v1/submissions/{first.json()['id']}/grade", json={"grade": 70}, headers=auth(tutor)
    )

    resp = client.get("/v1/submissions", headers=auth(tutor))
    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 2
    assert [i["assignment_title"] for i in body["items"]] == ["Angles", "Proofs"]
    assert body["items"][0]["student_name"] == "Alice Smith"
    assert body["items"][0]["course_title"] == "Geometry"

    resp = client.get("/v1/submissions", params={"pending": "true"}, headers=auth(tutor))
    assert [i["assignment_title"] for i in resp.json()["items"]] == ["Angles"]

    resp = client.get("/v1/submissions", params={"search": "proof"}, headers=auth(tutor))
    assert [i["grade"] for i in resp.json()["items"]] == [70]

    assert client.get("/v1/submissions", headers=auth(student)).status_code == 403
