"""Prometheus metrics.

The default registry is global and counters only go up, so every test
asserts on deltas: read, act, read again.
"""

from __future__ import annotations

from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from tests.conftest import auth, seed_course, seed_user
from tutoring.repos.unit_of_work import InMemoryStore


def _get_sample(name: str, labels: dict | None = None) -> float:
    value = REGISTRY.get_sample_value(name, labels=labels or {})
    return value if value is not None else 0.0


def test_request_counter_increments(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/health", "status_code": "200"}
    before = _get_sample("http_requests_total", labels)
    client.get("/health")
    assert _get_sample("http_requests_total", labels) - before >= 1


def test_endpoint_label_uses_route_template(client: TestClient, store: InMemoryStore) -> None:
    tutor = seed_user(store, "tutor")
    course, _ = seed_course(store, tutor)
    labels = {
        "method": "GET",
        "endpoint": "/v1/courses/{course_id}/enrollments",
        "status_code": "200",
    }
    before = _get_sample("http_requests_total", labels)
    client.get(f"/v1/courses/{course.id}/enrollments", headers=auth(tutor))
    assert _get_sample("http_requests_total", labels) - before == 1


def test_request_duration_histogram_observes(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/health"}
    before = _get_sample("http_request_duration_seconds_count", labels)
    client.get("/health")
    assert _get_sample("http_request_duration_seconds_count", labels) - before >= 1


def test_metrics_endpoint_exposes_domain_counters(client: TestClient, store: InMemoryStore) -> None:
    tutor = seed_user(store, "tutor")
    student = seed_user(store)
    course, _ = seed_course(store, tutor)
    before = _get_sample("enrollment_operations_total", {"operation": "enroll", "result": "ok"})
    client.post(
        "/v1/enrollments",
        json={"student_id": str(student.id), "course_id": str(course.id)},
        headers=auth(student),
    )
    after = _get_sample("enrollment_operations_total", {"operation": "enroll", "result": "ok"})
    assert after - before == 1

    body = client.get("/metrics").text
    assert "enrollment_operations_total" in body
    assert "authorization_denials_total" in body


def test_denials_counted_by_reason(client: TestClient) -> None:
    before = _get_sample("authorization_denials_total", {"reason": "unauthenticated"})
    client.get("/v1/me/enrollments")
    after = _get_sample("authorization_denials_total", {"reason": "unauthenticated"})
    assert after - before == 1
