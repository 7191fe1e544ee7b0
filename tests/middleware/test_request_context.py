"""X-Request-ID on every response, and request context on log records."""

from __future__ import annotations

import logging
import uuid

import pytest
from fastapi.testclient import TestClient

from tests.conftest import auth, seed_user
from tutoring.core.logging import RequestContextFilter, request_id_var
from tutoring.repos.unit_of_work import InMemoryStore


def test_request_id_generated_when_not_provided(client: TestClient) -> None:
    resp = client.get("/health")
    req_id = resp.headers.get("x-request-id")
    assert req_id is not None
    uuid.UUID(req_id)


def test_request_id_echoed_when_provided(client: TestClient) -> None:
    custom_id = "my-custom-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": custom_id})
    assert resp.headers.get("x-request-id") == custom_id


def test_request_id_present_on_error_responses(client: TestClient) -> None:
    resp = client.get("/v1/me/enrollments")
    assert resp.status_code == 401
    assert resp.headers.get("x-request-id") is not None


def test_summary_line_carries_request_and_user(
    client: TestClient, store: InMemoryStore, caplog: pytest.LogCaptureFixture
) -> None:
    student = seed_user(store)
    with caplog.at_level(logging.INFO, logger="tutoring.middleware.request_context"):
        client.get(
            "/v1/me/enrollments",
            headers={**auth(student), "X-Request-ID": "req-abc"},
        )

    summary = [r for r in caplog.records if r.name == "tutoring.middleware.request_context"]
    assert summary, "expected one summary line per request"
    record = summary[-1]
    assert record.request_id == "req-abc"  # type: ignore[attr-defined]
    assert record.user_id == str(student.id)  # type: ignore[attr-defined]
    assert record.status_code == 200  # type: ignore[attr-defined]
    assert record.path == "/v1/me/enrollments"  # type: ignore[attr-defined]


def test_filter_copies_context_vars_onto_records() -> None:
    record = logging.LogRecord("x", logging.INFO, "x.py", 1, "msg", (), None)
    token = request_id_var.set("ctx-123")
    try:
        assert RequestContextFilter().filter(record) is True
    finally:
        request_id_var.reset(token)
    assert record.request_id == "ctx-123"  # type: ignore[attr-defined]
    assert record.user_id is None  # type: ignore[attr-defined]
