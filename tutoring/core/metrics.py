"""Application metrics using the Prometheus client library.

All metrics live here so there is a single inventory of what the service
measures.  Other modules import a metric and increment/observe it at the
point of action.

  HTTP metrics     : populated by MetricsMiddleware for every request.
  Domain counters  : incremented by the services when an enrollment,
                      completion or grade is written or rejected.

Useful queries:
  rate(enrollment_operations_total{result="conflict"}[5m])
    → duplicate enroll attempts (double-clicks, retries, races)
  sum by (reason) (rate(authorization_denials_total[5m]))
    → which guard is rejecting traffic
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    # 5ms health checks ... 500ms multi-query dashboard reads ... 1s+ is wrong
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Domain metrics
# ---------------------------------------------------------------------------

ENROLLMENT_OPERATIONS = Counter(
    "enrollment_operations_total",
    "Enrollment writes by operation and outcome",
    ["operation", "result"],  # enroll|unenroll|remove × ok|conflict
)

LESSON_COMPLETIONS = Counter(
    "lesson_completions_total",
    "Lesson completion toggles",
    ["action"],  # completed|repeated|cleared
)

GRADING_OPERATIONS = Counter(
    "grading_operations_total",
    "Submission ledger writes by operation and outcome",
    ["operation", "result"],  # submit|grade|delete × ok|conflict|invalid
)

AUTHORIZATION_DENIALS = Counter(
    "authorization_denials_total",
    "Requests rejected by the authorization guard",
    ["reason"],  # unauthenticated|inactive|role|ownership
)

RATE_LIMIT_HITS = Counter(
    "rate_limit_hits_total",
    "Requests rejected by rate limiting (429s)",
    ["key_type"],  # "user" or "ip"
)
