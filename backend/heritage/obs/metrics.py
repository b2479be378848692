"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Histogram


REQUEST_COUNTER = Counter(
	"heritage_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"heritage_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

MOD_REPORTS_TOTAL = Counter(
	"mod_reports_total",
	"Moderation reports filed",
	["reason"],
)

MOD_REPORT_RESOLUTIONS_TOTAL = Counter(
	"mod_report_resolutions_total",
	"Moderation reports resolved",
	["action"],
)

MOD_ACTION_FAILURES_TOTAL = Counter(
	"mod_action_failures_total",
	"Moderation action side effects that failed",
	["action"],
)

MOD_REPORT_CONFLICTS_TOTAL = Counter(
	"mod_report_conflicts_total",
	"Moderation writes rejected by uniqueness or state checks",
	["kind"],
)

MOD_QUEUE_LATENCY_MS = Histogram(
	"mod_queue_latency_ms",
	"Moderation queue page build latency (milliseconds)",
	buckets=(5.0, 10.0, 25.0, 50.0, 100.0, 250.0, 500.0, 1000.0),
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def report_filed(reason: str) -> None:
	MOD_REPORTS_TOTAL.labels(reason=reason).inc()


def report_resolved(action: str) -> None:
	MOD_REPORT_RESOLUTIONS_TOTAL.labels(action=action).inc()


def action_failed(action: str) -> None:
	MOD_ACTION_FAILURES_TOTAL.labels(action=action).inc()


def report_conflict(kind: str) -> None:
	MOD_REPORT_CONFLICTS_TOTAL.labels(kind=kind).inc()
