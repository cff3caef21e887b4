"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Histogram


REQUEST_COUNTER = Counter(
	"dishlist_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"dishlist_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

RATE_LIMITED_EVENTS = Counter(
	"dishlist_rate_limited_total",
	"Requests rejected due to rate limiting",
	["kind"],
)

SEARCH_QUERIES = Counter(
	"dishlist_search_queries_total",
	"Search queries executed",
	["tab"],
)

SEARCH_LATENCY = Histogram(
	"dishlist_search_latency_seconds",
	"Search latency in seconds",
	["tab"],
	buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

SEARCH_RESULTS = Histogram(
	"dishlist_search_results",
	"Results returned per category",
	["category"],
	buckets=(0, 1, 5, 10, 20, 50),
)

SEARCH_FAILURES = Counter(
	"dishlist_search_failures_total",
	"Searches aborted by an error",
	["reason"],
)


def observe_request(route: str, method: str, status: int, latency_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(latency_seconds)


def inc_rate_limited(kind: str) -> None:
	RATE_LIMITED_EVENTS.labels(kind=kind).inc()


def inc_search_query(tab: str) -> None:
	SEARCH_QUERIES.labels(tab=tab).inc()


def observe_search_latency(tab: str, latency_seconds: float) -> None:
	SEARCH_LATENCY.labels(tab=tab).observe(latency_seconds)


def observe_search_results(category: str, count: int) -> None:
	SEARCH_RESULTS.labels(category=category).observe(count)


def inc_search_failure(reason: str) -> None:
	SEARCH_FAILURES.labels(reason=reason).inc()
