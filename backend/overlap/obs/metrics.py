"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

REQUEST_COUNTER = Counter(
	"overlap_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"overlap_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

SOCKET_CLIENTS = Gauge(
	"overlap_socketio_clients",
	"Active Socket.IO clients per namespace",
	["namespace"],
)

SOCKET_EVENTS = Counter(
	"overlap_socketio_events_total",
	"Socket.IO events emitted per namespace",
	["namespace", "event"],
)

DECLARATIONS = Counter(
	"overlap_declarations_total",
	"Partner declarations processed",
	["result"],
)

OVERLAPS_DETECTED = Counter(
	"overlap_detected_total",
	"Declarations that found an overlap on their partner key",
)

ALERTS_CREATED = Counter(
	"overlap_alerts_created_total",
	"Alert rows created by the fanout pass",
)

ALERT_FANOUT_FAILURES = Counter(
	"overlap_alert_fanout_failures_total",
	"Fanout steps that failed and were left for a later pass",
	["step"],
)

ALERTS_READ = Counter(
	"overlap_alerts_read_total",
	"Alert rows flipped from new to read",
)

TIER_TOGGLES = Counter(
	"overlap_tier_toggles_total",
	"Access tier flips via the demo upgrade endpoint",
	["tier"],
)

CHAT_MESSAGES = Counter(
	"overlap_chat_messages_total",
	"Anonymous chat messages appended",
)

RATE_LIMITED = Counter(
	"overlap_rate_limited_total",
	"Requests rejected by rate limiting",
	["kind"],
)

RESCAN_PARTNERS = Counter(
	"overlap_rescan_partners_total",
	"Partner keys visited by the corrective rescan",
)

REDIS_UP = Gauge("overlap_redis_up", "Redis readiness status (1 = ok)")
POSTGRES_UP = Gauge("overlap_postgres_up", "Postgres readiness status (1 = ok)")
DEPENDENCY_LATENCY = Histogram(
	"overlap_dependency_latency_seconds",
	"Readiness probe latency per dependency",
	["dependency"],
	buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5),
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def socket_connected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).inc()


def socket_disconnected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).dec()


def socket_event(namespace: str, event: str) -> None:
	SOCKET_EVENTS.labels(namespace=namespace, event=event).inc()


def inc_declaration(result: str) -> None:
	DECLARATIONS.labels(result=result).inc()


def inc_overlap_detected() -> None:
	OVERLAPS_DETECTED.inc()


def inc_alerts_created(count: int = 1) -> None:
	if count > 0:
		ALERTS_CREATED.inc(count)


def inc_fanout_failure(step: str) -> None:
	ALERT_FANOUT_FAILURES.labels(step=step).inc()


def inc_alerts_read(count: int) -> None:
	if count > 0:
		ALERTS_READ.inc(count)


def inc_tier_toggle(is_pro: bool) -> None:
	TIER_TOGGLES.labels(tier="pro" if is_pro else "standard").inc()


def inc_chat_message() -> None:
	CHAT_MESSAGES.inc()


def inc_rate_limited(kind: str) -> None:
	RATE_LIMITED.labels(kind=kind).inc()


def inc_rescan_partner() -> None:
	RESCAN_PARTNERS.inc()


def mark_redis(ok: bool, *, latency_seconds: float | None = None) -> None:
	REDIS_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		DEPENDENCY_LATENCY.labels(dependency="redis").observe(latency_seconds)


def mark_postgres(ok: bool, *, latency_seconds: float | None = None) -> None:
	POSTGRES_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		DEPENDENCY_LATENCY.labels(dependency="postgres").observe(latency_seconds)
