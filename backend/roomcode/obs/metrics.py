"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

REQUEST_COUNTER = Counter(
	"roomcode_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"roomcode_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

SOCKET_CLIENTS = Gauge(
	"roomcode_socketio_clients",
	"Active Socket.IO clients per namespace",
	["namespace"],
)

SOCKET_EVENTS = Counter(
	"roomcode_socketio_events_total",
	"Socket.IO events emitted per namespace",
	["namespace", "event"],
)

ROOMS_CREATED = Counter(
	"roomcode_rooms_created_total",
	"Rooms created",
)

ROOMS_JOIN = Counter(
	"roomcode_rooms_join_total",
	"Room join operations",
	["outcome"],
)

ROOMS_DELETED = Counter(
	"roomcode_rooms_deleted_total",
	"Rooms deleted",
	["reason"],
)

ROOM_CODE_COLLISIONS = Counter(
	"roomcode_room_code_collisions_total",
	"Generated room codes that were already taken",
)

PERMISSION_CHECKS = Counter(
	"roomcode_permission_checks_total",
	"Creator permission checks",
	["result"],
)

CREATOR_LEFT_SIGNALS = Counter(
	"roomcode_creator_left_signals_total",
	"Creator-left signals handled",
	["outcome"],
)

REDIS_UP = Gauge(
	"roomcode_redis_up",
	"Redis readiness as seen by the health probe",
)

POSTGRES_UP = Gauge(
	"roomcode_postgres_up",
	"Postgres readiness as seen by the health probe",
)

REDIS_LATENCY = Histogram(
	"roomcode_redis_ping_seconds",
	"Redis ping latency observed by the health probe",
)

POSTGRES_LATENCY = Histogram(
	"roomcode_postgres_ping_seconds",
	"Postgres ping latency observed by the health probe",
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


def inc_room_created() -> None:
	ROOMS_CREATED.inc()


def inc_room_join(outcome: str) -> None:
	ROOMS_JOIN.labels(outcome=outcome).inc()


def inc_room_deleted(reason: str) -> None:
	ROOMS_DELETED.labels(reason=reason).inc()


def inc_room_code_collision() -> None:
	ROOM_CODE_COLLISIONS.inc()


def inc_permission_check(allowed: bool) -> None:
	PERMISSION_CHECKS.labels(result="creator" if allowed else "denied").inc()


def inc_creator_left(outcome: str) -> None:
	CREATOR_LEFT_SIGNALS.labels(outcome=outcome).inc()


def mark_redis(ok: bool, *, latency_seconds: float | None = None) -> None:
	REDIS_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		REDIS_LATENCY.observe(latency_seconds)


def mark_postgres(ok: bool, *, latency_seconds: float | None = None) -> None:
	POSTGRES_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		POSTGRES_LATENCY.observe(latency_seconds)
