from __future__ import annotations

import re

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.requests import Request


http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)

directory_requests_total = Counter(
    "directory_requests_total",
    "Total outbound directory service calls by outcome",
    ["operation", "outcome"],
)

directory_request_duration_seconds = Histogram(
    "directory_request_duration_seconds",
    "Outbound directory service call duration in seconds",
    ["operation"],
)

contract_status_transitions_total = Counter(
    "contract_status_transitions_total",
    "Total contract status transitions",
    ["from_status", "to_status"],
)

contract_sign_notifications_failed_total = Counter(
    "contract_sign_notifications_failed_total",
    "Total sign notifications the directory did not acknowledge",
)


_UUID_RE = re.compile(
    r"\b[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[1-5][0-9a-fA-F]{3}-[89abAB][0-9a-fA-F]{3}-[0-9a-fA-F]{12}\b"
)
_INT_RE = re.compile(r"/\d+\b")
_PATH_PARAM_RE = re.compile(r"\{[^{}]+\}")


def _normalize_route_template(path: str) -> str:
    return _PATH_PARAM_RE.sub("{id}", path)


def _sanitize_path(path: str) -> str:
    without_uuids = _UUID_RE.sub("{id}", path)
    return _INT_RE.sub("/{id}", without_uuids)


def resolve_http_path_label(request: Request) -> str:
    route = request.scope.get("route")
    if route is not None:
        path_format = getattr(route, "path_format", None)
        if isinstance(path_format, str) and path_format:
            return _normalize_route_template(path_format)
        route_path = getattr(route, "path", None)
        if isinstance(route_path, str) and route_path:
            return _normalize_route_template(route_path)
    return _sanitize_path(request.url.path)


def observe_http_request(method: str, path: str, status: int, duration: float) -> None:
    http_requests_total.labels(method=method, path=path, status=str(status)).inc()
    http_request_duration_seconds.labels(method=method, path=path).observe(duration)


def observe_directory_request(operation: str, outcome: str, duration: float) -> None:
    directory_requests_total.labels(operation=operation, outcome=outcome).inc()
    directory_request_duration_seconds.labels(operation=operation).observe(duration)


def observe_contract_transition(from_status: str, to_status: str) -> None:
    if from_status != to_status:
        contract_status_transitions_total.labels(from_status=from_status, to_status=to_status).inc()


def observe_sign_notification_failed() -> None:
    contract_sign_notifications_failed_total.inc()


def generate_metrics_payload() -> bytes:
    return generate_latest()


def metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
