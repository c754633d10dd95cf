from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from opentelemetry import trace

from app.context import get_correlation_id
from app.core.config import Settings, get_settings


MAX_ERROR_LENGTH = 500

_BASE_RECORD_KEYS = frozenset(logging.makeLogRecord({}).__dict__)
# structured fields emitted by the request middleware, the contract service
# and the directory client
_KNOWN_FIELDS = frozenset(
    {
        "method",
        "path",
        "status_code",
        "duration_ms",
        "contract_id",
        "status",
        "previous_status",
        "external_account_id",
        "external_contact_id",
        "signed_by",
        "operation",
        "outcome",
        "retry_after",
        "error",
    }
)

_default_record_factory = logging.getLogRecordFactory()


def _record_factory(*args: Any, **kwargs: Any) -> logging.LogRecord:
    record = _default_record_factory(*args, **kwargs)
    if not getattr(record, "correlation_id", None):
        record.correlation_id = get_correlation_id()
    return record


def _trace_ids() -> dict[str, str]:
    context = trace.get_current_span().get_span_context()
    if not context.is_valid:
        return {}
    return {"trace_id": format(context.trace_id, "032x"), "span_id": format(context.span_id, "016x")}


class JsonLogFormatter(logging.Formatter):
    """One JSON object per line.

    Only fields in ``_KNOWN_FIELDS`` are copied from ``extra``; anything else a
    caller attaches is dropped. Log lines written inside a span carry its ids
    so they can be joined with directory call traces.
    """

    def __init__(self, service: str = "contracts-api", environment: str = "local") -> None:
        super().__init__()
        self.service = service
        self.environment = environment

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "service": self.service,
            "env": self.environment,
            "correlation_id": getattr(record, "correlation_id", None),
            **_trace_ids(),
        }

        fields = {
            key: value
            for key, value in record.__dict__.items()
            if key in _KNOWN_FIELDS and key not in _BASE_RECORD_KEYS
        }
        if isinstance(fields.get("error"), str):
            fields["error"] = fields["error"][:MAX_ERROR_LENGTH]
        if record.exc_info:
            fields["exception"] = self.formatException(record.exc_info)

        payload["fields"] = fields
        return json.dumps(payload, default=str)


def configure_logging(settings: Settings | None = None) -> None:
    root_logger = logging.getLogger()
    if getattr(root_logger, "_contracts_configured", False):
        return

    settings = settings or get_settings()
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JsonLogFormatter(service=settings.otel_service_name, environment=settings.app_env))

    root_logger.handlers.clear()
    root_logger.setLevel(level)
    logging.setLogRecordFactory(_record_factory)
    root_logger.addHandler(handler)
    root_logger._contracts_configured = True  # type: ignore[attr-defined]
