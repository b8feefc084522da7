"""
Logging for the appreciations service.

Everything goes through the "appreciations" logger. Production writes one
JSON object per line; other environments write a short human line. Fields
passed through `extra=` (user_id, event_type, error_code, ...) are kept in
both formats, and the current request id is added to every record.

Student names and generated texts are never logged; callers log ids,
counts and codes.
"""

import json
import logging
import os
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional, Union

LOGGER_NAME = "appreciations"

request_id_ctx_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

MAX_FIELD_CHARS = 500

# Attributes every LogRecord has; anything else came from `extra=`
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


def get_request_id(default: Optional[str] = None) -> Optional[str]:
    rid = request_id_ctx_var.get()
    return rid if rid is not None else default


def latency_bucket_ms(latency_ms: Optional[float]) -> str:
    if latency_ms is None:
        return "unknown"
    for limit, label in ((10, "<10ms"), (100, "10-100ms"), (500, "100-500ms"), (1000, "500-1000ms")):
        if latency_ms < limit:
            return label
    return ">=1000ms"


def _timestamp(record: logging.LogRecord) -> str:
    return datetime.fromtimestamp(record.created, timezone.utc).isoformat().replace("+00:00", "Z")


def extra_fields(record: logging.LogRecord) -> dict:
    """The `extra=` fields of a record, without request_id and None values."""
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RECORD_ATTRS and key != "request_id" and value is not None
    }


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = get_request_id()
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": _timestamp(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        payload.update(extra_fields(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=False)


class PrettyFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        rid = getattr(record, "request_id", None)
        parts = [_timestamp(record), record.levelname, record.getMessage()]
        if rid:
            parts.append(f"rid={rid}")
        parts.extend(f"{key}={value}" for key, value in extra_fields(record).items())
        line = " ".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(env: str = "development") -> None:
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if env.lower() == "production" else PrettyFormatter())
    handler.addFilter(RequestIdFilter())

    logger.handlers = [handler]
    logger.propagate = True

    # uvicorn logs its own access lines
    logging.getLogger("uvicorn").propagate = False
    logging.getLogger("uvicorn.error").propagate = False


def truncate_field(value, limit: int = MAX_FIELD_CHARS) -> str:
    text = str(value)
    if len(text) <= limit:
        return text
    return text[:limit] + "...<truncated>"


def log_event(
    level: Union[int, str],
    event: str,
    *,
    user_id: Optional[str] = None,
    error_code: Optional[str] = None,
    **fields,
) -> None:
    """
    Log a named event with keyword fields.

    String field values are truncated to MAX_FIELD_CHARS so provider error
    bodies or Stripe messages cannot flood the log.

        log_event(logging.WARNING, "billing.webhook_rejected",
                  error_code="webhook_error", reason=str(e))
    """
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        configure_logging(os.getenv("ENV", "development"))

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    extra = {key: truncate_field(value) if isinstance(value, str) else value for key, value in fields.items()}
    extra["request_id"] = get_request_id()
    extra["user_id"] = user_id
    extra["error_code"] = error_code
    logger.log(level, event, extra=extra)
