"""
Structured logging for the journal API.

Production runs emit one JSON object per line; debug runs use a plain
text format. Every record logged while a request is in flight carries
that request's correlation id, and journal events (trade created,
position rolled, ...) are logged with their fields attached rather than
formatted into the message.
"""

import json
import logging
import re
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any

from src.core.redaction import RedactionConfig, redact_sensitive


correlation_id_ctx: ContextVar[str | None] = ContextVar("correlation_id", default=None)

CORRELATION_HEADER = b"x-correlation-id"
CORRELATION_ID_PATTERN = re.compile(r"[A-Za-z0-9._\-]{1,64}")

# Libraries whose INFO output is request noise
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "aiosqlite", "sqlalchemy.engine")

# Attributes every LogRecord has; anything else was passed as a field
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


def get_correlation_id() -> str | None:
    return correlation_id_ctx.get()


def new_correlation_id(incoming: str | None = None) -> str:
    """Bind the incoming id, or a fresh short one, to the current context."""
    cid = incoming or uuid.uuid4().hex[:8]
    correlation_id_ctx.set(cid)
    return cid


def incoming_correlation_id(headers: list[tuple[bytes, bytes]]) -> str | None:
    """
    Client-supplied correlation id, or None when absent or unusable.

    ASGI header values are raw latin-1 bytes; only short ids made of
    letters, digits, '.', '_' and '-' are echoed back.
    """
    raw = dict(headers).get(CORRELATION_HEADER)
    if not raw:
        return None
    value = raw.decode("latin-1").strip()
    return value if CORRELATION_ID_PATTERN.fullmatch(value) else None


def _record_fields(record: logging.LogRecord) -> dict[str, Any]:
    fields = {}
    for key, value in vars(record).items():
        if key in _STANDARD_ATTRS or key.startswith("_"):
            continue
        try:
            json.dumps(value)
        except (TypeError, ValueError):
            value = str(value)
        fields[key] = value
    return fields


class JSONFormatter(logging.Formatter):
    """
    Renders a record as a single JSON line.

    Keyword fields attached through ContextLogger land under "extra";
    passwords, tokens and the quote API key are masked before output.
    """

    def __init__(self, include_source: bool = True, redact_sensitive_data: bool = True):
        super().__init__()
        self.include_source = include_source
        self.redaction_config = RedactionConfig() if redact_sensitive_data else None

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        fields = _record_fields(record)
        cid = fields.pop("correlation_id", None) or get_correlation_id()
        if cid:
            entry["correlation_id"] = cid
        if self.include_source:
            entry["source"] = f"{record.module}.{record.funcName}:{record.lineno}"
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        if fields:
            entry["extra"] = fields

        if self.redaction_config:
            entry = redact_sensitive(entry, self.redaction_config)
        return json.dumps(entry, default=str)


class ContextLogger(logging.LoggerAdapter):
    """
    Logger adapter that accepts structured fields as keyword arguments.

    Usage:
        logger = get_logger(__name__)
        logger.info("Trade rolled", trade_id="abc", position_id="pos-1")
    """

    PASSTHROUGH = ("exc_info", "stack_info", "stacklevel", "extra")

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        extra = dict(kwargs.pop("extra", None) or {})
        for key in [k for k in kwargs if k not in self.PASSTHROUGH]:
            extra[key] = kwargs.pop(key)

        cid = get_correlation_id()
        if cid:
            extra.setdefault("correlation_id", cid)

        kwargs["extra"] = extra
        return msg, kwargs


@lru_cache(maxsize=128)
def get_logger(name: str) -> ContextLogger:
    return ContextLogger(logging.getLogger(name), {})


def setup_structured_logging(level: str = "INFO", json_output: bool = True) -> None:
    """
    Replace the root handlers with one stdout handler.

    Args:
        level: Minimum log level name
        json_output: JSON lines (production) or plain text (debug)
    """
    log_level = getattr(logging, level.upper())
    root = logging.getLogger()
    root.setLevel(log_level)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class RequestLoggingMiddleware:
    """
    ASGI middleware that tags each HTTP request with a correlation id,
    echoes it in the x-correlation-id response header and logs the
    outcome with its duration. Health probes are logged at DEBUG.
    """

    QUIET_PATHS = ("/api/health",)

    def __init__(self, app):
        self.app = app
        self.logger = get_logger("api.requests")

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            return await self.app(scope, receive, send)

        correlation_id = new_correlation_id(incoming_correlation_id(scope.get("headers", [])))
        method = scope.get("method", "UNKNOWN")
        path = scope.get("path", "/")
        started = time.perf_counter()
        status_code = 0

        async def send_with_header(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                message["headers"] = [*message.get("headers", []), (CORRELATION_HEADER, correlation_id.encode())]
            await send(message)

        try:
            await self.app(scope, receive, send_with_header)
        except Exception as e:
            self.logger.error(
                f"Unhandled error: {method} {path}",
                method=method,
                path=path,
                error_type=type(e).__name__,
                exc_info=True,
            )
            raise
        finally:
            if path in self.QUIET_PATHS:
                level = logging.DEBUG
            elif status_code >= 500 or status_code == 0:
                level = logging.ERROR
            elif status_code >= 400:
                level = logging.WARNING
            else:
                level = logging.INFO
            self.logger.log(
                level,
                f"{method} {path} -> {status_code}",
                method=method,
                path=path,
                status=status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )


def log_trade_event(event_type: str, trade_id: str, **fields: Any) -> None:
    """Journal event (trade_created, position_rolled, ...) with its fields."""
    get_logger("journal.events").info(
        f"Trade event: {event_type}",
        event_type=event_type,
        trade_id=trade_id,
        **fields,
    )


def log_system_event(event_type: str, component: str, **fields: Any) -> None:
    """Lifecycle event (startup, shutdown) for a component."""
    get_logger("system.events").info(
        f"System event: {event_type}",
        event_type=event_type,
        component=component,
        **fields,
    )
