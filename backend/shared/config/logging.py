"""
Structured logging.

Loggers returned by get_logger accept keyword data on every call:

    logger.info("Cart line added", session_id=12, menu_item_id=3, quantity=2)

The keywords travel on the record as ``extra_data``. In production they are
rendered as one JSON object per line; locally as ``key=value`` pairs after a
colored message. Records emitted inside a request also carry its request id
and, when the request names one, the table session id.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from shared.config.settings import settings


def _json_default(value: Any) -> Any:
    # Money stays exact in logs
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _context(record: logging.LogRecord) -> dict[str, Any]:
    context = {}
    request_id = getattr(record, "request_id", "-")
    if request_id != "-":
        context["request_id"] = request_id
    table_session = getattr(record, "table_session", None)
    if table_session:
        context["table_session"] = table_session
    return context


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context(record),
        }
        data = getattr(record, "extra_data", None)
        if data:
            payload["data"] = data
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if settings.debug:
            payload["source"] = f"{record.pathname}:{record.lineno}"
        return json.dumps(payload, default=_json_default, ensure_ascii=False)


class DevelopmentFormatter(logging.Formatter):
    """Colored single-line output for a terminal."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"
    DIM = "\033[2m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, self.RESET)
        when = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        tags = []
        context = _context(record)
        if "request_id" in context:
            tags.append(context["request_id"][:8])
        if "table_session" in context:
            tags.append(f"session {context['table_session']}")
        prefix = f"{self.DIM}[{' | '.join(tags)}]{self.RESET} " if tags else ""

        line = f"{color}{when} {record.levelname:<8}{self.RESET} {prefix}{record.name}: {record.getMessage()}"

        data = getattr(record, "extra_data", None)
        if data:
            line += "  " + " ".join(f"{key}={value}" for key, value in data.items())
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class StructuredLogger(logging.Logger):
    """Logger whose methods take arbitrary keyword data next to the message."""

    def _log(
        self,
        level: int,
        msg: object,
        args: Any,
        exc_info: Any = None,
        extra: dict[str, Any] | None = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        **data: Any,
    ) -> None:
        extra = dict(extra or {})
        extra["extra_data"] = data or None
        # Skip this frame so source locations point at the caller
        super()._log(
            level,
            msg,
            args,
            exc_info=exc_info,
            extra=extra,
            stack_info=stack_info,
            stacklevel=stacklevel + 1,
        )


logging.setLoggerClass(StructuredLogger)


def _resolve_level() -> int:
    if settings.log_level:
        return logging.getLevelName(settings.log_level.upper())
    return logging.DEBUG if settings.debug else logging.INFO


def _resolve_formatter() -> logging.Formatter:
    log_format = settings.log_format
    if log_format == "auto":
        log_format = "json" if settings.is_production else "console"
    return StructuredFormatter() if log_format == "json" else DevelopmentFormatter()


def setup_logging() -> None:
    """Install the stdout handler on the root logger. Called once at startup."""
    # shared.infrastructure imports this module through exceptions
    from shared.infrastructure.correlation import CorrelationIdFilter

    level = _resolve_level()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(_resolve_formatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    for noisy, noisy_level in (
        ("uvicorn.access", logging.WARNING),
        ("sqlalchemy.engine", logging.WARNING),
        ("redis", logging.WARNING),
    ):
        logging.getLogger(noisy).setLevel(noisy_level)


def get_logger(name: str) -> StructuredLogger:
    return logging.getLogger(name)  # type: ignore[return-value]


# One logger per business area, so log levels can be tuned per flow
rest_api_logger = get_logger("rest_api")
cart_logger = get_logger("rest_api.cart")
split_logger = get_logger("rest_api.split")
kitchen_logger = get_logger("rest_api.kitchen")
billing_logger = get_logger("rest_api.billing")
