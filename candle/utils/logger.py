"""Logging configuration for the Candle backend."""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# requestId, uid and partnershipId of the request being served
_request_context: ContextVar[Optional[Dict[str, str]]] = ContextVar("candle_request_context", default=None)


def start_request_context(request_id: str, method: str, path: str):
    """Begin a fresh log context for one HTTP request; returns the reset token."""
    return _request_context.set({"requestId": request_id, "method": method, "path": path})


def end_request_context(token) -> None:
    _request_context.reset(token)


def bind_request_context(**fields: Optional[str]) -> None:
    """Attach identifiers (uid, partnershipId) to every later log line of the request.

    The context dict is shared with the task the middleware started, so
    fields bound inside a dependency show up in the handler's logs too.
    Outside a request this is a no-op.
    """
    context = _request_context.get()
    if context is not None:
        context.update({k: v for k, v in fields.items() if v})


def request_context() -> Dict[str, str]:
    return dict(_request_context.get() or {})


class JSONFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """
        Format log record as JSON.

        Args:
            record: Log record to format.

        Returns:
            JSON-formatted log string.
        """
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        context = request_context()
        if context:
            log_data["request"] = context

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_data"):
            log_data.update(record.extra_data)

        return json.dumps(log_data, default=str)


def configure_logging(debug: bool = False) -> logging.Logger:
    """
    Configure application logging.

    Args:
        debug: Enable debug logging.

    Returns:
        Configured logger instance.
    """
    logger = logging.getLogger("candle")

    # Remove existing handlers
    logger.handlers.clear()

    log_level = logging.DEBUG if debug else logging.INFO
    logger.setLevel(log_level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(JSONFormatter())

    logger.addHandler(console_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get logger instance for a module.

    Args:
        name: Logger name (usually __name__).

    Returns:
        Logger instance.
    """
    if name == "candle" or name.startswith("candle."):
        return logging.getLogger(name)
    return logging.getLogger(f"candle.{name}")
