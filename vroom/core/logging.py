"""
Structured logging for discovery sessions, built on Loguru.

Log records carry the current session id and provider (when set) as extra
fields, so interleaved output from concurrent sessions and adapters can be
told apart, and the JSON sink can emit them as top-level keys.
"""

from loguru import logger
from contextvars import ContextVar
from typing import Optional
import json
import sys
from functools import wraps
import time

# Set by DiscoverySession.run and SourceAdapter.search respectively
session_id_var: ContextVar[Optional[str]] = ContextVar("session_id", default=None)
provider_var: ContextVar[Optional[str]] = ContextVar("provider", default=None)


class StructuredLogger:
    """Loguru wrapper that binds the session/provider context to each record"""

    @staticmethod
    def bind(**kwargs):
        context = {
            "session_id": session_id_var.get(),
            "provider": provider_var.get(),
            **kwargs,
        }
        return logger.bind(**{k: v for k, v in context.items() if v is not None})

    @staticmethod
    def log(level: str, message: str, **kwargs):
        StructuredLogger.bind(**kwargs).log(level, message)

    @staticmethod
    def info(message: str, **kwargs):
        StructuredLogger.log("INFO", message, **kwargs)

    @staticmethod
    def debug(message: str, **kwargs):
        StructuredLogger.log("DEBUG", message, **kwargs)

    @staticmethod
    def warning(message: str, **kwargs):
        StructuredLogger.log("WARNING", message, **kwargs)

    @staticmethod
    def error(message: str, **kwargs):
        StructuredLogger.log("ERROR", message, **kwargs)


def log_execution_time(func):
    """Log how long an async discovery step took and whether it raised.

    Cancellation is not an error and passes through unlogged.
    """

    @wraps(func)
    async def wrapper(*args, **kwargs):
        start = time.perf_counter()
        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            StructuredLogger.error(
                f"{func.__qualname__} failed",
                function=func.__qualname__,
                duration=round(time.perf_counter() - start, 3),
                error=str(e),
            )
            raise
        StructuredLogger.info(
            f"{func.__qualname__} finished",
            function=func.__qualname__,
            duration=round(time.perf_counter() - start, 3),
        )
        return result

    return wrapper


def log_http_request(
    method: str,
    url: str,
    status_code: Optional[int] = None,
    duration: Optional[float] = None,
    **kwargs,
):
    """Log an outbound provider HTTP call; 4xx/5xx at error level"""
    log_data = {"method": method, "url": url, "type": "http_request", **kwargs}
    if status_code:
        log_data["status_code"] = status_code
    if duration:
        log_data["duration"] = round(duration, 3)

    if status_code and status_code >= 400:
        StructuredLogger.error(f"{method} {url} -> {status_code}", **log_data)
    else:
        StructuredLogger.debug(f"{method} {url} -> {status_code}", **log_data)


def json_formatter(record) -> str:
    """One JSON object per line, extra (bound) fields at the top level"""
    payload = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "module": record["name"],
        "function": record["function"],
        "line": record["line"],
        **record["extra"],
    }
    if record["exception"]:
        payload["exception"] = str(record["exception"])

    # loguru treats the returned string as a format template
    return json.dumps(payload, default=str).replace("{", "{{").replace("}", "}}") + "\n"


def setup_json_logging(level: str = "INFO"):
    """Replace all sinks with a JSON-lines sink on stdout"""
    logger.remove()
    logger.add(sys.stdout, format=json_formatter, level=level)


__all__ = [
    "logger",
    "StructuredLogger",
    "log_execution_time",
    "log_http_request",
    "json_formatter",
    "setup_json_logging",
    "session_id_var",
    "provider_var",
]
