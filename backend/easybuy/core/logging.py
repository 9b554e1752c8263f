"""
Logging configuration for EasyBuy.

Every log line of a request carries two correlation fields:
- request_id: the caller's X-Request-ID, or a generated one
- dispatch: what the request is serving, e.g. "page:vehicles" or
  "action:placeOrder"

Production output is one JSON object per line (python-json-logger);
development output is a plain text line with the same fields.
"""

from __future__ import annotations

import logging
import os
import sys
import time
import uuid
from collections.abc import Callable
from contextvars import ContextVar
from datetime import datetime, UTC
from typing import Any, Optional, TYPE_CHECKING

from pythonjsonlogger import jsonlogger
from starlette.middleware.base import BaseHTTPMiddleware

from easybuy.core.config import settings

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.responses import Response

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
dispatch_var: ContextVar[Optional[str]] = ContextVar("dispatch", default=None)

# Record store calls slower than this are logged as warnings
SLOW_OPERATION_MS = 1000

TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(request_id)s %(dispatch)s | %(message)s"
JSON_FORMAT = "%(timestamp)s %(level)s %(name)s %(message)s"


def bind_dispatch(kind: str, name: Any) -> None:
    """Tag the rest of the current request's log lines with `kind:name`."""
    dispatch_var.set(f"{kind}:{name}")


class ContextFilter(logging.Filter):
    """Copies the correlation context variables onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get() or "-"
        record.dispatch = dispatch_var.get() or "-"
        return True


class StructuredJsonFormatter(jsonlogger.JsonFormatter):
    """JSON lines with service, host and correlation fields."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._host = {
            "name": os.uname().nodename if hasattr(os, "uname") else "unknown",
            "pid": os.getpid(),
        }

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = datetime.fromtimestamp(record.created, UTC).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["service"] = {
            "name": settings.PROJECT_NAME,
            "version": settings.VERSION,
            "environment": settings.ENVIRONMENT,
        }
        log_record["host"] = self._host
        log_record["source"] = {
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Records emitted without the filter (e.g. in tests) still read the context
        request_id = getattr(record, "request_id", None) or request_id_var.get()
        dispatch = getattr(record, "dispatch", None) or dispatch_var.get()
        log_record["request_id"] = None if request_id == "-" else request_id
        log_record["dispatch"] = None if dispatch == "-" else dispatch

        if record.exc_info and record.exc_info[0] is not None:
            log_record["error"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "stack_trace": self.formatException(record.exc_info),
            }
            log_record.pop("exc_info", None)

        _drop_none(log_record)


def _drop_none(d: dict[str, Any]) -> None:
    for key in [k for k, v in d.items() if v is None]:
        del d[key]
    for value in d.values():
        if isinstance(value, dict):
            _drop_none(value)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Binds the request ID and logs one line per finished request.

    The response carries X-Request-ID and X-Response-Time. Probe endpoints
    are not logged.
    """

    QUIET_PATHS = frozenset({"/health", "/api/v1/health/live", "/api/v1/health/ready"})

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        id_token = request_id_var.set(request_id)
        dispatch_token = dispatch_var.set(None)
        logger = get_logger("easybuy.request")
        quiet = request.url.path in self.QUIET_PATHS
        started = time.perf_counter()

        try:
            try:
                response = await call_next(request)
            except Exception:
                logger.error(
                    f"{request.method} {request.url.path} raised",
                    extra={
                        "event": "request_error",
                        "http": {"method": request.method, "path": request.url.path},
                        "timing": {"duration_ms": round((time.perf_counter() - started) * 1000, 2)},
                    },
                    exc_info=True,
                )
                raise

            duration_ms = (time.perf_counter() - started) * 1000
            response.headers["X-Request-ID"] = request_id
            response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"

            if not quiet:
                level = logging.WARNING if response.status_code >= 400 or duration_ms > 5000 else logging.INFO
                logger.log(
                    level,
                    f"{request.method} {request.url.path} {response.status_code} ({duration_ms:.2f}ms)",
                    extra={
                        "event": "request_complete",
                        "http": {
                            "method": request.method,
                            "path": request.url.path,
                            "status_code": response.status_code,
                            "content_type": request.headers.get("Content-Type"),
                        },
                        "client": request.client.host if request.client else None,
                        "timing": {"duration_ms": round(duration_ms, 2)},
                    },
                )
            return response
        finally:
            request_id_var.reset(id_token)
            dispatch_var.reset(dispatch_token)


# Third-party loggers and their levels
LOGGER_CONFIG: dict[str, int] = {
    "uvicorn": logging.INFO,
    "uvicorn.access": logging.WARNING,
    "uvicorn.error": logging.ERROR,
    "sqlalchemy.engine": logging.WARNING,
    "sqlalchemy.pool": logging.WARNING,
    "aiosqlite": logging.WARNING,
    "asyncpg": logging.WARNING,
    "passlib": logging.WARNING,
    "multipart": logging.WARNING,
    "python_multipart": logging.WARNING,
}


def setup_logging() -> None:
    """Install the stdout handler, JSON or text by LOG_FORMAT."""
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(ContextFilter())
    if settings.LOG_FORMAT == "json":
        handler.setFormatter(StructuredJsonFormatter(JSON_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    for name, level in LOGGER_CONFIG.items():
        logging.getLogger(name).setLevel(level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_database_operation(
    operation: str,
    table: str,
    duration_ms: float,
    rows_affected: int = 0,
    success: bool = True,
    error: str | None = None,
) -> None:
    """
    Emit the `database_operation` event of one record store call.

    Failures log at ERROR, calls slower than SLOW_OPERATION_MS at WARNING,
    everything else at DEBUG.
    """
    logger = get_logger("easybuy.store")
    extra: dict[str, Any] = {
        "event": "database_operation",
        "operation": operation,
        "table": table,
        "duration_ms": round(duration_ms, 2),
        "rows_affected": rows_affected,
        "success": success,
    }

    if not success:
        extra["error_message"] = error
        logger.error(f"{operation} on {table} failed", extra=extra)
    elif duration_ms > SLOW_OPERATION_MS:
        logger.warning(f"Slow {operation} on {table}", extra=extra)
    else:
        logger.debug(f"{operation} on {table}", extra=extra)


class StoreOperation:
    """
    Times one record store call and logs it on exit.

    Usage:
        with StoreOperation("select", "vehicles") as op:
            rows = ...
            op.rows = len(rows)

    An exception escaping the block is logged as a failed operation and
    re-raised. `fail()` marks a handled failure.
    """

    def __init__(self, operation: str, table: str):
        self.operation = operation
        self.table = table
        self.rows = 0
        self.error: str | None = None
        self._started = 0.0

    def __enter__(self) -> StoreOperation:
        self._started = time.perf_counter()
        return self

    def fail(self, error: str) -> None:
        self.error = error

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_val is not None and self.error is None:
            self.error = f"{exc_type.__name__}: {exc_val}"
        log_database_operation(
            self.operation,
            self.table,
            (time.perf_counter() - self._started) * 1000,
            rows_affected=self.rows,
            success=self.error is None,
            error=self.error,
        )
