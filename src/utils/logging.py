"""Structured logging: keyword fields, request correlation, owner masking and operation timing."""

import asyncio
import hashlib
import logging
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from functools import wraps
from typing import Any, Callable, Dict, Optional

from src.utils.logging_config import LoggingConfig, get_logger


_correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


def generate_correlation_id() -> str:
    """Generate a unique correlation ID for request tracing."""
    return f"req_{uuid.uuid4().hex[:12]}"


def get_correlation_id() -> Optional[str]:
    return _correlation_id_var.get()


@contextmanager
def correlation_context(correlation_id: Optional[str] = None):
    """Tag every log line emitted inside the block with one request id."""
    token = _correlation_id_var.set(correlation_id or generate_correlation_id())
    try:
        yield _correlation_id_var.get()
    finally:
        _correlation_id_var.reset(token)


def mask_owner(owner: Optional[str]) -> Optional[str]:
    """
    Mask a listing owner identity for logs.

    E-mail owners keep two leading characters and the domain; the hash
    suffix lets lines about the same owner be correlated.
    """
    if not owner or not LoggingConfig.LOG_MASK_SENSITIVE:
        return owner

    digest = hashlib.sha256(owner.encode()).hexdigest()[:8]
    local, at, domain = owner.partition("@")
    if at:
        return f"{local[:2]}***@{domain}#{digest}"
    return f"{owner[:4]}...{digest}"


class StructuredLogger:
    """
    Logger wrapper taking fields as keyword arguments.

    Fields given to :meth:`bind` are repeated on every line, so a service
    can bind a listing id once and log freely after that.
    """

    def __init__(self, logger: logging.Logger, fields: Optional[Dict[str, Any]] = None):
        self.logger = logger
        self.fields = dict(fields or {})

    def bind(self, **fields: Any) -> "StructuredLogger":
        return StructuredLogger(self.logger, {**self.fields, **fields})

    def _extra(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        extra = {**self.fields, **fields}
        correlation_id = get_correlation_id()
        if correlation_id:
            extra["correlation_id"] = correlation_id
        return extra

    def _log(self, level: int, message: str, exc_info: bool = False, **fields: Any) -> None:
        if self.logger.isEnabledFor(level):
            self.logger.log(level, message, extra=self._extra(fields), exc_info=exc_info)

    def debug(self, message: str, **fields: Any) -> None:
        self._log(logging.DEBUG, message, **fields)

    def info(self, message: str, **fields: Any) -> None:
        self._log(logging.INFO, message, **fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._log(logging.WARNING, message, **fields)

    def error(self, message: str, exc_info: bool = False, **fields: Any) -> None:
        self._log(logging.ERROR, message, exc_info=exc_info, **fields)


def get_structured_logger(name: str) -> StructuredLogger:
    return StructuredLogger(get_logger(name))


@contextmanager
def log_timing(operation_name: str, logger: Optional[StructuredLogger] = None, **context: Any):
    """
    Log how long the block took and whether it raised.

    Blocks slower than LOG_SLOW_OPERATION_THRESHOLD_MS log a warning.
    """
    log = (logger or get_structured_logger(__name__)).bind(operation=operation_name, **context)
    started = time.perf_counter()
    outcome = "failed"

    try:
        yield
        outcome = "succeeded"
    finally:
        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
        log.info(f"{operation_name} {outcome}", outcome=outcome, processing_time_ms=elapsed_ms)

        if elapsed_ms > LoggingConfig.LOG_SLOW_OPERATION_THRESHOLD_MS:
            log.warning(
                f"Slow operation: {operation_name}",
                processing_time_ms=elapsed_ms,
                threshold_ms=LoggingConfig.LOG_SLOW_OPERATION_THRESHOLD_MS
            )


def timed(operation_name: Optional[str] = None, logger: Optional[StructuredLogger] = None):
    """Decorator form of :func:`log_timing` for plain and async functions."""
    def decorator(func: Callable) -> Callable:
        op_name = operation_name or f"{func.__module__}.{func.__name__}"
        log = logger or get_structured_logger(func.__module__)

        if asyncio.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                with log_timing(op_name, logger=log):
                    return await func(*args, **kwargs)
            return async_wrapper

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            with log_timing(op_name, logger=log):
                return func(*args, **kwargs)
        return sync_wrapper

    return decorator
