"""Correlation id context shared by the middleware and the log filter."""

from __future__ import annotations

import contextvars
import logging
import uuid

correlation_id_ctx: contextvars.ContextVar[str] = contextvars.ContextVar("correlation_id", default="")


def generate_correlation_id() -> str:
    return str(uuid.uuid4())


def get_correlation_id() -> str:
    return correlation_id_ctx.get()


def set_correlation_id(value: str) -> contextvars.Token:
    return correlation_id_ctx.set(value)


class CorrelationIdFilter(logging.Filter):
    """Attach the current request's correlation id to every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_ctx.get() or "-"
        return True


__all__ = [
    "CorrelationIdFilter",
    "generate_correlation_id",
    "get_correlation_id",
    "set_correlation_id",
]
