"""Correlation identifiers for extraction and edit requests."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any
from uuid import uuid4

import structlog

CORRELATION_ID_KEY = "correlation_id"
OPERATION_KEY = "operation"


@contextmanager
def correlation_scope(
    operation: str, existing_id: str | None = None, **extra: Any
) -> Iterator[str]:
    """Bind a correlation id and operation name for the lifetime of the context.

    Extra keyword arguments (e.g. ``event_id``) are bound alongside and
    removed again on exit.
    """

    correlation_id = existing_id or uuid4().hex[:12]
    structlog.contextvars.bind_contextvars(
        **{CORRELATION_ID_KEY: correlation_id, OPERATION_KEY: operation}, **extra
    )
    try:
        yield correlation_id
    finally:
        structlog.contextvars.unbind_contextvars(
            CORRELATION_ID_KEY, OPERATION_KEY, *extra.keys()
        )


__all__ = ["CORRELATION_ID_KEY", "OPERATION_KEY", "correlation_scope"]
