"""Correlation ID context management for request tracing.

The research pipeline uses the session id of each request as its
correlation id, so every log line emitted while a request fans out to its
providers can be joined back to the session.

Usage:
    from src.observability.context import correlation_id_context

    with correlation_id_context(request.session_id):
        await orchestrator.execute_parallel(...)
"""

import uuid
from contextvars import ContextVar
from contextlib import contextmanager
from typing import Optional, Generator

# ContextVar values are copied into every asyncio task created by gather()
_correlation_id_var: ContextVar[Optional[str]] = ContextVar(
    "correlation_id", default=None
)


def get_correlation_id() -> Optional[str]:
    """Current correlation ID, or None if not set."""
    return _correlation_id_var.get()


@contextmanager
def correlation_id_context(
    corr_id: Optional[str] = None,
) -> Generator[str, None, None]:
    """Scope a correlation ID and restore the previous one on exit."""
    if corr_id is None:
        corr_id = str(uuid.uuid4())

    token = _correlation_id_var.set(corr_id)
    try:
        yield corr_id
    finally:
        _correlation_id_var.reset(token)
