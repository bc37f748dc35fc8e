"""Trace context management for following a request through provider calls."""

import contextvars
import uuid
from typing import Optional

TRACE_HEADER = "X-Trace-Id"

# Context variable for storing the current trace ID
_trace_id_context: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "trace_id", default=None
)


def create_trace(incoming: str | None = None) -> str:
    """
    Start a trace for the current context.

    Args:
        incoming: Trace ID propagated by the caller, reused when non-blank

    Returns:
        The active trace ID (UUID4 unless one was propagated)
    """
    trace_id = incoming.strip() if incoming and incoming.strip() else str(uuid.uuid4())
    _trace_id_context.set(trace_id)
    return trace_id


def get_current_trace() -> Optional[str]:
    """Return the trace ID of the current context, if any."""
    return _trace_id_context.get()


def clear_trace() -> None:
    """Clear the trace ID from the current context."""
    _trace_id_context.set(None)
