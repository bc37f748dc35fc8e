"""In-memory event store for provider fetches and served market responses."""

import threading
import uuid
from collections import deque
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import Any

# Event types recorded by the services
PROVIDER_FETCH = "provider_fetch"
PROVIDER_FALLBACK = "provider_fallback"
ASSET_FAILED = "asset_failed"
MARKETS_SERVED = "markets_served"


@dataclass
class Event:
    """Represents a system event."""

    id: str
    timestamp: str
    trace_id: str | None
    event_type: str
    component: str
    message: str
    context: dict[str, Any]
    duration_ms: float | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert event to dictionary, excluding None values."""
        return {k: v for k, v in asdict(self).items() if v is not None}


class EventStore:
    """Bounded in-memory event store; the oldest events are evicted first."""

    def __init__(self, max_size: int = 10000):
        """
        Initialize the event store.

        Args:
            max_size: Maximum number of events to keep (default 10000)
        """
        self.max_size = max_size
        self._events: deque = deque(maxlen=max_size)
        self._lock = threading.RLock()

    def add_event(
        self,
        trace_id: str | None,
        event_type: str,
        component: str,
        message: str,
        context: dict[str, Any] | None = None,
        duration_ms: float | None = None,
    ) -> Event:
        """
        Add an event to the store.

        Returns:
            The created Event object
        """
        with self._lock:
            event = Event(
                id=str(uuid.uuid4()),
                timestamp=datetime.now(UTC).isoformat().replace("+00:00", "Z"),
                trace_id=trace_id,
                event_type=event_type,
                component=component,
                message=message,
                context=context or {},
                duration_ms=duration_ms,
            )
            self._events.append(event)
            return event

    def record_fetch(
        self,
        trace_id: str | None,
        provider: str,
        operation: str,
        success: bool,
        duration_ms: float,
        error: str | None = None,
    ) -> Event:
        """Record the outcome of one provider call."""
        context: dict[str, Any] = {
            "provider": provider,
            "operation": operation,
            "status": "success" if success else "failed",
        }
        if error:
            context["error"] = error
        return self.add_event(
            trace_id=trace_id,
            event_type=PROVIDER_FETCH,
            component="ProviderResolver",
            message=f"{provider} {operation} {'succeeded' if success else 'failed'}",
            context=context,
            duration_ms=duration_ms,
        )

    def get_recent_events(self, limit: int = 100) -> list[Event]:
        """Return the most recent events, oldest first."""
        with self._lock:
            events_list = list(self._events)
            return events_list[-limit:] if limit > 0 else []

    def get_events_by_trace(self, trace_id: str) -> list[Event]:
        with self._lock:
            return [event for event in self._events if event.trace_id == trace_id]

    def get_events_by_type(self, event_type: str, limit: int = 100) -> list[Event]:
        with self._lock:
            matching_events = [event for event in self._events if event.event_type == event_type]
            return matching_events[-limit:] if limit > 0 else []

    def clear(self) -> None:
        """Clear all events from the store."""
        with self._lock:
            self._events.clear()

    def size(self) -> int:
        """Get the current number of events in the store."""
        with self._lock:
            return len(self._events)

    def get_all_events(self) -> list[Event]:
        with self._lock:
            return list(self._events)
