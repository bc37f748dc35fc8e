"""Metrics calculator for aggregating event store data."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from cryptonique.utils.event_store import (
    ASSET_FAILED,
    MARKETS_SERVED,
    PROVIDER_FALLBACK,
    PROVIDER_FETCH,
    EventStore,
)


@dataclass
class ProviderMetrics:
    """Fetch statistics for a single provider."""

    attempts: int = 0
    successes: int = 0
    failures: int = 0
    average_duration_ms: float = 0.0

    @property
    def success_rate(self) -> float:
        return (self.successes / self.attempts * 100) if self.attempts > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "attempts": self.attempts,
            "successes": self.successes,
            "failures": self.failures,
            "success_rate": self.success_rate,
            "average_duration_ms": self.average_duration_ms,
        }


@dataclass
class Metrics:
    """Represents aggregated system metrics."""

    total_fetch_attempts: int
    successful_fetches: int
    failed_fetches: int
    success_rate: float
    average_fetch_duration_ms: float
    markets_served: int
    synthetic_fallbacks: int
    assets_dropped: int
    uptime_seconds: int
    providers: Dict[str, ProviderMetrics] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert metrics to dictionary."""
        return {
            "total_fetch_attempts": self.total_fetch_attempts,
            "successful_fetches": self.successful_fetches,
            "failed_fetches": self.failed_fetches,
            "success_rate": self.success_rate,
            "average_fetch_duration_ms": self.average_fetch_duration_ms,
            "markets_served": self.markets_served,
            "synthetic_fallbacks": self.synthetic_fallbacks,
            "assets_dropped": self.assets_dropped,
            "uptime_seconds": self.uptime_seconds,
            "providers": {name: m.to_dict() for name, m in self.providers.items()},
        }


def _average(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


class MetricsCalculator:
    """Calculates metrics from event store data."""

    def __init__(self, event_store: EventStore, start_time: Optional[datetime] = None):
        """
        Initialize the metrics calculator.

        Args:
            event_store: The event store to calculate metrics from
            start_time: Optional start time for uptime calculation (defaults to now)
        """
        self.event_store = event_store
        self.start_time = start_time or datetime.now(timezone.utc)

    def calculate(self) -> Metrics:
        """
        Calculate metrics from the event store.

        Returns:
            Metrics object with aggregated statistics
        """
        events = self.event_store.get_all_events()

        fetches = [e for e in events if e.event_type == PROVIDER_FETCH]
        successful = [e for e in fetches if e.context.get("status") == "success"]
        failed = [e for e in fetches if e.context.get("status") == "failed"]

        success_rate = (len(successful) / len(fetches) * 100) if fetches else 0.0
        average_fetch_duration_ms = _average(
            [e.duration_ms for e in fetches if e.duration_ms is not None]
        )

        providers: Dict[str, ProviderMetrics] = {}
        durations: Dict[str, list[float]] = {}
        for event in fetches:
            name = event.context.get("provider", "unknown")
            stats = providers.setdefault(name, ProviderMetrics())
            stats.attempts += 1
            if event.context.get("status") == "success":
                stats.successes += 1
            else:
                stats.failures += 1
            if event.duration_ms is not None:
                durations.setdefault(name, []).append(event.duration_ms)
        for name, stats in providers.items():
            stats.average_duration_ms = _average(durations.get(name, []))

        current_time = datetime.now(timezone.utc)
        uptime_seconds = int((current_time - self.start_time).total_seconds())

        return Metrics(
            total_fetch_attempts=len(fetches),
            successful_fetches=len(successful),
            failed_fetches=len(failed),
            success_rate=success_rate,
            average_fetch_duration_ms=average_fetch_duration_ms,
            markets_served=len([e for e in events if e.event_type == MARKETS_SERVED]),
            synthetic_fallbacks=len([e for e in events if e.event_type == PROVIDER_FALLBACK]),
            assets_dropped=len([e for e in events if e.event_type == ASSET_FAILED]),
            uptime_seconds=uptime_seconds,
            providers=providers,
        )
