"""Pytest configuration and fixtures."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from cryptonique.api.dependencies import (
    Services,
    get_event_store,
    get_market_service,
    get_metrics_calculator,
    get_resolver,
)
from cryptonique.models.market_data import MarketSnapshot, PricePoint, ResolverState
from cryptonique.services.market_series import MarketSeriesService
from cryptonique.services.provider_resolver import ProviderResolver
from cryptonique.utils.config import DashboardConfig
from cryptonique.utils.event_store import EventStore
from cryptonique.utils.metrics import MetricsCalculator
from main import app

# Fixed "now" for services under test (epoch ms)
NOW_MS = 1_700_000_000_000
MINUTE_MS = 60_000


class StubProvider:
    """In-memory provider with scripted results and call tracking."""

    def __init__(
        self,
        name: str,
        markets: list[MarketSnapshot] | None = None,
        history: dict[str, list[PricePoint] | BaseException] | None = None,
        markets_error: BaseException | None = None,
        history_error: BaseException | None = None,
        available: bool = True,
        probe_error: BaseException | None = None,
        history_delays: dict[str, float] | None = None,
    ):
        self.name = name
        self.markets = markets or []
        self.history = history or {}
        self.markets_error = markets_error
        self.history_error = history_error
        self.available = available
        self.probe_error = probe_error
        self.history_delays = history_delays or {}
        self.market_calls = 0
        self.history_calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch_markets(self, count: int) -> list[MarketSnapshot]:
        self.market_calls += 1
        if self.markets_error is not None:
            raise self.markets_error
        return self.markets[:count]

    async def fetch_history(self, asset_id: str, hours: int) -> list[PricePoint]:
        self.history_calls.append(asset_id)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.history_delays.get(asset_id, 0))
            if self.history_error is not None:
                raise self.history_error
            value = self.history.get(asset_id, [])
            if isinstance(value, BaseException):
                raise value
            return list(value)
        finally:
            self.in_flight -= 1

    async def check_available(self) -> bool:
        if self.probe_error is not None:
            raise self.probe_error
        return self.available


def make_snapshot(symbol: str, price: float = 100.0, change: float = 1.5) -> MarketSnapshot:
    return MarketSnapshot(
        id=symbol.lower(), symbol=symbol, name=symbol.title(), price=price, change_24h_pct=change
    )


def make_history(
    prices: list[float], end_ms: int = NOW_MS, step_ms: int = MINUTE_MS
) -> list[PricePoint]:
    """Observed points ending at end_ms, one every step_ms."""
    last = len(prices) - 1
    return [
        PricePoint(timestamp=end_ms - (last - i) * step_ms, price=price)
        for i, price in enumerate(prices)
    ]


@pytest.fixture
def snapshots():
    return [make_snapshot("BTC", 43000.0), make_snapshot("ETH", 2400.0), make_snapshot("SOL", 160.0)]


@pytest.fixture
def primary_provider(snapshots):
    """Provider serving markets and a ten-point history for every snapshot."""
    return StubProvider(
        "Binance",
        markets=snapshots,
        history={
            s.id: make_history([s.price * (1 + i / 1000) for i in range(10)]) for s in snapshots
        },
    )


@pytest.fixture
def event_store():
    return EventStore()


@pytest.fixture
def services(primary_provider, event_store):
    """Services wired to stub providers with a fixed clock and no response cache."""
    resolver = ProviderResolver(
        [primary_provider, StubProvider("CoinGecko", available=False)],
        state=ResolverState(),
        event_store=event_store,
    )
    market_service = MarketSeriesService(
        resolver,
        dashboard_config=DashboardConfig(),
        cache_ttl=0,
        event_store=event_store,
        clock=lambda: NOW_MS,
    )
    return Services(
        event_store=event_store,
        resolver=resolver,
        market_service=market_service,
        metrics=MetricsCalculator(event_store),
    )


@pytest.fixture
def test_client(services):
    """Create a test client backed by the stub services."""
    app.dependency_overrides[get_resolver] = lambda: services.resolver
    app.dependency_overrides[get_market_service] = lambda: services.market_service
    app.dependency_overrides[get_event_store] = lambda: services.event_store
    app.dependency_overrides[get_metrics_calculator] = lambda: services.metrics

    client = TestClient(app)
    yield client

    app.dependency_overrides.clear()
