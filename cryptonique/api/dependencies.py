"""FastAPI dependencies and application-scoped service wiring."""

from dataclasses import dataclass

import httpx
from fastapi import Request

from cryptonique.models.market_data import ResolverState
from cryptonique.services.market_series import MarketSeriesService
from cryptonique.services.provider_resolver import ProviderResolver
from cryptonique.services.providers.registry import default_providers
from cryptonique.utils.config import Config
from cryptonique.utils.event_store import EventStore
from cryptonique.utils.metrics import MetricsCalculator


@dataclass
class Services:
    """Services shared by every request of one application instance."""

    event_store: EventStore
    resolver: ProviderResolver
    market_service: MarketSeriesService
    metrics: MetricsCalculator


def create_services(app_config: Config, client: httpx.AsyncClient | None = None) -> Services:
    """
    Wire the resolver and market series service for one application instance.

    Args:
        app_config: Application configuration
        client: HTTP client shared by all providers
    """
    event_store = EventStore()
    resolver = ProviderResolver(
        default_providers(app_config.api, client),
        state=ResolverState(),
        event_store=event_store,
        attempt_timeout=app_config.api.request_timeout,
    )
    market_service = MarketSeriesService(
        resolver,
        dashboard_config=app_config.dashboard,
        cache_ttl=app_config.api.cache_ttl,
        event_store=event_store,
    )
    return Services(
        event_store=event_store,
        resolver=resolver,
        market_service=market_service,
        metrics=MetricsCalculator(event_store),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_resolver(request: Request) -> ProviderResolver:
    return get_services(request).resolver


def get_market_service(request: Request) -> MarketSeriesService:
    return get_services(request).market_service


def get_event_store(request: Request) -> EventStore:
    return get_services(request).event_store


def get_metrics_calculator(request: Request) -> MetricsCalculator:
    return get_services(request).metrics
