"""API routes for market series, provider health and debug information."""

from datetime import UTC, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from cryptonique.api.dependencies import (
    get_event_store,
    get_market_service,
    get_metrics_calculator,
    get_resolver,
)
from cryptonique.api.error_handlers import create_unsupported_currency_error
from cryptonique.models.market_data import Horizon
from cryptonique.services.market_series import MarketSeriesService
from cryptonique.services.provider_resolver import ProviderResolver
from cryptonique.services.providers.base import ROSTER_SYMBOLS
from cryptonique.utils.config import config
from cryptonique.utils.event_store import EventStore
from cryptonique.utils.metrics import MetricsCalculator

router = APIRouter()

SUPPORTED_QUOTES = ("usd",)


def _now_iso() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


@router.get("/markets")
async def get_markets(
    n: Optional[int] = Query(None, ge=1, le=len(ROSTER_SYMBOLS), description="Number of assets"),
    h: Horizon = Query("1h", description="Prediction horizon: 1h, 3h or 6h"),
    vs: str = Query("usd", description="Quote currency"),
    debug: bool = Query(False),
    service: MarketSeriesService = Depends(get_market_service),
    resolver: ProviderResolver = Depends(get_resolver),
):
    """
    Get market snapshots with observed and predicted price series.

    Args:
        n: Number of assets to return (defaults to DEFAULT_CRYPTO_COUNT)
        h: Horizon of history to load and extrapolate
        vs: Quote currency; only "usd" is supported
        debug: Include provider status and counts, bypassing the cache

    Returns:
        Per-asset snapshot and series, the serving provider and any dropped assets
    """
    if vs.lower() not in SUPPORTED_QUOTES:
        raise create_unsupported_currency_error(vs).to_http_exception()

    count = n or config.dashboard.default_asset_count
    result = await service.get_markets(count, h, use_cache=not debug)
    body = result.to_dict()

    if debug:
        statuses = await resolver.get_provider_status()
        body["debug"] = {
            "provider": result.provider,
            "preferred_provider": resolver.state.last_successful_provider,
            "requested_count": count,
            "processed_count": len(result.items),
            "failed_count": len(result.failures),
            "provider_status": [s.to_dict() for s in statuses],
            "timestamp": _now_iso(),
        }

    return body


@router.get("/health/providers")
async def get_provider_health(resolver: ProviderResolver = Depends(get_resolver)):
    """
    Probe every upstream provider.

    Returns:
        Overall status (healthy, degraded or unhealthy) and per-provider availability
    """
    statuses = await resolver.get_provider_status()
    available = sum(1 for s in statuses if s.available)

    if available == len(statuses):
        overall = "healthy"
    elif available > 0:
        overall = "degraded"
    else:
        overall = "unhealthy"

    return {
        "timestamp": _now_iso(),
        "overall_status": overall,
        "available_count": available,
        "providers": [s.to_dict() for s in statuses],
    }


@router.get("/debug/metrics")
async def get_metrics(calculator: MetricsCalculator = Depends(get_metrics_calculator)):
    """Aggregated provider fetch metrics since startup."""
    return calculator.calculate().to_dict()


@router.get("/debug/events")
async def get_events(
    limit: int = Query(100, ge=1, le=1000),
    trace_id: Optional[str] = Query(None),
    event_type: Optional[str] = Query(None),
    event_store: EventStore = Depends(get_event_store),
):
    """
    Recent events, optionally filtered by trace ID or event type.

    Returns:
        Events in chronological order (oldest first)
    """
    if trace_id:
        events = event_store.get_events_by_trace(trace_id)[-limit:]
    elif event_type:
        events = event_store.get_events_by_type(event_type, limit=limit)
    else:
        events = event_store.get_recent_events(limit=limit)

    return {"events": [e.to_dict() for e in events], "count": len(events)}
