"""Market series service: snapshots plus history and prediction per asset."""

import asyncio
import time
from collections.abc import Callable

from cryptonique.models.market_data import (
    HORIZON_HOURS,
    AssetFailed,
    AssetLoaded,
    AssetOutcome,
    AssetSeries,
    Horizon,
    MarketSnapshot,
    MarketsResult,
    PricePoint,
)
from cryptonique.services.forecaster import predict
from cryptonique.services.provider_resolver import (
    SYNTHETIC_PROVIDER,
    NoProviderAvailableError,
    ProviderResolver,
)
from cryptonique.services.providers.base import now_ms
from cryptonique.utils.config import DashboardConfig, config
from cryptonique.utils.event_store import (
    ASSET_FAILED,
    MARKETS_SERVED,
    PROVIDER_FALLBACK,
    EventStore,
)
from cryptonique.utils.logger import StructuredLogger
from cryptonique.utils.trace_context import get_current_trace

# Sampling interval label reported for each horizon
HORIZON_INTERVALS = {"1h": "1m", "3h": "5m", "6h": "5m"}


class MarketSeriesService:
    """Builds the per-asset snapshot and combined observed/predicted series."""

    def __init__(
        self,
        resolver: ProviderResolver,
        dashboard_config: DashboardConfig | None = None,
        cache_ttl: int | None = None,
        event_store: EventStore | None = None,
        clock: Callable[[], int] = now_ms,
    ):
        """
        Initialize the service.

        Args:
            resolver: Provider resolver used for snapshots and histories
            dashboard_config: Batch size, prediction steps and per-asset timeout
            cache_ttl: Seconds a result is reused for the same request (0 disables)
            event_store: Optional event store for recording served responses
            clock: Current time in epoch milliseconds
        """
        self.resolver = resolver
        self.settings = dashboard_config or config.dashboard
        self.cache_ttl = config.api.cache_ttl if cache_ttl is None else cache_ttl
        self.event_store = event_store
        self.clock = clock
        self.logger = StructuredLogger("MarketSeriesService", config.logging.log_file)
        self._cache: dict[tuple[int, str], tuple[float, MarketsResult]] = {}

    def _record(self, event_type: str, message: str, context: dict) -> None:
        if self.event_store is not None:
            self.event_store.add_event(
                trace_id=get_current_trace(),
                event_type=event_type,
                component="MarketSeriesService",
                message=message,
                context=context,
            )

    def _cached(self, key: tuple[int, str]) -> MarketsResult | None:
        entry = self._cache.get(key)
        if entry is None:
            return None
        expires_at, result = entry
        if time.monotonic() >= expires_at:
            del self._cache[key]
            return None
        return result

    def clear_cache(self) -> None:
        self._cache.clear()

    async def get_markets(
        self, asset_count: int, horizon: Horizon = "1h", use_cache: bool = True
    ) -> MarketsResult:
        """
        Resolve snapshots and build each asset's series for the horizon.

        Falls back to synthetic snapshots when no provider is available.
        Assets whose series cannot be loaded are dropped from `items` and
        reported in `failures`.

        Raises:
            ValueError: If the horizon is not one of 1h, 3h or 6h
        """
        if horizon not in HORIZON_HOURS:
            raise ValueError(f"Unsupported horizon: {horizon}")

        key = (asset_count, horizon)
        if use_cache and self.cache_ttl > 0:
            cached = self._cached(key)
            if cached is not None:
                self.logger.debug(
                    "Serving cached market series",
                    context={"asset_count": asset_count, "horizon": horizon},
                )
                return cached

        hours = HORIZON_HOURS[horizon]
        try:
            resolved = await self.resolver.get_markets(asset_count)
            snapshots, provider = resolved.data, resolved.provider_name
        except NoProviderAvailableError as e:
            self.logger.warning(
                "Serving synthetic market data",
                context={"asset_count": asset_count},
                exception=e,
            )
            snapshots = self.resolver.generate_fallback_data(asset_count)
            provider = SYNTHETIC_PROVIDER
            self._record(PROVIDER_FALLBACK, "Served synthetic markets", {"count": len(snapshots)})

        outcomes = await self.load_series(snapshots, hours, synthetic=provider == SYNTHETIC_PROVIDER)

        result = MarketsResult(
            vs="usd",
            horizon=horizon,
            interval=HORIZON_INTERVALS[horizon],
            predicted_steps=self.settings.predicted_steps,
            provider=provider,
            items=[o.series for o in outcomes if isinstance(o, AssetLoaded)],
            failures=[o for o in outcomes if isinstance(o, AssetFailed)],
        )

        self.logger.info(
            f"Processed {len(result.items)} of {len(snapshots)} markets using {provider}",
            context={
                "provider": provider,
                "horizon": horizon,
                "processed": len(result.items),
                "failed": len(result.failures),
            },
        )
        self._record(
            MARKETS_SERVED,
            "Served market series",
            {"provider": provider, "items": len(result.items), "failed": len(result.failures)},
        )

        if self.cache_ttl > 0:
            self._cache[key] = (time.monotonic() + self.cache_ttl, result)
        return result

    async def load_series(
        self, snapshots: list[MarketSnapshot], hours: int, synthetic: bool = False
    ) -> list[AssetOutcome]:
        """
        Load every asset's series in fixed-size batches.

        Batches run one after another; the assets inside a batch run
        concurrently and one failing asset never cancels its batch-mates.
        Outcomes are returned in snapshot order.
        """
        batch_size = max(self.settings.batch_size, 1)
        outcomes: list[AssetOutcome] = []

        for start in range(0, len(snapshots), batch_size):
            batch = snapshots[start : start + batch_size]
            results = await asyncio.gather(
                *(self._load_asset(s, hours, synthetic) for s in batch),
                return_exceptions=True,
            )
            for snapshot, result in zip(batch, results):
                if isinstance(result, BaseException):
                    result = self._failed(snapshot, result)
                outcomes.append(result)

        return outcomes

    def _failed(self, snapshot: MarketSnapshot, error: BaseException) -> AssetFailed:
        cause = "timeout" if isinstance(error, TimeoutError) else f"{type(error).__name__}: {error}"
        self.logger.warning(
            f"Failed to process {snapshot.symbol}",
            context={"asset_id": snapshot.id, "cause": cause},
        )
        self._record(ASSET_FAILED, f"Dropped {snapshot.symbol}", {"asset_id": snapshot.id, "cause": cause})
        return AssetFailed(asset_id=snapshot.id, cause=cause)

    @property
    def asset_timeout(self) -> float:
        """
        Seconds one asset may take, never less than one pass over every provider.

        A provider that times out must still leave the rest of the chain
        room to answer.
        """
        full_pass = self.resolver.full_pass_timeout
        if full_pass is None:
            return self.settings.asset_timeout
        return max(self.settings.asset_timeout, full_pass)

    async def _load_asset(self, snapshot: MarketSnapshot, hours: int, synthetic: bool) -> AssetOutcome:
        try:
            if synthetic:
                history = self.resolver.generate_fallback_history(snapshot, hours, now=self.clock())
                history_provider = SYNTHETIC_PROVIDER
            else:
                resolved = await asyncio.wait_for(
                    self.resolver.get_history(snapshot.id, hours),
                    timeout=self.asset_timeout,
                )
                history, history_provider = resolved.data, resolved.provider_name
        except Exception as e:
            return self._failed(snapshot, e)

        recent = self._recent(history, hours)
        predictions = predict(recent, self.settings.predicted_steps) if recent else []

        outcome = AssetLoaded(
            AssetSeries(
                snapshot=snapshot,
                series=recent + predictions,
                history_provider=history_provider,
            )
        )
        self.logger.debug(
            f"{snapshot.symbol}: {len(recent)} history + {len(predictions)} predictions",
            context={"asset_id": outcome.asset_id, "history_provider": history_provider},
        )
        return outcome

    def _recent(self, history: list[PricePoint], hours: int) -> list[PricePoint]:
        cutoff = self.clock() - hours * 60 * 60 * 1000
        return [p for p in history if p.timestamp >= cutoff]
