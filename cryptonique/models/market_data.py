"""Market data models for snapshots, price series and pipeline results."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Generic, Literal, TypeVar

T = TypeVar("T")

Horizon = Literal["1h", "3h", "6h"]

HORIZON_HOURS: dict[str, int] = {"1h": 1, "3h": 3, "6h": 6}


@dataclass
class PricePoint:
    """One observed or predicted price sample (timestamp in ms since epoch, USD price)."""

    timestamp: int
    price: float
    predicted: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary; observed points carry no `predicted` key."""
        result: dict[str, Any] = {"timestamp": self.timestamp, "price": self.price}
        if self.predicted is not None:
            result["predicted"] = self.predicted
        return result


@dataclass(frozen=True)
class MarketSnapshot:
    """Current state of one asset as reported by a provider."""

    id: str
    symbol: str
    name: str
    price: float
    change_24h_pct: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "name": self.name,
            "price": self.price,
            "change_24h_pct": self.change_24h_pct,
        }


@dataclass
class ProviderResult(Generic[T]):
    """Data returned by the resolver with the name of the provider that served it."""

    data: list[T]
    provider_name: str


@dataclass
class ProviderStatus:
    """Liveness probe result for a provider."""

    name: str
    available: bool
    checked_at: str

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "available": self.available, "checked_at": self.checked_at}


@dataclass
class ResolverState:
    """Mutable resolver state; which provider to try first on the next call."""

    last_successful_provider: str | None = None


@dataclass
class AssetSeries:
    """A market snapshot together with its observed and predicted price series."""

    snapshot: MarketSnapshot
    series: list[PricePoint] = field(default_factory=list)
    history_provider: str = "none"

    @property
    def observed(self) -> list[PricePoint]:
        return [p for p in self.series if not p.predicted]

    @property
    def predictions(self) -> list[PricePoint]:
        return [p for p in self.series if p.predicted]

    def to_dict(self) -> dict[str, Any]:
        result = self.snapshot.to_dict()
        result["history_provider"] = self.history_provider
        result["series"] = [p.to_dict() for p in self.series]
        return result


@dataclass
class AssetLoaded:
    """Successful outcome of loading one asset's series."""

    series: AssetSeries

    @property
    def asset_id(self) -> str:
        return self.series.snapshot.id


@dataclass
class AssetFailed:
    """Failed outcome of loading one asset's series."""

    asset_id: str
    cause: str

    def to_dict(self) -> dict[str, Any]:
        return {"asset_id": self.asset_id, "cause": self.cause}


AssetOutcome = AssetLoaded | AssetFailed


@dataclass
class MarketsResult:
    """Complete response of the market series pipeline."""

    vs: str
    horizon: Horizon
    interval: str
    predicted_steps: int
    provider: str
    items: list[AssetSeries] = field(default_factory=list)
    failures: list[AssetFailed] = field(default_factory=list)
    generated_at: str = field(
        default_factory=lambda: datetime.now(UTC).isoformat().replace("+00:00", "Z")
    )

    @property
    def degraded(self) -> bool:
        """True when the snapshots are synthetic or any asset lacks real history."""
        return self.provider == "synthetic" or any(
            item.history_provider in ("none", "synthetic") for item in self.items
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "vs": self.vs,
            "horizon": self.horizon,
            "interval": self.interval,
            "predicted_steps": self.predicted_steps,
            "provider": self.provider,
            "degraded": self.degraded,
            "generated_at": self.generated_at,
            "items": [item.to_dict() for item in self.items],
            "failures": [failure.to_dict() for failure in self.failures],
        }
