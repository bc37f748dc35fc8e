"""Market data provider interface and shared HTTP plumbing."""

import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Protocol, runtime_checkable

import httpx

from cryptonique.models.market_data import MarketSnapshot, PricePoint
from cryptonique.utils.config import APIConfig, config

# Top assets every provider supports, in display order
ROSTER_SYMBOLS = ["BTC", "ETH", "BNB", "SOL", "XRP", "ADA", "DOGE", "AVAX", "DOT", "LINK"]

ASSET_NAMES = {
    "BTC": "Bitcoin",
    "ETH": "Ethereum",
    "BNB": "BNB",
    "SOL": "Solana",
    "XRP": "XRP",
    "ADA": "Cardano",
    "DOGE": "Dogecoin",
    "AVAX": "Avalanche",
    "DOT": "Polkadot",
    "LINK": "Chainlink",
}


class ProviderError(Exception):
    """A provider call failed (network, timeout, non-2xx or malformed payload)."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        self.message = message
        super().__init__(f"{provider}: {message}")


@runtime_checkable
class MarketDataProvider(Protocol):
    """Capabilities the resolver needs from an upstream market-data API."""

    name: str

    async def fetch_markets(self, count: int) -> list[MarketSnapshot]:
        """Fetch current snapshots for up to `count` assets."""
        ...

    async def fetch_history(self, asset_id: str, hours: int) -> list[PricePoint]:
        """Fetch the price history of one asset over the last `hours` hours."""
        ...

    async def check_available(self) -> bool:
        """Probe the upstream API; never raises."""
        ...


def now_ms() -> int:
    return int(time.time() * 1000)


class BaseHTTPProvider:
    """
    JSON-over-HTTP provider with a fixed symbol roster.

    Subclasses set `name`, `base_url_field` (the APIConfig attribute holding
    their base URL), `probe_path` and `symbol_to_id`.
    """

    name: str = ""
    base_url_field: str = ""
    probe_path: str = ""
    symbol_to_id: dict[str, str] = {}

    def __init__(self, api_config: APIConfig | None = None, client: httpx.AsyncClient | None = None):
        """
        Args:
            api_config: Upstream API settings (defaults to the global config)
            client: Shared HTTP client; a short-lived one is opened per call when omitted
        """
        self.api_config = api_config or config.api
        self.base_url = getattr(self.api_config, self.base_url_field).rstrip("/")
        self._client = client
        self._id_to_symbol = {v: k for k, v in self.symbol_to_id.items()}

    # Symbol mapping

    def map_to_provider_id(self, symbol: str) -> str:
        """Translate an uppercase ticker to this provider's asset identifier."""
        return self.symbol_to_id.get(symbol.upper(), symbol.lower())

    def symbol_from_provider_id(self, provider_id: str) -> str | None:
        """Reverse lookup of `map_to_provider_id` for supported assets."""
        return self._id_to_symbol.get(provider_id)

    def supported_symbols(self, count: int) -> list[str]:
        return list(self.symbol_to_id)[: max(count, 0)]

    def _snapshot(self, symbol: str, price: Any, change: Any, name: str | None = None) -> MarketSnapshot:
        return MarketSnapshot(
            id=symbol.lower(),
            symbol=symbol,
            name=name or ASSET_NAMES.get(symbol, symbol),
            price=float(price),
            change_24h_pct=float(change or 0),
        )

    # HTTP

    def _headers(self) -> dict[str, str]:
        return {"Accept": "application/json", "User-Agent": self.api_config.user_agent}

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
        else:
            async with httpx.AsyncClient() as client:
                yield client

    async def _get_json(
        self, path: str, params: dict[str, Any] | None = None, timeout: float | None = None
    ) -> Any:
        """
        GET a JSON document from the provider.

        Raises:
            ProviderError: On transport errors, timeouts, non-2xx statuses or invalid JSON
        """
        url = f"{self.base_url}{path}"
        try:
            async with self._session() as client:
                response = await client.get(
                    url,
                    params=params,
                    headers=self._headers(),
                    timeout=timeout or self.api_config.request_timeout,
                )
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            raise ProviderError(
                self.name, f"HTTP {e.response.status_code} from {path}"
            ) from e
        except httpx.TimeoutException as e:
            raise ProviderError(self.name, f"Timed out requesting {path}") from e
        except httpx.HTTPError as e:
            raise ProviderError(self.name, f"Request to {path} failed: {e}") from e
        except ValueError as e:
            raise ProviderError(self.name, f"Malformed JSON from {path}") from e

    def _malformed(self, what: str, error: Exception) -> ProviderError:
        return ProviderError(self.name, f"Malformed {what} payload: {error!r}")

    async def check_available(self) -> bool:
        """Issue the liveness probe with the short probe timeout."""
        try:
            async with self._session() as client:
                response = await client.get(
                    f"{self.base_url}{self.probe_path}",
                    headers=self._headers(),
                    timeout=self.api_config.probe_timeout,
                )
            return response.is_success
        except httpx.HTTPError:
            return False
