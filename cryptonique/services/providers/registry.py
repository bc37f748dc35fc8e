"""Ranked list of the upstream providers."""

import httpx

from cryptonique.services.providers.base import MarketDataProvider
from cryptonique.services.providers.binance import BinanceProvider
from cryptonique.services.providers.coincap import CoinCapProvider
from cryptonique.services.providers.coingecko import CoinGeckoProvider
from cryptonique.services.providers.coinpaprika import CoinPaprikaProvider
from cryptonique.utils.config import APIConfig

# Priority order, most preferred first
PROVIDER_CLASSES = [BinanceProvider, CoinGeckoProvider, CoinCapProvider, CoinPaprikaProvider]


def default_providers(
    api_config: APIConfig | None = None, client: httpx.AsyncClient | None = None
) -> list[MarketDataProvider]:
    """Instantiate every provider in priority order, sharing one HTTP client."""
    return [cls(api_config=api_config, client=client) for cls in PROVIDER_CLASSES]
