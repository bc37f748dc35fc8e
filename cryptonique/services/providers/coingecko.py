"""CoinGecko public REST API binding."""

import math

from cryptonique.models.market_data import MarketSnapshot, PricePoint
from cryptonique.services.providers.base import BaseHTTPProvider, now_ms


class CoinGeckoProvider(BaseHTTPProvider):
    """Simple prices and market charts keyed by CoinGecko coin ids."""

    name = "CoinGecko"
    base_url_field = "coingecko_base_url"
    probe_path = "/ping"
    symbol_to_id = {
        "BTC": "bitcoin",
        "ETH": "ethereum",
        "BNB": "binancecoin",
        "SOL": "solana",
        "XRP": "ripple",
        "ADA": "cardano",
        "DOGE": "dogecoin",
        "AVAX": "avalanche-2",
        "DOT": "polkadot",
        "LINK": "chainlink",
    }

    def _headers(self) -> dict[str, str]:
        headers = super()._headers()
        if self.api_config.coingecko_api_key:
            headers["x-cg-demo-api-key"] = self.api_config.coingecko_api_key
        return headers

    async def fetch_markets(self, count: int) -> list[MarketSnapshot]:
        symbols = self.supported_symbols(count)
        if not symbols:
            return []

        data = await self._get_json(
            "/simple/price",
            params={
                "ids": ",".join(self.map_to_provider_id(s) for s in symbols),
                "vs_currencies": "usd",
                "include_24hr_change": "true",
            },
        )

        try:
            snapshots = []
            for symbol in symbols:
                quote = data.get(self.map_to_provider_id(symbol)) or {}
                price = float(quote.get("usd") or 0)
                # Unlisted or unpriced coins come back as zero
                if price > 0:
                    snapshots.append(self._snapshot(symbol, price, quote.get("usd_24h_change")))
            return snapshots
        except (AttributeError, TypeError, ValueError) as e:
            raise self._malformed("simple price", e) from e

    async def fetch_history(self, asset_id: str, hours: int) -> list[PricePoint]:
        days = 1 if hours <= 24 else math.ceil(hours / 24)
        data = await self._get_json(
            f"/coins/{self.map_to_provider_id(asset_id)}/market_chart",
            params={"vs_currency": "usd", "days": days},
        )

        cutoff = now_ms() - hours * 60 * 60 * 1000
        try:
            return [
                PricePoint(timestamp=int(t), price=float(price))
                for t, price in data["prices"]
                if t >= cutoff
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise self._malformed("market chart", e) from e
