"""Binance public REST API binding."""

import json

from cryptonique.models.market_data import MarketSnapshot, PricePoint
from cryptonique.services.providers.base import ROSTER_SYMBOLS, BaseHTTPProvider

QUOTE_ASSET = "USDT"


def kline_window(hours: int) -> tuple[str, int]:
    """Kline interval and candle count covering the requested hours."""
    if hours <= 1:
        return "1m", 60
    if hours <= 6:
        return "5m", 72
    return "1h", 24


class BinanceProvider(BaseHTTPProvider):
    """Spot tickers and klines quoted in USDT."""

    name = "Binance"
    base_url_field = "binance_base_url"
    probe_path = "/ping"
    symbol_to_id = {symbol: f"{symbol}{QUOTE_ASSET}" for symbol in ROSTER_SYMBOLS}

    def map_to_provider_id(self, symbol: str) -> str:
        return self.symbol_to_id.get(symbol.upper(), f"{symbol.upper()}{QUOTE_ASSET}")

    def symbol_from_provider_id(self, provider_id: str) -> str | None:
        if not provider_id.endswith(QUOTE_ASSET):
            return None
        return provider_id[: -len(QUOTE_ASSET)]

    async def fetch_markets(self, count: int) -> list[MarketSnapshot]:
        symbols = self.supported_symbols(count)
        if not symbols:
            return []

        pairs = [self.map_to_provider_id(s) for s in symbols]
        data = await self._get_json(
            "/ticker/24hr", params={"symbols": json.dumps(pairs, separators=(",", ":"))}
        )

        try:
            tickers = {self.symbol_from_provider_id(t["symbol"]): t for t in data}
            return [
                self._snapshot(s, tickers[s]["lastPrice"], tickers[s]["priceChangePercent"])
                for s in symbols
                if s in tickers
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise self._malformed("ticker", e) from e

    async def fetch_history(self, asset_id: str, hours: int) -> list[PricePoint]:
        interval, limit = kline_window(hours)
        data = await self._get_json(
            "/klines",
            params={"symbol": self.map_to_provider_id(asset_id), "interval": interval, "limit": limit},
        )

        try:
            # kline rows: [open time, open, high, low, close, volume, close time, ...]
            return [PricePoint(timestamp=int(k[0]), price=float(k[4])) for k in data]
        except (IndexError, TypeError, ValueError) as e:
            raise self._malformed("klines", e) from e
