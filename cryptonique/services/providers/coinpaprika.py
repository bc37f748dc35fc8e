"""CoinPaprika v1 REST API binding."""

from datetime import UTC, datetime

from cryptonique.models.market_data import MarketSnapshot, PricePoint
from cryptonique.services.providers.base import BaseHTTPProvider, ProviderError, now_ms


def _parse_timestamp(value: str) -> int:
    """ISO8601 timestamp (e.g. 2024-01-01T00:05:00Z) to epoch milliseconds."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return int(parsed.timestamp() * 1000)


class CoinPaprikaProvider(BaseHTTPProvider):
    """Ticker quotes and historical ticks keyed by CoinPaprika coin ids."""

    name = "CoinPaprika"
    base_url_field = "coinpaprika_base_url"
    probe_path = "/global"
    symbol_to_id = {
        "BTC": "btc-bitcoin",
        "ETH": "eth-ethereum",
        "BNB": "bnb-binance-coin",
        "SOL": "sol-solana",
        "XRP": "xrp-xrp",
        "ADA": "ada-cardano",
        "DOGE": "doge-dogecoin",
        "AVAX": "avax-avalanche",
        "DOT": "dot-polkadot",
        "LINK": "link-chainlink",
    }

    def map_to_provider_id(self, symbol: str) -> str:
        try:
            return self.symbol_to_id[symbol.upper()]
        except KeyError:
            raise ProviderError(self.name, f"Unsupported symbol {symbol}") from None

    async def fetch_markets(self, count: int) -> list[MarketSnapshot]:
        symbols = self.supported_symbols(count)
        if not symbols:
            return []

        # /tickers returns every listed coin; keep the roster only
        data = await self._get_json("/tickers", params={"quotes": "USD"})

        try:
            tickers = {t["id"]: t for t in data}
            snapshots = []
            for symbol in symbols:
                ticker = tickers.get(self.map_to_provider_id(symbol))
                if ticker is None:
                    continue
                usd = ticker["quotes"]["USD"]
                snapshots.append(
                    self._snapshot(symbol, usd["price"], usd.get("percent_change_24h"), ticker.get("name"))
                )
            return snapshots
        except (KeyError, TypeError, ValueError) as e:
            raise self._malformed("tickers", e) from e

    async def fetch_history(self, asset_id: str, hours: int) -> list[PricePoint]:
        start = datetime.fromtimestamp((now_ms() - hours * 60 * 60 * 1000) / 1000, tz=UTC)
        data = await self._get_json(
            f"/tickers/{self.map_to_provider_id(asset_id)}/historical",
            params={
                "start": start.strftime("%Y-%m-%dT%H:%M:%SZ"),
                "interval": "5m" if hours <= 6 else "1h",
            },
        )

        try:
            return [
                PricePoint(timestamp=_parse_timestamp(p["timestamp"]), price=float(p["price"]))
                for p in data
            ]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise self._malformed("historical ticks", e) from e
