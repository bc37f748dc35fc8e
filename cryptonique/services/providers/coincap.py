"""CoinCap v2 REST API binding."""

from cryptonique.models.market_data import MarketSnapshot, PricePoint
from cryptonique.services.providers.base import BaseHTTPProvider, now_ms


def history_interval(hours: int) -> str:
    if hours <= 1:
        return "m1"
    if hours <= 6:
        return "m5"
    return "h1"


class CoinCapProvider(BaseHTTPProvider):
    """Asset quotes and history keyed by CoinCap asset slugs."""

    name = "CoinCap"
    base_url_field = "coincap_base_url"
    probe_path = "/assets?limit=1"
    symbol_to_id = {
        "BTC": "bitcoin",
        "ETH": "ethereum",
        "BNB": "binance-coin",
        "SOL": "solana",
        "XRP": "xrp",
        "ADA": "cardano",
        "DOGE": "dogecoin",
        "AVAX": "avalanche",
        "DOT": "polkadot",
        "LINK": "chainlink",
    }

    async def fetch_markets(self, count: int) -> list[MarketSnapshot]:
        symbols = self.supported_symbols(count)
        if not symbols:
            return []

        payload = await self._get_json(
            "/assets", params={"ids": ",".join(self.map_to_provider_id(s) for s in symbols)}
        )

        try:
            assets = {a["id"]: a for a in payload["data"]}
            snapshots = []
            for symbol in symbols:
                asset = assets.get(self.map_to_provider_id(symbol))
                if asset is None or asset.get("priceUsd") is None:
                    continue
                snapshots.append(
                    self._snapshot(
                        symbol, asset["priceUsd"], asset.get("changePercent24Hr"), asset.get("name")
                    )
                )
            return snapshots
        except (KeyError, TypeError, ValueError) as e:
            raise self._malformed("assets", e) from e

    async def fetch_history(self, asset_id: str, hours: int) -> list[PricePoint]:
        end = now_ms()
        payload = await self._get_json(
            f"/assets/{self.map_to_provider_id(asset_id)}/history",
            params={
                "interval": history_interval(hours),
                "start": end - hours * 60 * 60 * 1000,
                "end": end,
            },
        )

        try:
            return [
                PricePoint(timestamp=int(p["time"]), price=float(p["priceUsd"]))
                for p in payload["data"]
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise self._malformed("history", e) from e
