"""Tests for the HTTP API endpoints."""

from cryptonique.utils.event_store import MARKETS_SERVED, PROVIDER_FETCH
from cryptonique.utils.trace_context import TRACE_HEADER


class TestHealthEndpoint:
    def test_health_check(self, test_client):
        response = test_client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_trace_id_is_generated(self, test_client):
        response = test_client.get("/health")

        assert response.headers[TRACE_HEADER]

    def test_incoming_trace_id_is_echoed(self, test_client):
        response = test_client.get("/health", headers={TRACE_HEADER: "trace-abc"})

        assert response.headers[TRACE_HEADER] == "trace-abc"


class TestMarketsEndpoint:
    """Tests for GET /api/markets."""

    def test_markets_response_shape(self, test_client):
        response = test_client.get("/api/markets", params={"n": 3, "h": "1h"})

        assert response.status_code == 200
        data = response.json()
        assert data["vs"] == "usd"
        assert data["horizon"] == "1h"
        assert data["interval"] == "1m"
        assert data["predicted_steps"] == 6
        assert data["provider"] == "Binance"
        assert data["degraded"] is False
        assert data["failures"] == []
        assert "debug" not in data

        btc = data["items"][0]
        assert {k: btc[k] for k in ("id", "symbol", "price")} == {
            "id": "btc",
            "symbol": "BTC",
            "price": 43000.0,
        }
        assert btc["history_provider"] == "Binance"
        observed = [p for p in btc["series"] if "predicted" not in p]
        predicted = [p for p in btc["series"] if p.get("predicted") is True]
        assert len(observed) == 10
        assert len(predicted) == 6
        assert set(observed[0]) == {"timestamp", "price"}

    def test_defaults(self, test_client):
        response = test_client.get("/api/markets")

        assert response.status_code == 200
        data = response.json()
        assert data["horizon"] == "1h"
        # The stub provider only lists three assets
        assert len(data["items"]) == 3

    def test_requested_count_limits_items(self, test_client):
        response = test_client.get("/api/markets", params={"n": 1})

        assert [item["symbol"] for item in response.json()["items"]] == ["BTC"]

    def test_invalid_horizon(self, test_client):
        response = test_client.get("/api/markets", params={"h": "2h"})

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_count_out_of_range(self, test_client):
        for n in (0, 11):
            response = test_client.get("/api/markets", params={"n": n})

            assert response.status_code == 400
            assert response.json()["error"] == "VALIDATION_ERROR"

    def test_unsupported_currency(self, test_client):
        response = test_client.get("/api/markets", params={"vs": "eur"})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "UNSUPPORTED_CURRENCY"
        assert body["details"] == {"vs": "eur", "supported": ["usd"]}

    def test_debug_block(self, test_client):
        response = test_client.get("/api/markets", params={"n": 2, "debug": "true"})

        assert response.status_code == 200
        debug = response.json()["debug"]
        assert debug["provider"] == "Binance"
        assert debug["preferred_provider"] == "Binance"
        assert debug["requested_count"] == 2
        assert debug["processed_count"] == 2
        assert debug["failed_count"] == 0
        assert [(s["name"], s["available"]) for s in debug["provider_status"]] == [
            ("Binance", True),
            ("CoinGecko", False),
        ]

    def test_events_share_request_trace(self, test_client, event_store):
        response = test_client.get("/api/markets", params={"n": 2}, headers={TRACE_HEADER: "t-1"})

        assert response.headers[TRACE_HEADER] == "t-1"
        events = event_store.get_events_by_trace("t-1")
        assert {e.event_type for e in events} == {PROVIDER_FETCH, MARKETS_SERVED}


class TestProviderHealthEndpoint:
    """Tests for GET /api/health/providers."""

    def test_partial_availability_is_degraded(self, test_client):
        response = test_client.get("/api/health/providers")

        assert response.status_code == 200
        data = response.json()
        assert data["overall_status"] == "degraded"
        assert data["available_count"] == 1
        assert [p["name"] for p in data["providers"]] == ["Binance", "CoinGecko"]

    def test_all_available_is_healthy(self, test_client, services):
        for provider in services.resolver.providers:
            provider.available = True

        data = test_client.get("/api/health/providers").json()

        assert data["overall_status"] == "healthy"

    def test_none_available_is_unhealthy(self, test_client, services):
        services.resolver.providers[0].probe_error = RuntimeError("probe crashed")

        data = test_client.get("/api/health/providers").json()

        assert data["overall_status"] == "unhealthy"
        assert data["available_count"] == 0


class TestDebugEndpoints:
    """Tests for the debug metrics and events endpoints."""

    def test_metrics_after_request(self, test_client):
        test_client.get("/api/markets", params={"n": 3})

        data = test_client.get("/api/debug/metrics").json()

        # One markets fetch plus one history fetch per asset
        assert data["total_fetch_attempts"] == 4
        assert data["successful_fetches"] == 4
        assert data["success_rate"] == 100.0
        assert data["markets_served"] == 1
        assert data["providers"]["Binance"]["attempts"] == 4

    def test_events_filtered_by_type(self, test_client):
        test_client.get("/api/markets", params={"n": 2})

        data = test_client.get("/api/debug/events", params={"event_type": MARKETS_SERVED}).json()

        assert data["count"] == 1
        assert data["events"][0]["event_type"] == MARKETS_SERVED

    def test_events_limit(self, test_client):
        test_client.get("/api/markets", params={"n": 3})

        data = test_client.get("/api/debug/events", params={"limit": 2}).json()

        assert data["count"] == 2

    def test_events_limit_validation(self, test_client):
        response = test_client.get("/api/debug/events", params={"limit": 0})

        assert response.status_code == 400


class TestErrorResponses:
    def test_unknown_route(self, test_client):
        response = test_client.get("/api/unknown")

        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"
