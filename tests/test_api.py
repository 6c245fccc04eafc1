"""Tests for the FastAPI market price endpoints."""

import sys
import pytest
from pathlib import Path
from unittest.mock import MagicMock, patch

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


def record(market, state, commodity="Rice", price="2400"):
    return {
        "state": state, "district": market, "market": market,
        "commodity": commodity, "variety": "Common", "grade": "FAQ",
        "min_price": price, "max_price": price, "modal_price": price,
        "arrival_date": "18/10/2026",
    }


class FakeUpstream:
    """Records every call; answers by which filters are present."""

    def __init__(self):
        self.exact = []
        self.state = []
        self.national = []
        self.calls = []

    def __call__(self, filters, limit):
        from src.market.client import FetchResult

        filters = {k: v for k, v in filters.items() if v}
        self.calls.append((filters, limit))
        if "market" in filters:
            records = self.exact
        elif "state" in filters and "commodity" in filters:
            records = self.state
        elif "state" in filters:
            records = self.state + self.national
        else:
            records = self.national
        return FetchResult(records=list(records), total=len(records), success=True)


@pytest.fixture
def upstream():
    return FakeUpstream()


def install_services(monkeypatch, app_module, config, fetch):
    from src.market.cache import ResponseCache
    from src.market.commodities import CommoditySearch
    from src.market.directory import MarketDirectory
    from src.market.service import MarketPriceService

    monkeypatch.setattr(app_module, "config", config)
    monkeypatch.setattr(
        app_module, "price_service",
        MarketPriceService(config, cache=ResponseCache(), fetch=fetch),
    )
    monkeypatch.setattr(app_module, "market_directory", MarketDirectory(fetch))
    monkeypatch.setattr(app_module, "commodity_search", CommoditySearch(fetch))


@pytest.fixture
def client(upstream, monkeypatch):
    """Create test client with a fake upstream and a fresh cache."""
    from src.market.config import MarketConfig
    import src.api.app as app_module

    install_services(monkeypatch, app_module, MarketConfig(api_key="test-key", environment="development"), upstream)

    from fastapi.testclient import TestClient
    return TestClient(app_module.app)


class TestMarketEndpoint:

    def test_exact_market_response_schema(self, client, upstream):
        upstream.exact = [record("Azadpur", "NCT of Delhi", commodity="Onion")]
        response = client.get(
            "/api/market",
            params={"commodity": "Onion", "state": "NCT of Delhi", "market": "Azadpur"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["scope"] == "exact_market"
        assert data["cached"] is False
        assert isinstance(data["timestamp"], int)
        assert data["query"] == {"commodity": "Onion", "state": "NCT of Delhi", "market": "Azadpur"}
        assert data["totalRecords"] == 1
        assert len(upstream.calls) == 1

        quote = data["data"][0]
        assert set(quote) == {
            "S.No", "City", "State", "District", "Market", "Commodity", "Variety",
            "Grade", "Min Prize", "Max Prize", "Model Prize", "Date", "Source",
        }
        assert quote["S.No"] == "1"
        assert quote["Model Prize"] == "2400"

    def test_query_echo_uses_null_for_missing_hints(self, client, upstream):
        response = client.get("/api/market", params={"commodity": "Rice"})

        assert response.json()["query"] == {"commodity": "Rice", "state": None, "market": None}

    @pytest.mark.parametrize("params", [
        {},
        {"state": "Delhi"},
        {"state": "Delhi", "market": "Azadpur"},
        {"commodity": "   "},
    ])
    def test_missing_commodity_returns_400(self, client, upstream, params):
        response = client.get("/api/market", params=params)

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": "Missing required parameter: commodity",
        }
        assert upstream.calls == []

    def test_no_data_anywhere_is_still_success(self, client, upstream):
        response = client.get(
            "/api/market", params={"commodity": "Saffron", "state": "Kerala", "market": "Kochi"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["scope"] == "none"
        assert data["data"] == []
        assert data["totalRecords"] == 0
        assert len(upstream.calls) == 3

    def test_state_level_with_market_hint(self, client, upstream):
        upstream.state = [
            record("Bangalore", "Karnataka"),
            record("Mysore (Bandipalya)", "Karnataka"),
            record("Hubli", "Karnataka"),
        ]
        response = client.get(
            "/api/market", params={"commodity": "Rice", "state": "Karnataka", "market": "mysore"},
        )

        data = response.json()
        assert data["scope"] == "state_level"
        assert [q["Market"] for q in data["data"]] == ["Mysore (Bandipalya)"]

    def test_national_level_orders_state_matches_first(self, client, upstream):
        upstream.national = [
            record("Ludhiana", "Punjab"),
            record("Lucknow", "Uttar Pradesh"),
            record("Karnal", "Haryana"),
            record("Agra", "Uttar Pradesh"),
        ]
        response = client.get(
            "/api/market", params={"commodity": "Rice", "state": "uttar"},
        )

        data = response.json()
        assert data["scope"] == "national_level"
        assert [q["Market"] for q in data["data"]] == ["Lucknow", "Agra", "Ludhiana", "Karnal"]
        assert [q["S.No"] for q in data["data"]] == ["1", "2", "3", "4"]

    def test_second_identical_query_is_cached(self, client, upstream):
        upstream.national = [record("Lucknow", "Uttar Pradesh")]
        params = {"commodity": "Rice", "state": "Delhi"}

        first = client.get("/api/market", params=params).json()
        calls_after_first = len(upstream.calls)
        second = client.get("/api/market", params=params).json()

        assert first["cached"] is False
        assert second["cached"] is True
        assert len(upstream.calls) == calls_after_first
        assert second["data"] == first["data"]
        assert second["scope"] == first["scope"]
        assert second["timestamp"] == first["timestamp"]
        assert set(second) == set(first)

    def test_clear_cache_forces_fresh_fetch(self, client, upstream):
        upstream.national = [record("Lucknow", "Uttar Pradesh")]
        params = {"commodity": "Rice"}

        client.get("/api/market", params=params)
        client.get("/api/market", params=params)
        assert len(upstream.calls) == 1

        cleared = client.get("/api/market", params={"clearCache": "true"})
        assert cleared.status_code == 200
        assert cleared.json() == {"success": True, "message": "Cache cleared"}
        assert len(upstream.calls) == 1

        again = client.get("/api/market", params=params).json()
        assert again["cached"] is False
        assert len(upstream.calls) == 2

    def test_clear_cache_other_values_are_ignored(self, client, upstream):
        response = client.get("/api/market", params={"commodity": "Rice", "clearCache": "yes"})

        assert response.json()["scope"] == "none"

    def test_options_returns_empty_200(self, client):
        response = client.options("/api/market")

        assert response.status_code == 200
        assert response.content == b""

    def test_browser_preflight_returns_empty_200(self, client, upstream):
        response = client.options(
            "/api/market",
            headers={
                "Origin": "https://app.example.org",
                "Access-Control-Request-Method": "GET",
            },
        )

        assert response.status_code == 200
        assert response.content == b""
        assert response.headers["access-control-allow-origin"] == "*"
        assert upstream.calls == []

    def test_preflight_with_extra_request_headers_is_allowed(self, client):
        response = client.options(
            "/api/market",
            headers={
                "Origin": "https://app.example.org",
                "Access-Control-Request-Method": "GET",
                "Access-Control-Request-Headers": "authorization",
            },
        )

        assert response.status_code == 200
        assert response.content == b""
        assert "authorization" in response.headers["access-control-allow-headers"].lower()

    def test_cors_open_to_any_origin(self, client):
        response = client.get(
            "/api/market", params={"commodity": "Rice"},
            headers={"Origin": "https://app.example.org"},
        )

        assert response.headers["access-control-allow-origin"] == "*"


class TestInternalErrors:

    def _broken_service(self):
        service = MagicMock()
        service.lookup.side_effect = RuntimeError("cache exploded")
        return service

    def test_internal_fault_returns_500_with_details_outside_production(self, client, monkeypatch):
        import src.api.app as app_module
        monkeypatch.setattr(app_module, "price_service", self._broken_service())

        response = client.get("/api/market", params={"commodity": "Rice"})

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert body["error"] == app_module.SAFE_ERROR_MESSAGE
        assert body["details"] == "cache exploded"

    def test_internal_fault_hides_details_in_production(self, client, monkeypatch):
        import src.api.app as app_module
        from src.market.config import MarketConfig

        monkeypatch.setattr(
            app_module, "config", MarketConfig(api_key="test-key", environment="production"),
        )
        monkeypatch.setattr(app_module, "price_service", self._broken_service())

        response = client.get("/api/market", params={"commodity": "Rice"})

        assert response.status_code == 500
        assert "details" not in response.json()


class TestRiceInDelhi:
    """End-to-end through the real client, with requests.get mocked."""

    NATIONAL = [
        record("Lucknow", "Uttar Pradesh"),
        record("Bangalore", "Karnataka"),
        record("Agra", "Uttar Pradesh"),
    ]

    def _fake_get(self, url, params=None, headers=None, timeout=None):
        resp = MagicMock()
        resp.status_code = 200
        resp.raise_for_status = MagicMock()
        if "filters[state]" in params:
            resp.json.return_value = {"status": "ok", "total": 0, "records": []}
        else:
            resp.json.return_value = {
                "status": "ok", "total": 1234, "records": list(self.NATIONAL),
            }
        return resp

    def test_falls_back_to_national_without_reordering(self, monkeypatch):
        from functools import partial
        from fastapi.testclient import TestClient
        from src.market.client import fetch_records
        from src.market.config import MarketConfig
        import src.api.app as app_module

        config = MarketConfig(api_key="test-key", environment="test")
        install_services(monkeypatch, app_module, config, partial(fetch_records, config=config))
        test_client = TestClient(app_module.app)

        with patch("src.market.client.requests.get", side_effect=self._fake_get) as mock_get:
            response = test_client.get(
                "/api/market", params={"commodity": "Rice", "state": "Delhi", "market": "Delhi"},
            )

        assert response.status_code == 200
        data = response.json()
        assert data["scope"] == "national_level"
        assert len(data["data"]) == 3
        assert [q["Market"] for q in data["data"]] == ["Lucknow", "Bangalore", "Agra"]
        assert [q["State"] for q in data["data"]] == ["Uttar Pradesh", "Karnataka", "Uttar Pradesh"]

        assert mock_get.call_count == 3
        sent = [call.kwargs["params"] for call in mock_get.call_args_list]
        assert sent[0]["filters[market]"] == "Delhi" and sent[0]["limit"] == "50"
        assert "filters[market]" not in sent[1] and sent[1]["limit"] == "200"
        assert "filters[state]" not in sent[2] and sent[2]["limit"] == "300"

    def test_upstream_outage_is_not_an_error(self, monkeypatch):
        from functools import partial
        from fastapi.testclient import TestClient
        import requests as req_module
        from src.market.client import fetch_records
        from src.market.config import MarketConfig
        import src.api.app as app_module

        config = MarketConfig(api_key="test-key", environment="test")
        install_services(monkeypatch, app_module, config, partial(fetch_records, config=config))
        test_client = TestClient(app_module.app)

        with patch("src.market.client.requests.get") as mock_get:
            mock_get.side_effect = req_module.exceptions.ConnectionError("down")
            response = test_client.get("/api/market", params={"commodity": "Rice", "state": "Delhi"})

        assert response.status_code == 200
        assert response.json()["scope"] == "none"
        assert mock_get.call_count == 2


class TestMarketsEndpoint:

    def test_missing_state_returns_400(self, client):
        response = client.get("/api/markets")

        assert response.status_code == 400
        assert response.json()["error"] == "Missing required parameter: state"

    def test_lists_markets_for_state(self, client, upstream):
        upstream.state = [record("Mysore", "Karnataka"), record("Hubli", "Karnataka")]
        first = client.get("/api/markets", params={"state": "Karnataka"}).json()
        second = client.get("/api/markets", params={"state": "Karnataka"}).json()

        assert first["success"] is True
        assert first["cached"] is False
        assert first["data"] == {
            "state": "Karnataka",
            "totalRecords": 2,
            "uniqueMarkets": ["Hubli", "Mysore"],
            "uniqueDistricts": ["Hubli", "Mysore"],
        }
        assert second["cached"] is True

    def test_upstream_failure_returns_502(self, client, monkeypatch):
        from src.market.client import FetchResult
        from src.market.directory import MarketDirectory
        import src.api.app as app_module

        monkeypatch.setattr(app_module, "market_directory", MarketDirectory(
            MagicMock(return_value=FetchResult(success=False, error="timeout")),
        ))
        response = client.get("/api/markets", params={"state": "Goa"})

        assert response.status_code == 502
        assert response.json()["error"] == "Failed to fetch markets"


class TestCommoditiesEndpoint:

    def test_search(self, client, upstream):
        upstream.national = [
            record("A", "Punjab", commodity="Potato"),
            record("B", "Punjab", commodity="Tomato"),
        ]
        response = client.get("/api/commodities", params={"search": "aloo"})

        assert response.status_code == 200
        assert response.json() == {"success": True, "data": ["Potato"]}

    def test_empty_search(self, client):
        response = client.get("/api/commodities")

        assert response.json() == {"success": True, "data": []}


class TestOperationalEndpoints:

    def test_health(self, client):
        client.get("/api/market", params={"commodity": "Rice"})
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["api_key_configured"] is True
        assert data["cached_entries"] == 1

    def test_metrics(self, client):
        client.get("/api/market", params={"commodity": "Rice"})
        response = client.get("/metrics")

        assert response.status_code == 200
        assert "market_price_requests_total" in response.text
