# tests/test_api.py

"""HTTP API tests with FastAPI's TestClient and a network-free orchestrator."""

import unittest
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

from wholesale_finder.api.app import ANALYZE_FAILED, create_app
from wholesale_finder.models.exchange_rate import ExchangeRate
from wholesale_finder.scrapers.fetch_client import FetchError, FetchResponse
from wholesale_finder.services.ai_assistant import AIAssistant
from wholesale_finder.services.currency import (
    CurrencyConverter,
    ExchangeRateCache,
)
from wholesale_finder.services.health_checker import VPNStatus
from wholesale_finder.services.search_orchestrator import SearchOrchestrator

FIXTURES_DIR = Path(__file__).parent / "fixtures"

PRODUCT_URL = "https://www.dhgate.com/product/wireless-earphones-tws/880001.html"


def _unreachable(url: str, **kwargs: object) -> FetchResponse:
    raise FetchError(url, "connection timed out")


def _product_page_only(url: str, **kwargs: object) -> FetchResponse:
    """Serve the DHgate product fixture; every other URL is unreachable."""
    if url == PRODUCT_URL:
        text = (FIXTURES_DIR / "dhgate_product.html").read_text(encoding="utf-8")
        return FetchResponse(url=url, status_code=200, text=text)
    raise FetchError(url, "connection timed out")


def _build_client(
    fetch: object = _unreachable,
    assistant: AIAssistant | None = None,
) -> tuple[TestClient, MagicMock]:
    fetcher = MagicMock()
    fetcher.fetch = AsyncMock(side_effect=fetch)
    provider = MagicMock()
    provider.fetch = AsyncMock(
        return_value=ExchangeRate(1300.0, 180.0, "2026-10-19T09:00:00")
    )
    orchestrator = SearchOrchestrator(
        fetcher=fetcher,
        converter=CurrencyConverter(ExchangeRateCache(provider=provider)),
        assistant=assistant or AIAssistant(api_key=""),
        vpn_probe=AsyncMock(
            return_value=VPNStatus(is_vpn=False, country="South Korea", ip="1.2.3.4")
        ),
    )
    return TestClient(create_app(orchestrator)), fetcher


class TestSearchEndpoint(unittest.TestCase):

    def test_blank_keyword_is_400_without_network(self) -> None:
        client, fetcher = _build_client()
        resp = client.post("/search", json={"keyword": "   "})
        self.assertEqual(resp.status_code, 400)
        body = resp.json()
        self.assertFalse(body["success"])
        self.assertEqual(body["error"], "검색 키워드를 입력해주세요.")
        fetcher.fetch.assert_not_called()

    def test_missing_keyword_is_400(self) -> None:
        client, _ = _build_client()
        resp = client.post("/search", json={"useVPN": True})
        self.assertEqual(resp.status_code, 400)
        self.assertFalse(resp.json()["success"])

    def test_search_returns_every_site(self) -> None:
        """Unreachable marketplaces still produce fallback listings."""
        client, _ = _build_client()
        resp = client.post("/search", json={"keyword": "무선 이어폰", "useVPN": False})

        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertTrue(body["success"])
        self.assertFalse(body["vpnMode"])
        self.assertEqual(set(body["data"]), {"alibaba", "dhgate", "1688"})
        for site, result in body["data"].items():
            self.assertEqual(result["site"], site)
            self.assertGreater(result["totalResults"], 0)
            self.assertEqual(result["totalResults"], len(result["products"]))
            self.assertGreaterEqual(result["searchTimeMs"], 0)
            self.assertEqual(result["provenance"], "fallback")
            for product in result["products"]:
                self.assertIsInstance(product["priceLocal"], int)
                self.assertGreaterEqual(product["priceLocal"], 0)

    def test_search_queries_translated(self) -> None:
        client, fetcher = _build_client()
        client.post("/search", json={"keyword": "무선 이어폰"})
        urls = [c.args[0] for c in fetcher.fetch.call_args_list]
        self.assertTrue(any("wireless%20earphones" in u for u in urls))
        self.assertTrue(any("%E6%97%A0%E7%BA%BF" in u for u in urls))

    def test_get_is_405(self) -> None:
        client, _ = _build_client()
        resp = client.get("/search")
        self.assertEqual(resp.status_code, 405)
        self.assertEqual(
            resp.json(), {"success": False, "error": "Method not allowed"}
        )

    def test_malformed_json_is_400(self) -> None:
        client, _ = _build_client()
        resp = client.post(
            "/search",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertFalse(resp.json()["success"])


class TestAnalyzeEndpoint(unittest.TestCase):

    def test_unreachable_product_is_500(self) -> None:
        client, _ = _build_client()
        resp = client.post("/analyze-url", json={"url": PRODUCT_URL})
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"success": False, "error": ANALYZE_FAILED})

    def test_unsupported_site_is_400(self) -> None:
        client, fetcher = _build_client()
        resp = client.post("/analyze-url", json={"url": "https://www.amazon.com/dp/B0"})
        self.assertEqual(resp.status_code, 400)
        self.assertIn("지원하지 않는 사이트", resp.json()["error"])
        fetcher.fetch.assert_not_called()

    def test_analysis_with_cheaper_alternatives(self) -> None:
        client, _ = _build_client(fetch=_product_page_only)
        resp = client.post("/analyze-url", json={"url": PRODUCT_URL})

        self.assertEqual(resp.status_code, 200)
        data = resp.json()["data"]
        product = data["product"]
        self.assertEqual(product["site"], "dhgate")
        self.assertEqual(product["priceLocal"], 33150)
        self.assertEqual(product["summary"], "상품 요약을 생성할 수 없습니다.")

        alternatives = data["alternatives"]
        self.assertEqual(len(alternatives), 3)
        prices = [a["priceLocal"] for a in alternatives]
        self.assertEqual(prices, sorted(prices))
        for alt in alternatives:
            self.assertNotEqual(alt["site"], "dhgate")
            self.assertLess(alt["priceLocal"], product["priceLocal"])
            self.assertEqual(
                alt["savingsLocal"], product["priceLocal"] - alt["priceLocal"]
            )
            self.assertIn("comparisonNote", alt)


class TestTranslateEndpoint(unittest.TestCase):

    def test_blank_text_is_400(self) -> None:
        client, _ = _build_client()
        resp = client.post("/translate", json={"text": " ", "targetLanguage": "en"})
        self.assertEqual(resp.status_code, 400)

    def test_unknown_language_is_400(self) -> None:
        client, _ = _build_client()
        resp = client.post("/translate", json={"text": "노트북", "targetLanguage": "fr"})
        self.assertEqual(resp.status_code, 400)

    def test_translated_text(self) -> None:
        completion = MagicMock()
        completion.choices = [MagicMock(message=MagicMock(content="laptop"))]
        ai_client = MagicMock()
        ai_client.chat.completions.create = AsyncMock(return_value=completion)
        client, _ = _build_client(assistant=AIAssistant(api_key="k", client=ai_client))

        resp = client.post("/translate", json={"text": "노트북", "targetLanguage": "en"})

        self.assertEqual(resp.json(), {"success": True, "translatedText": "laptop"})

    def test_service_unavailable_returns_input(self) -> None:
        client, _ = _build_client()
        resp = client.post("/translate", json={"text": "노트북", "targetLanguage": "zh"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["translatedText"], "노트북")


class TestExchangeRateEndpoint(unittest.TestCase):

    def test_rates(self) -> None:
        client, _ = _build_client()
        resp = client.get("/exchange-rate")
        self.assertEqual(resp.status_code, 200)
        data = resp.json()["data"]
        self.assertEqual(data["USD_KRW"], 1300.0)
        self.assertEqual(data["CNY_KRW"], 180.0)
        self.assertEqual(data["lastUpdated"], "2026-10-19T09:00:00")
        self.assertEqual(
            data["formatted"],
            "1 USD = 1,300.00원, 1 CNY = 180.00원 (2026-10-19 09:00 기준)",
        )


class TestHealthEndpoint(unittest.TestCase):

    def test_unreachable_sites_reported_down(self) -> None:
        client, _ = _build_client()
        resp = client.get("/health")
        self.assertEqual(resp.status_code, 200)
        statuses = {r["site"]: r["status"] for r in resp.json()["data"]}
        self.assertEqual(set(statuses.values()), {"down"})
        self.assertIn("aliexpress", statuses)


if __name__ == "__main__":
    unittest.main()
