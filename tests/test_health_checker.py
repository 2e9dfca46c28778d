# tests/test_health_checker.py

"""Tests for marketplace health probes and the VPN egress check."""

import unittest
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

from wholesale_finder.config.settings import Settings
from wholesale_finder.scrapers.fetch_client import FetchError, FetchResponse
from wholesale_finder.services.health_checker import (
    HealthChecker,
    HealthResult,
    check_vpn_status,
    probe_source,
)

FIXTURES_DIR = Path(__file__).parent / "fixtures"

DHGATE_SOURCE = next(s for s in Settings.AVAILABLE_SOURCES if s["id"] == "dhgate")

SESSION_PATH = "wholesale_finder.services.health_checker.curl_requests.AsyncSession"


def _fetcher(result: object) -> MagicMock:
    fetcher = MagicMock()
    if isinstance(result, Exception):
        fetcher.fetch = AsyncMock(side_effect=result)
    else:
        fetcher.fetch = AsyncMock(return_value=result)
    return fetcher


def _homepage(status: int = 200, name: str = "dhgate_search.html") -> FetchResponse:
    text = (FIXTURES_DIR / name).read_text(encoding="utf-8")
    return FetchResponse(url="https://www.dhgate.com/", status_code=status, text=text)


class TestProbeSource(unittest.IsolatedAsyncioTestCase):

    async def test_ok(self) -> None:
        fetcher = _fetcher(_homepage())
        result = await probe_source(DHGATE_SOURCE, fetcher)
        self.assertEqual(result.status, "ok")
        self.assertEqual(result.source_id, "dhgate")
        self.assertEqual(
            fetcher.fetch.await_args.args[0], "https://www.dhgate.com/"
        )

    async def test_blocked(self) -> None:
        result = await probe_source(
            DHGATE_SOURCE, _fetcher(_homepage(name="dhgate_block.html"))
        )
        self.assertEqual(result.status, "blocked")
        self.assertIn("access denied", result.message)

    async def test_http_error_is_down(self) -> None:
        result = await probe_source(DHGATE_SOURCE, _fetcher(_homepage(status=403)))
        self.assertEqual(result.status, "down")
        self.assertEqual(result.message, "HTTP 403")

    async def test_fetch_error_is_down(self) -> None:
        result = await probe_source(
            DHGATE_SOURCE, _fetcher(FetchError("https://www.dhgate.com/", "timeout"))
        )
        self.assertEqual(result.status, "down")
        self.assertEqual(result.message, "timeout")

    async def test_bad_scraper_path(self) -> None:
        source = {"id": "dhgate", "label": "x", "scraper": "no.such.Module"}
        result = await probe_source(source, _fetcher(_homepage()))
        self.assertEqual(result.status, "down")
        self.assertIn("Failed to load scraper", result.message)

    async def test_check_all_covers_every_source(self) -> None:
        checker = HealthChecker(fetcher=_fetcher(_homepage()))
        results = await checker.check_all()
        self.assertEqual(
            [r.source_id for r in results],
            [s["id"] for s in Settings.AVAILABLE_SOURCES],
        )


class TestHealthResult(unittest.TestCase):

    def test_to_dict(self) -> None:
        result = HealthResult("1688", "slow", 6123.7, "High latency")
        self.assertEqual(
            result.to_dict(),
            {"site": "1688", "status": "slow", "latencyMs": 6124, "message": "High latency"},
        )


class TestVPNStatus(unittest.IsolatedAsyncioTestCase):

    @staticmethod
    def _wire(mock_session_cls: MagicMock, payload: dict[str, str]) -> None:
        resp = MagicMock()
        resp.json.return_value = payload
        session = MagicMock()
        session.get = AsyncMock(return_value=resp)
        mock_session_cls.return_value.__aenter__.return_value = session

    @patch(SESSION_PATH)
    async def test_foreign_egress_is_vpn(self, mock_session_cls: MagicMock) -> None:
        self._wire(
            mock_session_cls,
            {"country_code": "CN", "country_name": "China", "ip": "36.1.2.3"},
        )
        status = await check_vpn_status()
        self.assertTrue(status.is_vpn)
        self.assertEqual(status.to_dict(), {"isVPN": True, "country": "China", "ip": "36.1.2.3"})

    @patch(SESSION_PATH)
    async def test_home_egress_is_not_vpn(self, mock_session_cls: MagicMock) -> None:
        self._wire(
            mock_session_cls,
            {"country_code": "KR", "country_name": "South Korea", "ip": "1.2.3.4"},
        )
        self.assertFalse((await check_vpn_status()).is_vpn)

    @patch(SESSION_PATH)
    async def test_lookup_failure_reports_unknown(
        self, mock_session_cls: MagicMock
    ) -> None:
        mock_session_cls.return_value.__aenter__.side_effect = ConnectionError("offline")
        status = await check_vpn_status()
        self.assertFalse(status.is_vpn)
        self.assertEqual(status.country, "Unknown")


if __name__ == "__main__":
    unittest.main()
