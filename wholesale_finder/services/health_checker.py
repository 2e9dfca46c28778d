# wholesale_finder/services/health_checker.py

"""Marketplace connectivity health checker and VPN egress probe."""

import asyncio
import importlib
import logging
import time
from dataclasses import dataclass
from typing import Any

from bs4 import BeautifulSoup
from curl_cffi import requests as curl_requests

from wholesale_finder.config.settings import Settings
from wholesale_finder.scrapers.block_detector import page_title_and_body
from wholesale_finder.scrapers.fetch_client import FetchError, PageFetcher

logger = logging.getLogger("wholesale_finder.health")

_HEALTH_TIMEOUT = 10  # seconds per source
_SLOW_MS = 5000


@dataclass
class HealthResult:
    """Result of a single source health check."""

    source_id: str
    status: str  # "ok", "slow", "blocked", "down"
    latency_ms: float
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "site": self.source_id,
            "status": self.status,
            "latencyMs": round(self.latency_ms),
            "message": self.message,
        }


async def probe_source(
    source: dict[str, str],
    fetcher: PageFetcher | None = None,
) -> HealthResult:
    """Probe one marketplace homepage for reachability and blocking."""
    source_id = source["id"]
    dotted_path = source["scraper"]
    fetcher = fetcher or PageFetcher()

    try:
        module_path, class_name = dotted_path.rsplit(".", 1)
        module = importlib.import_module(module_path)
        scraper_cls = getattr(module, class_name)
        scraper = scraper_cls(fetcher=fetcher)
    except Exception as exc:
        return HealthResult(
            source_id=source_id,
            status="down",
            latency_ms=0.0,
            message=f"Failed to load scraper: {exc}",
        )

    start = time.monotonic()
    try:
        resp = await fetcher.fetch(
            scraper.descriptor.homepage,
            accept_language=scraper.descriptor.accept_language,
            timeout=_HEALTH_TIMEOUT,
        )
    except FetchError as exc:
        return HealthResult(
            source_id=source_id,
            status="down",
            latency_ms=(time.monotonic() - start) * 1000,
            message=exc.reason[:80],
        )
    elapsed_ms = (time.monotonic() - start) * 1000

    if resp.status_code >= 400:
        return HealthResult(
            source_id=source_id,
            status="down",
            latency_ms=elapsed_ms,
            message=f"HTTP {resp.status_code}",
        )

    title, body = page_title_and_body(BeautifulSoup(resp.text, "lxml"))
    keyword = scraper.block_detector.matched_keyword(title, body)
    if keyword:
        return HealthResult(
            source_id=source_id,
            status="blocked",
            latency_ms=elapsed_ms,
            message=f"Block keyword '{keyword}'",
        )

    if elapsed_ms > _SLOW_MS:
        return HealthResult(
            source_id=source_id,
            status="slow",
            latency_ms=elapsed_ms,
            message="High latency",
        )

    return HealthResult(
        source_id=source_id,
        status="ok",
        latency_ms=elapsed_ms,
        message="",
    )


class HealthChecker:
    """Runs concurrent health probes against all sources."""

    def __init__(self, fetcher: PageFetcher | None = None) -> None:
        self.sources = Settings.AVAILABLE_SOURCES
        self.fetcher = fetcher or PageFetcher()

    async def check_all(self) -> list[HealthResult]:
        """Probe every registered source concurrently."""
        results: list[HealthResult] = list(
            await asyncio.gather(
                *(probe_source(src, self.fetcher) for src in self.sources)
            )
        )
        for r in results:
            logger.info(
                "Health check %s: %s (%.0fms) %s",
                r.source_id,
                r.status,
                r.latency_ms,
                r.message,
            )
        return results


@dataclass(frozen=True)
class VPNStatus:
    """Egress location as seen by an IP geolocation service."""

    is_vpn: bool
    country: str
    ip: str

    def to_dict(self) -> dict[str, Any]:
        return {"isVPN": self.is_vpn, "country": self.country, "ip": self.ip}


async def check_vpn_status(url: str | None = None) -> VPNStatus:
    """Report whether traffic leaves from outside ``Settings.HOME_COUNTRY``.

    Lookup failures are reported as "no VPN" so searches keep the
    normal request profile.
    """
    target = url or Settings.VPN_CHECK_URL
    try:
        async with curl_requests.AsyncSession(
            impersonate=Settings.IMPERSONATE_BROWSER
        ) as session:
            resp = await session.get(target, timeout=_HEALTH_TIMEOUT)
        data: dict[str, Any] = resp.json()
    except Exception as exc:
        logger.warning("VPN status lookup failed: %s", exc)
        return VPNStatus(is_vpn=False, country="Unknown", ip="Unknown")

    country_code = str(data.get("country_code", "") or "")
    status = VPNStatus(
        is_vpn=bool(country_code) and country_code != Settings.HOME_COUNTRY,
        country=str(data.get("country_name", "Unknown") or "Unknown"),
        ip=str(data.get("ip", "Unknown") or "Unknown"),
    )
    logger.info(
        "Egress %s (%s), VPN=%s", status.ip, status.country, status.is_vpn
    )
    return status
