# wholesale_finder/scrapers/fetch_client.py

"""Async HTTP GET client with browser impersonation and rotated headers."""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any

import cloudscraper  # type: ignore[import-untyped]
from curl_cffi import requests as curl_requests

from wholesale_finder.config.settings import Settings

logger = logging.getLogger("wholesale_finder.fetch")


class FetchError(Exception):
    """Network failure, timeout, or a 5xx answer for one URL."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{reason} ({url})")
        self.url = url
        self.reason = reason


@dataclass(frozen=True)
class FetchResponse:
    """Status and body of a retrievable (< 500) response."""

    url: str
    status_code: int
    text: str

    @property
    def ok(self) -> bool:
        return self.status_code == 200


class PageFetcher:
    """Issue single GET requests against marketplace pages.

    Every call uses a fresh ``curl_cffi`` async session impersonating a
    desktop browser, with a User-Agent drawn from ``Settings.USER_AGENTS``.
    Any status below 500 is handed back so block pages served with 403
    can still be inspected.  Nothing is retried here.
    """

    def __init__(
        self,
        timeout: int | None = None,
        max_redirects: int | None = None,
    ) -> None:
        self.settings = Settings()
        self.timeout = timeout or self.settings.REQUEST_TIMEOUT
        self.max_redirects = (
            max_redirects
            if max_redirects is not None
            else self.settings.MAX_REDIRECTS
        )

    def build_headers(
        self,
        referer: str | None = None,
        accept_language: str | None = None,
    ) -> dict[str, str]:
        """Default headers plus a rotated User-Agent."""
        headers: dict[str, str] = {
            **self.settings.DEFAULT_HEADERS,
            "User-Agent": random.choice(self.settings.USER_AGENTS),
        }
        if accept_language:
            headers["Accept-Language"] = accept_language
        if referer:
            headers["Referer"] = referer
        return headers

    def _is_cf_challenge(self, text: str) -> bool:
        lower = text[:20000].lower()
        return any(
            marker in lower
            for marker in self.settings.CF_CHALLENGE_MARKERS
        )

    async def fetch(
        self,
        url: str,
        *,
        referer: str | None = None,
        accept_language: str | None = None,
        timeout: int | None = None,
    ) -> FetchResponse:
        """GET ``url``; raise :class:`FetchError` on network or 5xx failure."""
        headers = self.build_headers(referer, accept_language)
        request_timeout = timeout or self.timeout
        try:
            async with curl_requests.AsyncSession(
                impersonate=self.settings.IMPERSONATE_BROWSER
            ) as session:
                resp = await session.get(
                    url,
                    headers=headers,
                    timeout=request_timeout,
                    allow_redirects=True,
                    max_redirects=self.max_redirects,
                )
        except Exception as exc:
            raise FetchError(url, f"request failed: {exc}") from exc

        status = int(resp.status_code)
        if status >= 500:
            raise FetchError(url, f"HTTP {status}")

        text = str(resp.text or "")
        logger.debug(
            "GET %s -> HTTP %d (%d bytes)", url, status, len(text)
        )

        if self._is_cf_challenge(text):
            logger.info(
                "Cloudflare challenge on %s, falling back to cloudscraper",
                url,
            )
            fallback = await asyncio.to_thread(
                self._fetch_cloudscraper, url, headers, request_timeout
            )
            if fallback is not None:
                return fallback

        return FetchResponse(url=url, status_code=status, text=text)

    def _fetch_cloudscraper(
        self,
        url: str,
        headers: dict[str, str],
        timeout: int,
    ) -> FetchResponse | None:
        """Re-fetch a challenged page through cloudscraper's JS solver."""
        try:
            _cs: Any = cloudscraper
            scraper: Any = _cs.create_scraper()
            resp: Any = scraper.get(url, headers=headers, timeout=timeout)
        except Exception as exc:
            logger.error(
                "cloudscraper fallback failed for %s: %s",
                url,
                exc,
                exc_info=True,
            )
            return None
        status = int(resp.status_code)
        if status >= 500:
            logger.warning(
                "cloudscraper fallback got HTTP %d for %s", status, url
            )
            return None
        return FetchResponse(url=url, status_code=status, text=str(resp.text))
