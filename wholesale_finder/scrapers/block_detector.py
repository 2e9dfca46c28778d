# wholesale_finder/scrapers/block_detector.py

"""Detect anti-bot block, captcha and verification pages."""

import logging
from collections.abc import Iterable

from bs4 import BeautifulSoup

logger = logging.getLogger("wholesale_finder.block")


class PageBlocked(Exception):
    """Raised internally when a fetched page is a block/captcha page."""

    def __init__(self, url: str, keyword: str) -> None:
        super().__init__(f"block keyword '{keyword}' on {url}")
        self.url = url
        self.keyword = keyword


class BlockDetector:
    """Case-insensitive keyword scan over a page's title and body text."""

    def __init__(self, keywords: Iterable[str]) -> None:
        self.keywords: list[str] = [k.lower() for k in keywords if k]

    def matched_keyword(self, title: str, body: str) -> str | None:
        """Return the first keyword found, or ``None`` for a clean page."""
        title_lower = title.lower()
        body_lower = body.lower()
        for keyword in self.keywords:
            if keyword in title_lower or keyword in body_lower:
                return keyword
        return None

    def is_blocked(self, title: str, body: str) -> bool:
        return self.matched_keyword(title, body) is not None


def page_title_and_body(soup: BeautifulSoup) -> tuple[str, str]:
    """Extract the ``<title>`` text and the visible body text."""
    title_el = soup.find("title")
    title = title_el.get_text(strip=True) if title_el else ""
    body_el = soup.find("body")
    body = body_el.get_text(" ", strip=True) if body_el else ""
    return title, body
