# wholesale_finder/scrapers/site_descriptor.py

"""Per-site scraping descriptors loaded from selectors.json."""

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import quote, urlsplit, urlunsplit

from wholesale_finder.config.settings import Settings

_WHITESPACE_RE = re.compile(r"\s+")


def _pair(raw: Any, default: tuple[float, float]) -> tuple[float, float]:
    if not raw:
        return default
    low, high = raw
    return float(low), float(high)


@dataclass(frozen=True)
class FallbackSpec:
    """Recipe for the deterministic synthetic listings of one site."""

    count: int
    base_price: float
    price_step: float
    title: str
    seller: str
    url: str
    image: str
    rating: float | None = None
    min_order: int | None = None
    min_order_step: int = 0
    shipping: str | None = None
    trust_level: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FallbackSpec":
        return cls(
            count=int(data.get("count", 0)),
            base_price=float(data.get("base_price", 0.0)),
            price_step=float(data.get("price_step", 0.0)),
            title=data.get("title", "{keyword} {n}"),
            seller=data.get("seller", "Seller {n}"),
            url=data.get("url", ""),
            image=data.get("image", ""),
            rating=data.get("rating"),
            min_order=data.get("min_order"),
            min_order_step=int(data.get("min_order_step", 0)),
            shipping=data.get("shipping"),
            trust_level=data.get("trust_level"),
        )


@dataclass(frozen=True)
class SiteDescriptor:
    """Everything the shared scraper core needs to know about one site.

    Site quirks that cannot be expressed as data stay in the per-site
    scraper subclasses.
    """

    site_id: str
    label: str
    currency: str
    language: str
    homepage: str
    url_base: str
    search_urls: list[str]
    block_keywords: list[str]
    card_selectors: list[str]
    fields: dict[str, list[str]]
    accept_language: str | None = None
    referer: str | None = None
    timeout: int = Settings.REQUEST_TIMEOUT
    max_products: int = Settings.MAX_PRODUCTS_PER_PAGE
    min_title_length: int = 5
    cooldown: tuple[float, float] = Settings.BLOCK_COOLDOWN
    url_delay: tuple[float, float] = Settings.URL_ATTEMPT_DELAY
    defaults: dict[str, Any] = field(
        default_factory=lambda: dict[str, Any]()
    )
    detail_fields: dict[str, list[str]] = field(
        default_factory=lambda: dict[str, list[str]]()
    )
    mobile_host: str | None = None
    fallback: FallbackSpec | None = None

    @classmethod
    def from_dict(cls, site_id: str, data: dict[str, Any]) -> "SiteDescriptor":
        detail: dict[str, Any] = data.get("detail", {})
        fallback = data.get("fallback")
        return cls(
            site_id=site_id,
            label=data.get("label", site_id),
            currency=data.get("currency", "USD"),
            language=data.get("language", "en"),
            homepage=data["homepage"],
            url_base=data.get("url_base", data["homepage"].rstrip("/")),
            search_urls=list(data.get("search_urls", [])),
            block_keywords=list(data.get("block_keywords", [])),
            card_selectors=list(data.get("card_selectors", [])),
            fields={k: list(v) for k, v in data.get("fields", {}).items()},
            accept_language=data.get("accept_language"),
            referer=data.get("referer"),
            timeout=int(data.get("timeout", Settings.REQUEST_TIMEOUT)),
            max_products=int(
                data.get("max_products", Settings.MAX_PRODUCTS_PER_PAGE)
            ),
            min_title_length=int(data.get("min_title_length", 5)),
            cooldown=_pair(data.get("cooldown"), Settings.BLOCK_COOLDOWN),
            url_delay=_pair(
                data.get("url_delay"), Settings.URL_ATTEMPT_DELAY
            ),
            defaults=dict(data.get("defaults", {})),
            detail_fields={
                k: list(v) for k, v in detail.get("fields", {}).items()
            },
            mobile_host=detail.get("mobile_host"),
            fallback=FallbackSpec.from_dict(fallback) if fallback else None,
        )

    @classmethod
    def load(
        cls, site_id: str, path: Path | None = None
    ) -> "SiteDescriptor":
        """Read the descriptor for ``site_id`` from selectors.json."""
        descriptors = load_descriptor_data(path or Settings.SELECTORS_PATH)
        if site_id not in descriptors:
            msg = f"No selectors configured for site {site_id!r}"
            raise KeyError(msg)
        return cls.from_dict(site_id, descriptors[site_id])

    def search_urls_for(self, keyword: str) -> list[str]:
        """Expand every URL template for ``keyword``."""
        cleaned = keyword.strip()
        values = {
            "query": quote(cleaned, safe=""),
            "dash": quote(_WHITESPACE_RE.sub("-", cleaned), safe=""),
            "underscore": quote(_WHITESPACE_RE.sub("_", cleaned), safe=""),
        }
        return [template.format(**values) for template in self.search_urls]

    def mobile_variant(self, url: str) -> str | None:
        """Same URL on the mobile host, or ``None`` if not applicable."""
        if not self.mobile_host:
            return None
        parts = urlsplit(url)
        if not parts.netloc or parts.netloc == self.mobile_host:
            return None
        return urlunsplit(parts._replace(netloc=self.mobile_host))


def load_descriptor_data(path: Path) -> dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        data: dict[str, Any] = json.load(f)
    return data
