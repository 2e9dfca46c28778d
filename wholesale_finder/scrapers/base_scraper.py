# wholesale_finder/scrapers/base_scraper.py

"""Configuration-driven scraper core shared by every marketplace."""

import hashlib
import logging
import re
import time
from urllib.parse import quote

from bs4 import BeautifulSoup, Tag

from wholesale_finder.config.settings import Settings
from wholesale_finder.models.product import AnalyzedProduct, Product, Seller
from wholesale_finder.models.search_result import Provenance, SearchResult
from wholesale_finder.scrapers.block_detector import (
    BlockDetector,
    PageBlocked,
    page_title_and_body,
)
from wholesale_finder.scrapers.extraction import (
    DetailExtractor,
    ListingExtractor,
    RawDetail,
    RawListing,
)
from wholesale_finder.scrapers.fetch_client import FetchError, PageFetcher
from wholesale_finder.scrapers.site_descriptor import SiteDescriptor
from wholesale_finder.services.currency import CurrencyConverter
from wholesale_finder.services.retry import random_delay

_WHITESPACE_RE = re.compile(r"\s+")


class ExtractionFailed(Exception):
    """No candidate URL of a product page could be fetched and parsed."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"could not analyze {url}: {reason}")
        self.url = url
        self.reason = reason


class BaseScraper:
    """Search and product-page analysis for one marketplace.

    All site knowledge (URL templates, block keywords, card and field
    selector cascades, defaults and the synthetic fallback recipe) comes
    from the site's :class:`SiteDescriptor`.  Subclasses set ``SITE_ID``
    and only override hooks for genuine quirks.
    """

    SITE_ID: str = ""

    def __init__(
        self,
        fetcher: PageFetcher | None = None,
        converter: CurrencyConverter | None = None,
        vpn_mode: bool = False,
        descriptor: SiteDescriptor | None = None,
    ) -> None:
        self.settings = Settings()
        self.descriptor = descriptor or SiteDescriptor.load(self.SITE_ID)
        self.site_id = self.descriptor.site_id
        self.logger = logging.getLogger(f"wholesale_finder.{self.site_id}")
        self.fetcher = fetcher or PageFetcher()
        self.converter = converter or CurrencyConverter()
        self.vpn_mode = vpn_mode
        self.block_detector = BlockDetector(self.descriptor.block_keywords)
        self.listing_extractor = ListingExtractor(
            self.descriptor.fields,
            currency=self.descriptor.currency,
            url_base=self.descriptor.url_base,
            min_title_length=self.descriptor.min_title_length,
        )
        self.detail_extractor = DetailExtractor(
            self.descriptor.detail_fields,
            currency=self.descriptor.currency,
            url_base=self.descriptor.url_base,
        )

    # ------------------------------------------------------------------
    # Request profile (VPN mode narrows it)
    # ------------------------------------------------------------------

    @property
    def max_products(self) -> int:
        if self.vpn_mode:
            return min(
                self.descriptor.max_products,
                int(self.settings.VPN_PROFILE["max_products"]),
            )
        return self.descriptor.max_products

    @property
    def timeout(self) -> int:
        if self.vpn_mode:
            return int(self.settings.VPN_PROFILE["timeout"])
        return self.descriptor.timeout

    @property
    def accept_language(self) -> str | None:
        if self.vpn_mode:
            return str(self.settings.VPN_PROFILE["accept_language"])
        return self.descriptor.accept_language

    def build_search_urls(self, keyword: str) -> list[str]:
        """Ordered URL variants (desktop, mobile, category) to try."""
        return self.descriptor.search_urls_for(keyword)

    # ------------------------------------------------------------------
    # Page loading
    # ------------------------------------------------------------------

    async def _load_page(self, url: str) -> BeautifulSoup | None:
        """Fetch and parse ``url``.

        Returns ``None`` for non-200 or near-empty pages, raises
        :class:`PageBlocked` for block pages and lets :class:`FetchError`
        propagate.
        """
        resp = await self.fetcher.fetch(
            url,
            referer=self.descriptor.referer,
            accept_language=self.accept_language,
            timeout=self.timeout,
        )
        if not resp.ok:
            self.logger.info(
                "[%s] HTTP %d on %s, skipping",
                self.site_id,
                resp.status_code,
                url,
            )
            return None
        if len(resp.text) <= self.settings.MIN_PAGE_BYTES:
            self.logger.info(
                "[%s] Page too small (%d bytes) on %s, skipping",
                self.site_id,
                len(resp.text),
                url,
            )
            return None

        soup = BeautifulSoup(resp.text, "lxml")
        title, body = page_title_and_body(soup)
        keyword = self.block_detector.matched_keyword(title, body)
        if keyword:
            raise PageBlocked(url, keyword)
        return soup

    # ------------------------------------------------------------------
    # Listing extraction
    # ------------------------------------------------------------------

    def _extract_card(self, card: Tag) -> RawListing | None:
        return self.listing_extractor.extract(card)

    def _parse_listing(self, soup: BeautifulSoup) -> list[RawListing]:
        """Try card selectors in order; the first yielding listings wins."""
        for selector in self.descriptor.card_selectors:
            cards = soup.select(selector)
            if not cards:
                continue
            listings: list[RawListing] = []
            for index, card in enumerate(cards[: self.max_products]):
                try:
                    listing = self._extract_card(card)
                except (ValueError, TypeError, AttributeError) as exc:
                    self.logger.debug(
                        "[%s] Card %d under '%s' failed to parse: %s",
                        self.site_id,
                        index,
                        selector,
                        exc,
                    )
                    continue
                if listing is not None:
                    listings.append(listing)
            if listings:
                self.logger.info(
                    "[%s] Card selector '%s' yielded %d listing(s)",
                    self.site_id,
                    selector,
                    len(listings),
                )
                return listings
        return []

    async def _search_page(self, url: str) -> list[RawListing]:
        soup = await self._load_page(url)
        if soup is None:
            return []
        return self._parse_listing(soup)

    def _trust_level(self, rating: float | None) -> str | None:
        """Seller trust level; sites with a rating scale override this."""
        return self.descriptor.defaults.get("trust_level")

    def _product_id(self, listing: RawListing) -> str:
        key = listing.product_url or listing.title
        digest = hashlib.sha1(key.encode("utf-8")).hexdigest()[:12]
        return f"{self.site_id}_{digest}"

    def _build_product(self, listing: RawListing) -> Product:
        defaults = self.descriptor.defaults
        return Product(
            id=self._product_id(listing),
            title=listing.title,
            price=listing.price,
            currency=self.descriptor.currency,
            image_url=listing.image_url,
            product_url=listing.product_url,
            seller=Seller(
                name=listing.seller_name or defaults.get("seller", ""),
                rating=listing.rating,
                transactions=listing.transactions,
                trust_level=self._trust_level(listing.rating),
            ),
            site=self.site_id,
            min_order=listing.min_order or defaults.get("min_order"),
            shipping=listing.shipping or defaults.get("shipping"),
        )

    def _synthetic_products(self, keyword: str) -> list[Product]:
        """Deterministic placeholder listings used when every URL failed."""
        spec = self.descriptor.fallback
        if spec is None:
            return []
        slug = quote(_WHITESPACE_RE.sub("-", keyword.strip()), safe="")
        products: list[Product] = []
        for i in range(spec.count):
            n = i + 1
            min_order = (
                spec.min_order + i * spec.min_order_step
                if spec.min_order is not None
                else None
            )
            products.append(
                Product(
                    id=f"{self.site_id}_fallback_{n}",
                    title=spec.title.format(keyword=keyword, n=n),
                    price=round(spec.base_price + i * spec.price_step, 2),
                    currency=self.descriptor.currency,
                    image_url=spec.image,
                    product_url=spec.url.format(slug=slug, n=n),
                    seller=Seller(
                        name=spec.seller.format(n=n),
                        rating=spec.rating,
                        trust_level=spec.trust_level,
                    ),
                    site=self.site_id,
                    min_order=min_order,
                    shipping=spec.shipping,
                )
            )
        return products

    # ------------------------------------------------------------------
    # Public search entry-point
    # ------------------------------------------------------------------

    async def search(self, keyword: str) -> SearchResult:
        """Search the marketplace for ``keyword``.

        URL variants are tried one at a time; the first one producing
        listings wins.  If every variant fails the synthetic fallback
        listings are returned with ``provenance="fallback"``.
        """
        started = time.perf_counter()
        urls = self.build_search_urls(keyword)
        listings: list[RawListing] = []

        for i, url in enumerate(urls):
            self.logger.info(
                "[%s] URL attempt %d/%d: %s",
                self.site_id,
                i + 1,
                len(urls),
                url,
            )
            try:
                listings = await self._search_page(url)
            except PageBlocked as exc:
                self.logger.warning(
                    "[%s] Block page detected (%s), trying next URL",
                    self.site_id,
                    exc.keyword,
                )
                await random_delay(*self.descriptor.cooldown)
                continue
            except FetchError as exc:
                self.logger.warning(
                    "[%s] Fetch failed: %s", self.site_id, exc
                )

            if listings:
                break
            if i < len(urls) - 1:
                await random_delay(*self.descriptor.url_delay)

        if listings:
            products = [self._build_product(item) for item in listings]
            provenance: Provenance = "live"
        else:
            self.logger.warning(
                "[%s] No listings from %d URL(s), using fallback data",
                self.site_id,
                len(urls),
            )
            products = self._synthetic_products(keyword)
            provenance = "fallback"

        products = await self.converter.localize_all(products)
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        self.logger.info(
            "[%s] %d %s product(s) in %d ms",
            self.site_id,
            len(products),
            provenance,
            elapsed_ms,
        )
        return SearchResult(
            query=keyword,
            site=self.site_id,
            products=products,
            search_time_ms=elapsed_ms,
            provenance=provenance,
        )

    # ------------------------------------------------------------------
    # Product-page analysis
    # ------------------------------------------------------------------

    def _parse_detail(self, soup: BeautifulSoup) -> RawDetail | None:
        return self.detail_extractor.extract(soup)

    async def analyze(self, url: str) -> AnalyzedProduct:
        """Extract a product page; raise :class:`ExtractionFailed` if impossible."""
        candidates = [url]
        mobile = self.descriptor.mobile_variant(url)
        if mobile:
            candidates.append(mobile)

        reason = "no candidate URL"
        for candidate in candidates:
            try:
                soup = await self._load_page(candidate)
            except PageBlocked as exc:
                self.logger.warning(
                    "[%s] Product page blocked (%s): %s",
                    self.site_id,
                    exc.keyword,
                    candidate,
                )
                reason = str(exc)
                await random_delay(*self.descriptor.cooldown)
                continue
            except FetchError as exc:
                self.logger.warning(
                    "[%s] Product page fetch failed: %s", self.site_id, exc
                )
                reason = str(exc)
                continue
            if soup is None:
                reason = f"empty or non-200 page at {candidate}"
                continue
            detail = self._parse_detail(soup)
            if detail is None:
                reason = f"title or price not found at {candidate}"
                continue
            return await self._build_analyzed(detail, url)

        raise ExtractionFailed(url, reason)

    async def _build_analyzed(
        self, detail: RawDetail, url: str
    ) -> AnalyzedProduct:
        defaults = self.descriptor.defaults
        price_local = await self.converter.to_local(
            detail.price, self.descriptor.currency
        )
        return AnalyzedProduct(
            title=detail.title,
            description=detail.description,
            price=detail.price,
            currency=self.descriptor.currency,
            seller=Seller(
                name=detail.seller_name or defaults.get("seller", ""),
                rating=detail.rating,
                transactions=detail.transactions,
                trust_level=self._trust_level(detail.rating),
            ),
            site=self.site_id,
            original_url=url,
            price_local=price_local,
            specifications=detail.specifications,
            image_urls=detail.image_urls,
        )
