# wholesale_finder/services/search_orchestrator.py

"""Orchestrates multi-site searches and single-product analysis."""

import asyncio
import importlib
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlsplit

from wholesale_finder.config.settings import Settings
from wholesale_finder.filters.query_translator import QueryTranslator
from wholesale_finder.models.product import AlternativeProduct, AnalyzedProduct
from wholesale_finder.models.search_result import MultiSiteSearch, SearchResult
from wholesale_finder.scrapers.base_scraper import BaseScraper
from wholesale_finder.scrapers.fetch_client import PageFetcher
from wholesale_finder.services.ai_assistant import AIAssistant, AIServiceError
from wholesale_finder.services.alternative_finder import AlternativeFinder
from wholesale_finder.services.currency import CurrencyConverter
from wholesale_finder.services.health_checker import VPNStatus, check_vpn_status
from wholesale_finder.services.retry import with_retry

logger = logging.getLogger("wholesale_finder.orchestrator")

SITE_DOMAINS: dict[str, tuple[str, ...]] = {
    "alibaba": ("alibaba.com",),
    "1688": ("1688.com",),
    "dhgate": ("dhgate.com",),
    "aliexpress": ("aliexpress.com", "aliexpress.us"),
}

SUMMARY_UNAVAILABLE = "상품 요약을 생성할 수 없습니다."


class InvalidQueryError(ValueError):
    """The search keyword or product URL cannot be used."""


class UnsupportedSiteError(InvalidQueryError):
    """The product URL belongs to no supported marketplace."""


@dataclass
class AnalysisResult:
    """An analyzed product together with its cheaper alternatives."""

    product: AnalyzedProduct
    alternatives: list[AlternativeProduct] = field(
        default_factory=lambda: list[AlternativeProduct]()
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "product": self.product.to_dict(),
            "alternatives": [a.to_dict() for a in self.alternatives],
        }


def detect_site(url: str) -> str | None:
    """Map a product URL to its marketplace id by host name."""
    host = (urlsplit(url.strip()).hostname or "").lower()
    for site_id, domains in SITE_DOMAINS.items():
        for domain in domains:
            if host == domain or host.endswith(f".{domain}"):
                return site_id
    return None


def _load_scraper_class(dotted_path: str) -> type[Any]:
    """Dynamically import a scraper class from its dotted module path."""
    module_path, class_name = dotted_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    cls: type[Any] = getattr(module, class_name)
    return cls


class SearchOrchestrator:
    """Coordinates scraping, keyword translation and alternative search."""

    def __init__(
        self,
        fetcher: PageFetcher | None = None,
        converter: CurrencyConverter | None = None,
        assistant: AIAssistant | None = None,
        translator: QueryTranslator | None = None,
        vpn_probe: Callable[[], Awaitable[VPNStatus]] | None = None,
    ) -> None:
        self.settings = Settings()
        self.fetcher = fetcher or PageFetcher()
        self.converter = converter or CurrencyConverter()
        self.assistant = assistant or AIAssistant()
        self.translator = translator or QueryTranslator(self.assistant)
        self.vpn_probe = vpn_probe or check_vpn_status
        self.sources: dict[str, dict[str, str]] = {
            src["id"]: src for src in self.settings.AVAILABLE_SOURCES
        }
        self.alternative_finder = AlternativeFinder(
            self.search_sites,
            assistant=self.assistant,
            sites=self.settings.SEARCH_SITES,
        )

    # ── Private helpers ──────────────────────────────────

    def _make_scraper(self, site_id: str, vpn_mode: bool = False) -> BaseScraper:
        scraper_cls = _load_scraper_class(self.sources[site_id]["scraper"])
        scraper: BaseScraper = scraper_cls(
            fetcher=self.fetcher,
            converter=self.converter,
            vpn_mode=vpn_mode,
        )
        return scraper

    async def _search_site(
        self, site_id: str, scraper: BaseScraper, query: str
    ) -> SearchResult:
        return await with_retry(
            lambda: scraper.search(query),
            label=f"[{site_id}] search",
        )

    # ── Multi-site search ────────────────────────────────

    async def search_sites(
        self,
        keyword: str,
        site_ids: Sequence[str],
        vpn_mode: bool = False,
    ) -> dict[str, SearchResult]:
        """Search every site concurrently; a failing site yields an empty result."""
        outcomes: dict[str, SearchResult | BaseException] = {}
        scrapers: dict[str, BaseScraper] = {}
        for site_id in site_ids:
            try:
                scrapers[site_id] = self._make_scraper(site_id, vpn_mode)
            except (ImportError, AttributeError, KeyError) as exc:
                outcomes[site_id] = exc

        queries = await self.translator.for_languages(
            keyword, (s.descriptor.language for s in scrapers.values())
        )
        settled = await asyncio.gather(
            *(
                self._search_site(s, scraper, queries[scraper.descriptor.language])
                for s, scraper in scrapers.items()
            ),
            return_exceptions=True,
        )
        outcomes.update(zip(scrapers, settled))

        results: dict[str, SearchResult] = {}
        for site_id in site_ids:
            outcome = outcomes[site_id]
            if isinstance(outcome, SearchResult):
                results[site_id] = outcome
            elif isinstance(outcome, Exception):
                logger.error(
                    "[%s] Search for '%s' failed: %s",
                    site_id,
                    keyword,
                    outcome,
                    exc_info=outcome,
                )
                results[site_id] = SearchResult.empty(
                    keyword, site_id, error=str(outcome) or type(outcome).__name__
                )
            else:
                raise outcome
        return results

    async def resolve_vpn_mode(self, use_vpn: bool) -> bool:
        """VPN profile applies only when requested and actually detected."""
        if not use_vpn:
            return False
        status = await self.vpn_probe()
        if not status.is_vpn:
            logger.info(
                "VPN mode requested but egress is %s, using normal profile",
                status.country,
            )
        return status.is_vpn

    async def search_all(
        self, keyword: str, use_vpn: bool = False
    ) -> MultiSiteSearch:
        """Run the keyword against every configured search site."""
        cleaned = (keyword or "").strip()
        if not cleaned:
            raise InvalidQueryError("검색 키워드를 입력해주세요.")

        vpn_mode = await self.resolve_vpn_mode(use_vpn)
        results = await self.search_sites(
            cleaned, self.settings.SEARCH_SITES, vpn_mode
        )
        search = MultiSiteSearch(
            keyword=cleaned, results=results, vpn_mode=vpn_mode
        )
        logger.info(
            "Search '%s' finished: %d product(s) across %d site(s)",
            cleaned,
            search.total_products,
            len(results),
        )
        return search

    # ── Single product analysis ──────────────────────────

    async def _summarize(self, product: AnalyzedProduct) -> str:
        if not self.assistant.enabled:
            return SUMMARY_UNAVAILABLE
        try:
            return await self.assistant.summarize_product(product)
        except AIServiceError as exc:
            logger.warning("Summary unavailable for %s: %s", product.original_url, exc)
            return SUMMARY_UNAVAILABLE

    async def analyze_url(self, url: str) -> AnalysisResult:
        """Analyze one product page and look for cheaper alternatives.

        Raises :class:`InvalidQueryError` for blank or unsupported URLs
        and lets ``ExtractionFailed`` propagate when the page cannot be
        read.
        """
        cleaned = (url or "").strip()
        if not cleaned:
            raise InvalidQueryError("URL을 입력해주세요.")
        site = detect_site(cleaned)
        if site is None:
            raise UnsupportedSiteError(
                "지원하지 않는 사이트입니다. (Alibaba, 1688, DHgate, AliExpress만 지원)"
            )

        scraper = self._make_scraper(site)
        product = await with_retry(
            lambda: scraper.analyze(cleaned),
            max_attempts=self.settings.ANALYZE_RETRIES,
            label=f"[{site}] analyze",
        )
        product.summary = await self._summarize(product)
        alternatives = await self.alternative_finder.find(product)
        return AnalysisResult(product=product, alternatives=alternatives)

    # ── Utilities exposed over HTTP ──────────────────────

    async def translate(self, text: str, target_language: str) -> str:
        """Translate free text; falls back to the input when unavailable."""
        if not self.assistant.enabled:
            return text
        try:
            return await self.assistant.translate_text(text, target_language)
        except AIServiceError as exc:
            logger.warning("Translation failed, returning input: %s", exc)
            return text
