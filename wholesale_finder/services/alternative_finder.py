# wholesale_finder/services/alternative_finder.py

"""Find strictly cheaper listings of an analyzed product on other sites."""

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import replace

from wholesale_finder.config.settings import Settings
from wholesale_finder.filters.deduplicator import ProductDeduplicator
from wholesale_finder.models.product import (
    AlternativeProduct,
    AnalyzedProduct,
    Product,
)
from wholesale_finder.models.search_result import SearchResult
from wholesale_finder.services.ai_assistant import AIAssistant, AIServiceError
from wholesale_finder.services.currency import round_half_up

logger = logging.getLogger("wholesale_finder.alternatives")

DEFAULT_NOTE = "더 저렴한 대안 상품입니다."

SiteSearch = Callable[[str, Sequence[str]], Awaitable[dict[str, SearchResult]]]


class AlternativeFinder:
    """Search the other marketplaces and keep the cheapest matches.

    ``search_sites`` is the aggregator's per-site search; it must never
    raise for a single failing site, only return an empty result for it.
    """

    def __init__(
        self,
        search_sites: SiteSearch,
        assistant: AIAssistant | None = None,
        sites: Sequence[str] | None = None,
        limit: int | None = None,
    ) -> None:
        self.search_sites = search_sites
        self.assistant = assistant or AIAssistant()
        self.sites = list(sites or Settings.SEARCH_SITES)
        self.limit = limit if limit is not None else Settings.ALTERNATIVE_COUNT

    @staticmethod
    def keyword_from_title(title: str) -> str:
        words = title.split()[: Settings.ALTERNATIVE_KEYWORD_WORDS]
        return " ".join(words)

    @staticmethod
    def select_cheaper(
        baseline_local: int,
        products: Sequence[Product],
        limit: int,
    ) -> list[AlternativeProduct]:
        """Strictly cheaper products, cheapest first, with savings filled in.

        Comparison notes are left at the generic default.
        """
        if baseline_local <= 0:
            return []
        cheaper = sorted(
            (p for p in products if 0 < p.price_local < baseline_local),
            key=lambda p: p.price_local,
        )
        alternatives: list[AlternativeProduct] = []
        for product in cheaper[:limit]:
            savings = baseline_local - product.price_local
            alternatives.append(
                AlternativeProduct.from_product(
                    product,
                    comparison_note=DEFAULT_NOTE,
                    savings_local=savings,
                    savings_percent=round_half_up(
                        savings / baseline_local * 100
                    ),
                )
            )
        return alternatives

    async def _comparison_notes(
        self,
        baseline: AnalyzedProduct,
        alternatives: list[AlternativeProduct],
    ) -> list[str]:
        if not alternatives or not self.assistant.enabled:
            return []
        try:
            return await self.assistant.compare_products(baseline, alternatives)
        except AIServiceError as exc:
            logger.warning("Comparison notes unavailable: %s", exc)
            return []

    async def find(self, baseline: AnalyzedProduct) -> list[AlternativeProduct]:
        keyword = self.keyword_from_title(baseline.title)
        targets = [site for site in self.sites if site != baseline.site]
        if not keyword or not targets:
            return []

        logger.info(
            "Searching %s for alternatives to '%s' (baseline %d %s)",
            ", ".join(targets),
            keyword,
            baseline.price_local,
            Settings.LOCAL_CURRENCY,
        )
        results = await self.search_sites(keyword, targets)
        candidates = [p for result in results.values() for p in result.products]
        candidates, _ = ProductDeduplicator.deduplicate(candidates)

        alternatives = self.select_cheaper(
            baseline.price_local, candidates, self.limit
        )
        notes = await self._comparison_notes(baseline, alternatives)
        return [
            replace(alt, comparison_note=notes[i]) if i < len(notes) else alt
            for i, alt in enumerate(alternatives)
        ]
