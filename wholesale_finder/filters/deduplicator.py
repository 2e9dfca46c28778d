# wholesale_finder/filters/deduplicator.py

"""Product deduplication across marketplace result sets."""

import logging
import re

from wholesale_finder.models.product import Product

logger = logging.getLogger("wholesale_finder.filters")


class ProductDeduplicator:
    """Remove duplicate products using URL normalisation and title matching."""

    # Query params (tracking, spm) and fragments don't affect identity
    _STRIP_PARAMS_RE = re.compile(r"[?#].*$")
    _NON_WORD_RE = re.compile(r"[^\w\s]")

    @staticmethod
    def _normalise_url(url: str) -> str:
        """Strip query string, fragment and trailing slash; lowercase."""
        if not url:
            return ""
        cleaned = ProductDeduplicator._STRIP_PARAMS_RE.sub("", url)
        return cleaned.rstrip("/").lower()

    @staticmethod
    def _normalise_title(title: str) -> str:
        """Lowercase, drop punctuation (CJK and Hangul survive), collapse spaces."""
        lowered = title.lower()
        words_only = ProductDeduplicator._NON_WORD_RE.sub("", lowered)
        return " ".join(words_only.split())

    @staticmethod
    def _cheaper(candidate: Product, current: Product) -> bool:
        return 0 < candidate.price_local < current.price_local

    @staticmethod
    def deduplicate(
        products: list[Product],
    ) -> tuple[list[Product], int]:
        """Remove duplicate products, keeping the cheapest per group.

        Dedup strategy:
        1. Exact URL match (after normalisation).
        2. Same-site title match (normalised titles).

        Returns the deduplicated list and the count of removed dupes.
        """
        if not products:
            return [], 0

        seen_urls: dict[str, int] = {}
        seen_titles: dict[str, int] = {}
        kept: list[Product] = []
        removed = 0

        for product in products:
            norm_url = ProductDeduplicator._normalise_url(product.product_url)
            title_key = (
                f"{product.site}:"
                f"{ProductDeduplicator._normalise_title(product.title)}"
            )

            existing_idx = seen_urls.get(norm_url) if norm_url else None
            if existing_idx is None:
                existing_idx = seen_titles.get(title_key)
            if existing_idx is not None:
                if ProductDeduplicator._cheaper(product, kept[existing_idx]):
                    kept[existing_idx] = product
                removed += 1
                continue

            idx = len(kept)
            if norm_url:
                seen_urls[norm_url] = idx
            seen_titles[title_key] = idx
            kept.append(product)

        if removed:
            logger.info(
                "Deduplication removed %d duplicate products", removed
            )

        return kept, removed
