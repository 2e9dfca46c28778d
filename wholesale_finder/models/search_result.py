# wholesale_finder/models/search_result.py

"""Per-site and multi-site search result containers."""

from dataclasses import dataclass, field
from typing import Any, Literal

from wholesale_finder.models.product import Product

Provenance = Literal["live", "fallback"]


@dataclass
class SearchResult:
    """Products one marketplace returned for one query.

    ``provenance`` is ``"live"`` when the products were extracted from a
    real page and ``"fallback"`` when they were synthesised after every
    URL variant failed.  ``error`` is only set when the whole site
    scraper failed and the result is empty.
    """

    query: str
    site: str
    products: list[Product] = field(
        default_factory=lambda: list[Product]()
    )
    search_time_ms: int = 0
    provenance: Provenance = "live"
    error: str | None = None

    @property
    def total_results(self) -> int:
        return len(self.products)

    @classmethod
    def empty(
        cls,
        query: str,
        site: str,
        error: str | None = None,
    ) -> "SearchResult":
        """Build the zero-product result used for a failed site."""
        return cls(query=query, site=site, error=error)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "query": self.query,
            "totalResults": self.total_results,
            "products": [p.to_dict() for p in self.products],
            "site": self.site,
            "searchTimeMs": self.search_time_ms,
            "provenance": self.provenance,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class MultiSiteSearch:
    """Aggregated outcome of one keyword across all search sites."""

    keyword: str
    results: dict[str, SearchResult] = field(
        default_factory=lambda: dict[str, SearchResult]()
    )
    vpn_mode: bool = False

    @property
    def total_products(self) -> int:
        return sum(r.total_results for r in self.results.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            site: result.to_dict()
            for site, result in self.results.items()
        }
