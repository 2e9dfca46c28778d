# wholesale_finder/models/product.py

"""Product data models for inter-module data flow."""

from dataclasses import dataclass, field, fields, replace
from typing import Any, Literal

SiteId = Literal["alibaba", "1688", "dhgate", "aliexpress"]

SITE_IDS: tuple[str, ...] = ("alibaba", "1688", "dhgate", "aliexpress")


def _check_site(site: str) -> None:
    if site not in SITE_IDS:
        msg = f"Unknown marketplace site: {site!r}"
        raise ValueError(msg)


@dataclass(frozen=True)
class Seller:
    """Seller/supplier information attached to a listing."""

    name: str
    rating: float | None = None
    transactions: int | None = None
    trust_level: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name}
        if self.rating is not None:
            data["rating"] = self.rating
        if self.transactions is not None:
            data["transactions"] = self.transactions
        if self.trust_level is not None:
            data["trustLevel"] = self.trust_level
        return data


@dataclass(frozen=True)
class Product:
    """A single listing scraped from one wholesale marketplace.

    Instances are immutable; the local-currency price is filled in by
    producing a copy through :meth:`with_local_price`.
    """

    id: str
    title: str
    price: float
    currency: str
    image_url: str
    product_url: str
    seller: Seller
    site: str
    price_local: int = 0
    min_order: int | None = None
    shipping: str | None = None

    def __post_init__(self) -> None:
        _check_site(self.site)
        if self.price_local < 0:
            msg = f"price_local must be non-negative, got {self.price_local}"
            raise ValueError(msg)

    def with_local_price(self, amount: int) -> "Product":
        """Return a copy carrying the converted local-currency price."""
        return replace(self, price_local=amount)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "price": self.price,
            "currency": self.currency,
            "priceLocal": self.price_local,
            "imageUrl": self.image_url,
            "productUrl": self.product_url,
            "seller": self.seller.to_dict(),
            "site": self.site,
        }
        if self.min_order is not None:
            data["minOrder"] = self.min_order
        if self.shipping is not None:
            data["shipping"] = self.shipping
        return data


@dataclass(frozen=True)
class AlternativeProduct(Product):
    """A cheaper listing found on another marketplace."""

    comparison_note: str = ""
    savings_local: int = 0
    savings_percent: int = 0

    @classmethod
    def from_product(
        cls,
        product: Product,
        comparison_note: str,
        savings_local: int,
        savings_percent: int,
    ) -> "AlternativeProduct":
        base = {f.name: getattr(product, f.name) for f in fields(Product)}
        return cls(
            **base,
            comparison_note=comparison_note,
            savings_local=savings_local,
            savings_percent=savings_percent,
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["comparisonNote"] = self.comparison_note
        data["savingsLocal"] = self.savings_local
        data["savingsPercent"] = self.savings_percent
        return data


@dataclass
class AnalyzedProduct:
    """Detail-page record produced by a scraper's analyze path."""

    title: str
    description: str
    price: float
    currency: str
    seller: Seller
    site: str
    original_url: str
    price_local: int = 0
    specifications: dict[str, str] = field(
        default_factory=lambda: dict[str, str]()
    )
    image_urls: list[str] = field(
        default_factory=lambda: list[str]()
    )
    summary: str = ""

    def __post_init__(self) -> None:
        _check_site(self.site)

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "price": self.price,
            "currency": self.currency,
            "priceLocal": self.price_local,
            "specifications": dict(self.specifications),
            "seller": self.seller.to_dict(),
            "site": self.site,
            "imageUrls": list(self.image_urls),
            "originalUrl": self.original_url,
            "summary": self.summary,
        }
