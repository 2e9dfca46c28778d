# wholesale_finder/scrapers/extraction.py

"""Selector-cascade extraction of listing and detail fields.

Marketplace markup differs between desktop, mobile and category pages
and drifts without notice, so every field is described as an ordered
list of CSS selectors.  :class:`FieldCascade` evaluates them left to
right, reading one or more sources (an attribute or the element text)
from each match, and accepts the first value that passes the field's
plausibility check.  A selector that matches nothing, or matches only an
implausible value, simply hands over to the next one.
"""

import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from urllib.parse import urljoin

from bs4 import Tag

Validator = Callable[[str], bool]

TEXT = "text"

# Price patterns, most specific first; the bare number goes last.
_USD_PRICE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"\$\s*([\d.,]+)"),
    re.compile(r"USD\s*([\d.,]+)", re.IGNORECASE),
    re.compile(r"([\d.,]+)\s*\$"),
    re.compile(r"([\d.,]+)\s*USD", re.IGNORECASE),
    re.compile(r"Price:\s*\$?([\d.,]+)", re.IGNORECASE),
    re.compile(r"(\d[\d,]*(?:\.\d+)?)"),
]

_CNY_PRICE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"¥\s*([\d.,]+)"),
    re.compile(r"￥\s*([\d.,]+)"),
    re.compile(r"([\d.,]+)\s*元"),
    re.compile(r"([\d.,]+)\s*[¥￥]"),
    re.compile(r"(?:CNY|RMB)\s*([\d.,]+)", re.IGNORECASE),
    re.compile(r"现价.*?(\d+\.?\d*)"),
    re.compile(r"(\d[\d,]*(?:\.\d+)?)"),
]

_KRW_PRICE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"₩\s*([\d.,]+)"),
    re.compile(r"([\d.,]+)\s*원"),
    re.compile(r"(\d[\d,]*(?:\.\d+)?)"),
]

PRICE_PATTERNS: dict[str, list[re.Pattern[str]]] = {
    "USD": _USD_PRICE_PATTERNS,
    "CNY": _CNY_PRICE_PATTERNS,
    "RMB": _CNY_PRICE_PATTERNS,
    "KRW": _KRW_PRICE_PATTERNS,
}

_COUNT_RE = re.compile(r"\d[\d,]*")
_RATING_RE = re.compile(r"\d+(?:\.\d+)?")
_PLACEHOLDER_MARKERS = ("placeholder", "loading", "data:image", "blank.gif")


def parse_number(raw: str) -> float:
    """Parse ``'1,299.00'`` style numbers; 0.0 when unparseable."""
    cleaned = raw.replace(",", "").strip(".")
    try:
        return float(cleaned)
    except ValueError:
        return 0.0


def parse_price(text: str | None, currency: str = "USD") -> float:
    """Return the first non-zero price matched by the currency's patterns."""
    if not text:
        return 0.0
    patterns = PRICE_PATTERNS.get(currency.upper(), _USD_PRICE_PATTERNS)
    for pattern in patterns:
        match = pattern.search(text)
        if not match:
            continue
        value = parse_number(match.group(1))
        if value > 0:
            return value
    return 0.0


def parse_count(text: str | None) -> int | None:
    """First integer in ``text`` (commas allowed), e.g. MOQ or order count."""
    if not text:
        return None
    match = _COUNT_RE.search(text)
    if not match:
        return None
    return int(match.group(0).replace(",", ""))


def parse_rating(text: str | None) -> float | None:
    """A 0–5 star rating, or ``None`` when the text holds none."""
    if not text:
        return None
    match = _RATING_RE.search(text)
    if not match:
        return None
    value = float(match.group(0))
    if 0 < value <= 5:
        return value
    return None


def absolute_url(raw: str | None, base: str) -> str:
    """Resolve protocol-relative and site-relative links."""
    if not raw:
        return ""
    raw = raw.strip()
    if raw.startswith("//"):
        return f"https:{raw}"
    if raw.startswith(("http://", "https://")):
        return raw
    return urljoin(base.rstrip("/") + "/", raw)


def plausible_image(value: str) -> bool:
    lower = value.lower()
    return bool(value.strip()) and not any(
        marker in lower for marker in _PLACEHOLDER_MARKERS
    )


def _non_empty(value: str) -> bool:
    return bool(value.strip())


def _has_digit(value: str) -> bool:
    return parse_count(value) is not None


def read_source(element: Tag, source: str) -> str:
    """Read ``source`` (``"text"`` or an attribute name) from an element."""
    if source == TEXT:
        return element.get_text(" ", strip=True)
    raw = element.get(source)
    if raw is None:
        return ""
    if isinstance(raw, list):
        return " ".join(str(part) for part in raw).strip()
    return str(raw).strip()


@dataclass(frozen=True)
class CascadeMatch:
    """The accepted value together with where it came from."""

    value: str
    element: Tag
    selector: str


class FieldCascade:
    """Ordered ``(selector, validate) -> Optional[value]`` attempts."""

    def __init__(
        self,
        name: str,
        selectors: Sequence[str],
        sources: Sequence[str] = (TEXT,),
        validate: Validator | None = None,
    ) -> None:
        self.name = name
        self.selectors: tuple[str, ...] = tuple(selectors)
        self.sources: tuple[str, ...] = tuple(sources)
        self.validate: Validator = validate or _non_empty

    def first(self, node: Tag) -> CascadeMatch | None:
        """Evaluate selectors left to right and stop at the first plausible value."""
        for selector in self.selectors:
            element = node.select_one(selector)
            if element is None:
                continue
            for source in self.sources:
                value = read_source(element, source)
                if value and self.validate(value):
                    return CascadeMatch(
                        value=value, element=element, selector=selector
                    )
        return None

    def value(self, node: Tag) -> str | None:
        match = self.first(node)
        return match.value if match else None

    def all_values(self, node: Tag) -> list[str]:
        """Every plausible value across all selectors, de-duplicated in order."""
        seen: dict[str, None] = {}
        for selector in self.selectors:
            for element in node.select(selector):
                for source in self.sources:
                    value = read_source(element, source)
                    if value and self.validate(value):
                        seen.setdefault(value, None)
                        break
        return list(seen)


@dataclass(frozen=True)
class RawListing:
    """Pre-currency-conversion fields of one product card."""

    title: str
    price: float
    product_url: str = ""
    image_url: str = ""
    seller_name: str | None = None
    min_order: int | None = None
    rating: float | None = None
    transactions: int | None = None
    shipping: str | None = None


@dataclass
class RawDetail:
    """Pre-currency-conversion fields of one product detail page."""

    title: str
    price: float
    description: str = ""
    seller_name: str | None = None
    rating: float | None = None
    transactions: int | None = None
    image_urls: list[str] = field(default_factory=lambda: list[str]())
    specifications: dict[str, str] = field(
        default_factory=lambda: dict[str, str]()
    )


def _link_of(element: Tag) -> str:
    """``href`` of the element itself or of its first nested link."""
    href = read_source(element, "href")
    if href:
        return href
    anchor = element.find("a", href=True)
    if isinstance(anchor, Tag):
        return read_source(anchor, "href")
    return ""


class ListingExtractor:
    """Per-card cascades for title, price, image, seller, MOQ and extras."""

    MAX_TITLE_LENGTH = 200

    def __init__(
        self,
        fields: Mapping[str, Sequence[str]],
        currency: str,
        url_base: str,
        min_title_length: int = 5,
    ) -> None:
        self.currency = currency
        self.url_base = url_base
        self.title = FieldCascade(
            "title",
            fields.get("title", ()),
            sources=("title", TEXT),
            validate=lambda v: len(v.strip()) > min_title_length,
        )
        self.price = FieldCascade(
            "price",
            fields.get("price", ()),
            sources=(TEXT, "data-price"),
            validate=lambda v: parse_price(v, currency) > 0,
        )
        self.image = FieldCascade(
            "image",
            fields.get("image", ("img",)),
            sources=("src", "data-src", "data-original"),
            validate=plausible_image,
        )
        self.seller = FieldCascade("seller", fields.get("seller", ()))
        self.moq = FieldCascade(
            "moq", fields.get("moq", ()), validate=_has_digit
        )
        self.rating = FieldCascade(
            "rating",
            fields.get("rating", ()),
            validate=lambda v: parse_rating(v) is not None,
        )
        self.transactions = FieldCascade(
            "transactions",
            fields.get("transactions", ()),
            validate=_has_digit,
        )
        self.shipping = FieldCascade("shipping", fields.get("shipping", ()))

    def extract(self, card: Tag) -> RawListing | None:
        """Resolve one card, or ``None`` when title or price is missing."""
        title_match = self.title.first(card)
        if title_match is None:
            return None
        price_text = self.price.value(card)
        price = parse_price(price_text, self.currency)
        if price <= 0:
            return None

        image = self.image.value(card)
        return RawListing(
            title=title_match.value.strip()[: self.MAX_TITLE_LENGTH],
            price=price,
            product_url=absolute_url(
                _link_of(title_match.element), self.url_base
            ),
            image_url=absolute_url(image, self.url_base) if image else "",
            seller_name=self.seller.value(card),
            min_order=parse_count(self.moq.value(card)),
            rating=parse_rating(self.rating.value(card)),
            transactions=parse_count(self.transactions.value(card)),
            shipping=self.shipping.value(card),
        )


class DetailExtractor:
    """Cascades for a single product detail page."""

    def __init__(
        self,
        fields: Mapping[str, Sequence[str]],
        currency: str,
        url_base: str,
        min_title_length: int = 2,
    ) -> None:
        self.currency = currency
        self.url_base = url_base
        self.title = FieldCascade(
            "title",
            fields.get("title", ()),
            validate=lambda v: len(v.strip()) > min_title_length,
        )
        self.description = FieldCascade(
            "description", fields.get("description", ())
        )
        self.price = FieldCascade(
            "price",
            fields.get("price", ()),
            sources=(TEXT, "data-price", "content"),
            validate=lambda v: parse_price(v, currency) > 0,
        )
        self.seller = FieldCascade("seller", fields.get("seller", ()))
        self.rating = FieldCascade(
            "rating",
            fields.get("rating", ()),
            validate=lambda v: parse_rating(v) is not None,
        )
        self.transactions = FieldCascade(
            "transactions",
            fields.get("transactions", ()),
            validate=_has_digit,
        )
        self.images = FieldCascade(
            "images",
            fields.get("images", ()),
            sources=("src", "data-src", "data-original"),
            validate=plausible_image,
        )
        self.spec_rows: tuple[str, ...] = tuple(fields.get("spec_rows", ()))
        self.spec_key = FieldCascade("spec_key", fields.get("spec_key", ()))
        self.spec_value = FieldCascade(
            "spec_value", fields.get("spec_value", ())
        )

    def _specifications(self, page: Tag) -> dict[str, str]:
        specs: dict[str, str] = {}
        for row_selector in self.spec_rows:
            for row in page.select(row_selector):
                key = self.spec_key.value(row)
                value = self.spec_value.value(row)
                if key and value and key != value:
                    specs.setdefault(key.rstrip(":： "), value)
            if specs:
                break
        return specs

    def extract(self, page: Tag) -> RawDetail | None:
        title = self.title.value(page)
        if not title:
            return None
        price = parse_price(self.price.value(page), self.currency)
        if price <= 0:
            return None
        return RawDetail(
            title=title.strip(),
            price=price,
            description=self.description.value(page) or "",
            seller_name=self.seller.value(page),
            rating=parse_rating(self.rating.value(page)),
            transactions=parse_count(self.transactions.value(page)),
            image_urls=[
                absolute_url(src, self.url_base)
                for src in self.images.all_values(page)
            ],
            specifications=self._specifications(page),
        )
