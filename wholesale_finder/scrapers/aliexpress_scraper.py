# wholesale_finder/scrapers/aliexpress_scraper.py

"""Scraper for aliexpress.com via embedded ``runParams`` JSON."""

import json
import re
from typing import Any, cast

from bs4 import BeautifulSoup

from wholesale_finder.scrapers.base_scraper import BaseScraper
from wholesale_finder.scrapers.extraction import (
    RawListing,
    absolute_url,
    parse_count,
    parse_price,
    parse_rating,
)

_RUN_PARAMS_RE = re.compile(
    r"window\.runParams\s*=\s*(\{.*?\})\s*;\s*(?:window\.|var |$)",
    re.DOTALL,
)

ITEM_URL = "https://www.aliexpress.com/item/{product_id}.html"


class AliExpressScraper(BaseScraper):
    """Scraper for aliexpress.com.

    The search page is rendered client-side; the listing data ships as
    a ``window.runParams`` JSON blob in an inline script.  That blob is
    the primary source, the CSS card cascade is the fallback for the
    mobile and ``.us`` variants that still render cards server-side.
    """

    SITE_ID = "aliexpress"

    # ------------------------------------------------------------------
    # runParams JSON extraction (primary)
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_run_params(soup: BeautifulSoup) -> list[dict[str, Any]]:
        """Extract the item list from the ``window.runParams`` blob."""
        for script in soup.find_all("script"):
            text = script.string
            if not text or "runParams" not in text:
                continue
            match = _RUN_PARAMS_RE.search(text)
            if not match:
                continue
            try:
                data: object = json.loads(match.group(1))
            except (json.JSONDecodeError, TypeError):
                continue
            node: object = data
            for key in ("data", "mods", "itemList", "content"):
                if not isinstance(node, dict):
                    node = None
                    break
                if key == "data" and key not in node:
                    continue
                node = node.get(key)
            if isinstance(node, list) and node:
                return [i for i in cast(list[Any], node) if isinstance(i, dict)]
        return []

    @staticmethod
    def _parse_json_item(item: dict[str, Any]) -> RawListing | None:
        """Convert one ``itemList.content`` entry to a listing."""
        title_block = item.get("title") or {}
        title = str(
            title_block.get("displayTitle")
            if isinstance(title_block, dict)
            else title_block
        ).strip()

        prices = item.get("prices") or {}
        sale = prices.get("salePrice") or {}
        min_price = sale.get("minPrice")
        if isinstance(min_price, (int, float)):
            price = float(min_price)
        else:
            price = parse_price(str(min_price or ""), "USD")
        if price <= 0:
            price = parse_price(str(sale.get("formattedPrice", "")), "USD")
        if not title or title == "None" or price <= 0:
            return None

        product_id = str(item.get("productId", "") or "")
        image = (item.get("image") or {}).get("imgUrl", "")
        store = item.get("store") or {}
        evaluation = item.get("evaluation") or {}
        trade = item.get("trade") or {}
        return RawListing(
            title=title[:200],
            price=price,
            product_url=(
                ITEM_URL.format(product_id=product_id) if product_id else ""
            ),
            image_url=absolute_url(str(image), "https://www.aliexpress.com"),
            seller_name=store.get("storeName"),
            rating=parse_rating(str(evaluation.get("starRating", ""))),
            transactions=parse_count(str(trade.get("tradeDesc", ""))),
        )

    def _parse_listing(self, soup: BeautifulSoup) -> list[RawListing]:
        items = self._extract_run_params(soup)
        listings: list[RawListing] = []
        for index, item in enumerate(items[: self.max_products]):
            try:
                listing = self._parse_json_item(item)
            except (ValueError, TypeError, AttributeError) as exc:
                self.logger.debug(
                    "[aliexpress] runParams item %d failed to parse: %s",
                    index,
                    exc,
                )
                continue
            if listing is not None:
                listings.append(listing)
        if listings:
            self.logger.info(
                "[aliexpress] runParams yielded %d listing(s)",
                len(listings),
            )
            return listings
        return super()._parse_listing(soup)
