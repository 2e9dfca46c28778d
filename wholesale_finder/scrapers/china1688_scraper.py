# wholesale_finder/scrapers/china1688_scraper.py

"""Scraper for 1688.com (CNY prices, Chinese-language search)."""

from dataclasses import replace

from bs4 import Tag

from wholesale_finder.scrapers.base_scraper import BaseScraper
from wholesale_finder.scrapers.extraction import RawListing

OFFER_URL = "https://detail.1688.com/offer/{offer_id}.html"


class China1688Scraper(BaseScraper):
    """Scraper for 1688.com.

    Offer cards often render the title as plain text and keep the offer
    id in ``data-offer-id``; the detail URL is rebuilt from it when the
    card has no usable link.
    """

    SITE_ID = "1688"

    @staticmethod
    def _offer_id(card: Tag) -> str:
        raw = card.get("data-offer-id")
        if not raw:
            nested = card.select_one("[data-offer-id]")
            raw = nested.get("data-offer-id") if nested else None
        return str(raw).strip() if raw else ""

    def _extract_card(self, card: Tag) -> RawListing | None:
        listing = super()._extract_card(card)
        if listing is None or listing.product_url:
            return listing
        offer_id = self._offer_id(card)
        if not offer_id:
            return listing
        return replace(listing, product_url=OFFER_URL.format(offer_id=offer_id))
