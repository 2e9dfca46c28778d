# wholesale_finder/scrapers/dhgate_scraper.py

"""Scraper for dhgate.com."""

from wholesale_finder.scrapers.base_scraper import BaseScraper


class DHgateScraper(BaseScraper):
    """Scraper for dhgate.com (USD prices, single-piece MOQ).

    DHgate shows a 5-star store rating on listings and product pages,
    so the seller trust level is derived from it instead of a default.
    """

    SITE_ID = "dhgate"

    def _trust_level(self, rating: float | None) -> str | None:
        if rating is None:
            return super()._trust_level(rating)
        if rating > 4.5:
            return "High"
        if rating > 3.5:
            return "Medium"
        return "Low"
