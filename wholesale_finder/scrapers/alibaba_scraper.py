# wholesale_finder/scrapers/alibaba_scraper.py

"""Scraper for alibaba.com."""

from dataclasses import replace

from wholesale_finder.models.product import Product
from wholesale_finder.scrapers.base_scraper import BaseScraper
from wholesale_finder.scrapers.extraction import RawListing


class AlibabaScraper(BaseScraper):
    """Scraper for alibaba.com (USD prices, supplier MOQ).

    Listing links carry ``spm`` tracking query strings that change on
    every page load; they are dropped so product URLs and ids are stable.
    """

    SITE_ID = "alibaba"

    def _build_product(self, listing: RawListing) -> Product:
        if "/product-detail/" in listing.product_url:
            listing = replace(
                listing, product_url=listing.product_url.split("?", 1)[0]
            )
        return super()._build_product(listing)
