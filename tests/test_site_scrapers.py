# tests/test_site_scrapers.py

"""Tests for per-site scraper quirks (DHgate, Alibaba, 1688, AliExpress)."""

import json
import unittest
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

from bs4 import BeautifulSoup

from wholesale_finder.models.exchange_rate import ExchangeRate
from wholesale_finder.scrapers.alibaba_scraper import AlibabaScraper
from wholesale_finder.scrapers.aliexpress_scraper import AliExpressScraper
from wholesale_finder.scrapers.china1688_scraper import China1688Scraper
from wholesale_finder.scrapers.dhgate_scraper import DHgateScraper
from wholesale_finder.scrapers.fetch_client import FetchResponse
from wholesale_finder.services.currency import (
    CurrencyConverter,
    ExchangeRateCache,
)

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def _fixed_converter() -> CurrencyConverter:
    provider = MagicMock()
    provider.fetch = AsyncMock(
        return_value=ExchangeRate(1300.0, 180.0, "2026-10-19T09:00:00")
    )
    return CurrencyConverter(ExchangeRateCache(provider=provider))


def _load_fixture_soup(fixture_name: str) -> BeautifulSoup:
    """Load an HTML fixture file as a BeautifulSoup object."""
    with open(FIXTURES_DIR / fixture_name, encoding="utf-8") as f:
        return BeautifulSoup(f.read(), "lxml")


class TestDHgateTrustLevel(unittest.TestCase):
    """Store ratings map to High / Medium / Low."""

    def setUp(self) -> None:
        self.scraper = DHgateScraper(fetcher=MagicMock())

    def test_thresholds(self) -> None:
        self.assertEqual(self.scraper._trust_level(4.8), "High")
        self.assertEqual(self.scraper._trust_level(4.5), "Medium")
        self.assertEqual(self.scraper._trust_level(4.0), "Medium")
        self.assertEqual(self.scraper._trust_level(3.5), "Low")

    def test_missing_rating_uses_default(self) -> None:
        self.assertEqual(self.scraper._trust_level(None), "Medium")

    def test_fixture_cards(self) -> None:
        listings = self.scraper._parse_listing(
            _load_fixture_soup("dhgate_search.html")
        )
        levels = [
            self.scraper._build_product(item).seller.trust_level
            for item in listings
        ]
        self.assertEqual(levels, ["High", "Medium", "Low"])


class TestAlibabaScraper(unittest.TestCase):

    CARD = (
        '<div class="organic-offer-wrapper">'
        '<a title="TWS Earphones Bluetooth OEM" '
        'href="//www.alibaba.com/product-detail/TWS-Earphones_1600{n}.html'
        '?spm=a2700.galleryofferlist.{spm}">TWS Earphones</a>'
        '<div class="offer-price">$3.20 - $4.50</div>'
        '<div class="moq">Min. order: 500 pieces</div>'
        '<div class="supplier-name">Dongguan Audio Ltd.</div>'
        "</div>"
    )

    def _products(self, spm: str) -> list[str]:
        scraper = AlibabaScraper(fetcher=MagicMock())
        soup = BeautifulSoup(
            "<html><body>" + self.CARD.format(n=1, spm=spm) + "</body></html>",
            "lxml",
        )
        return [
            scraper._build_product(item).product_url
            for item in scraper._parse_listing(soup)
        ]

    def test_tracking_query_stripped(self) -> None:
        self.assertEqual(
            self._products("p_offer.1"),
            ["https://www.alibaba.com/product-detail/TWS-Earphones_16001.html"],
        )

    def test_ids_stable_across_tracking_params(self) -> None:
        scraper = AlibabaScraper(fetcher=MagicMock())

        def product_id(spm: str) -> str:
            soup = BeautifulSoup(self.CARD.format(n=1, spm=spm), "lxml")
            listing = scraper._parse_listing(soup)[0]
            return scraper._build_product(listing).id

        self.assertEqual(product_id("a"), product_id("b"))

    def test_supplier_fields(self) -> None:
        scraper = AlibabaScraper(fetcher=MagicMock())
        soup = BeautifulSoup(self.CARD.format(n=2, spm="x"), "lxml")
        product = scraper._build_product(scraper._parse_listing(soup)[0])
        self.assertEqual(product.price, 3.2)
        self.assertEqual(product.min_order, 500)
        self.assertEqual(product.seller.name, "Dongguan Audio Ltd.")
        self.assertEqual(product.seller.trust_level, "High")


class TestChina1688Scraper(unittest.TestCase):

    PAGE = (
        "<html><body>"
        '<div class="offer-item" data-offer-id="6543210">'
        '<div class="offer-title">无线蓝牙耳机 运动款</div>'
        '<div class="price">¥23.50</div>'
        "</div>"
        '<div class="offer-item" data-offer-id="111">'
        '<a title="手机壳 硅胶" href="https://detail.1688.com/offer/777.html">手机壳</a>'
        '<div class="price">￥3.8</div>'
        "</div>"
        "</body></html>"
    )

    def test_offer_id_builds_detail_url(self) -> None:
        scraper = China1688Scraper(fetcher=MagicMock())
        listings = scraper._parse_listing(BeautifulSoup(self.PAGE, "lxml"))

        self.assertEqual(len(listings), 2)
        self.assertEqual(listings[0].title, "无线蓝牙耳机 运动款")
        self.assertEqual(listings[0].price, 23.5)
        self.assertEqual(
            listings[0].product_url,
            "https://detail.1688.com/offer/6543210.html",
        )

    def test_existing_link_kept(self) -> None:
        scraper = China1688Scraper(fetcher=MagicMock())
        listings = scraper._parse_listing(BeautifulSoup(self.PAGE, "lxml"))
        self.assertEqual(
            listings[1].product_url, "https://detail.1688.com/offer/777.html"
        )

    def test_cny_default_seller(self) -> None:
        scraper = China1688Scraper(fetcher=MagicMock())
        listing = scraper._parse_listing(BeautifulSoup(self.PAGE, "lxml"))[0]
        product = scraper._build_product(listing)
        self.assertEqual(product.currency, "CNY")
        self.assertEqual(product.seller.name, "1688供应商")


class TestAliExpressScraper(unittest.IsolatedAsyncioTestCase):

    def test_run_params_extracted(self) -> None:
        items = AliExpressScraper._extract_run_params(
            _load_fixture_soup("aliexpress_search.html")
        )
        self.assertEqual(len(items), 3)

    def test_json_item_fields(self) -> None:
        items = AliExpressScraper._extract_run_params(
            _load_fixture_soup("aliexpress_search.html")
        )
        listing = AliExpressScraper._parse_json_item(items[0])
        assert listing is not None
        self.assertEqual(listing.title, "Wireless Earbuds Bluetooth 5.3 Headphones")
        self.assertEqual(listing.price, 7.49)
        self.assertEqual(
            listing.product_url, "https://www.aliexpress.com/item/1005006001.html"
        )
        self.assertEqual(listing.image_url, "https://ae01.alicdn.com/kf/earbuds-1.jpg")
        self.assertEqual(listing.seller_name, "Audio World Store")
        self.assertEqual(listing.rating, 4.7)
        self.assertEqual(listing.transactions, 5000)

    def test_formatted_price_used_without_min_price(self) -> None:
        items = AliExpressScraper._extract_run_params(
            _load_fixture_soup("aliexpress_search.html")
        )
        listing = AliExpressScraper._parse_json_item(items[1])
        assert listing is not None
        self.assertEqual(listing.price, 11.2)

    def test_item_without_price_skipped(self) -> None:
        self.assertIsNone(
            AliExpressScraper._parse_json_item(
                {"productId": "1", "title": {"displayTitle": "x"}, "prices": {}}
            )
        )

    def test_css_cards_used_without_run_params(self) -> None:
        scraper = AliExpressScraper(fetcher=MagicMock())
        soup = BeautifulSoup(
            '<div class="list-item"><a title="Phone holder for car" '
            'href="/item/42.html">holder</a>'
            '<span class="price-current">US $2.15</span></div>',
            "lxml",
        )
        listings = scraper._parse_listing(soup)
        self.assertEqual(len(listings), 1)
        self.assertEqual(
            listings[0].product_url, "https://www.aliexpress.com/item/42.html"
        )

    async def test_search_with_run_params_page(self) -> None:
        with open(FIXTURES_DIR / "aliexpress_search.html", encoding="utf-8") as f:
            html = f.read()
        fetcher = MagicMock()
        fetcher.fetch = AsyncMock(
            return_value=FetchResponse(
                url="https://www.aliexpress.com/wholesale", status_code=200, text=html
            )
        )
        scraper = AliExpressScraper(fetcher=fetcher, converter=_fixed_converter())

        result = await scraper.search("wireless earphones")

        self.assertEqual(result.provenance, "live")
        self.assertEqual(result.total_results, 2)
        self.assertEqual(result.products[0].price_local, 9737)
        self.assertTrue(all(p.site == "aliexpress" for p in result.products))

    @staticmethod
    def _run_params_page(items: list[object]) -> str:
        blob = json.dumps({"data": {"mods": {"itemList": {"content": items}}}})
        filler = "<p>Free shipping on orders over US $10.00 from local warehouses.</p>" * 20
        return (
            "<html><head><title>Earbuds - AliExpress</title></head><body>"
            f"<script>window.runParams = {blob};\nwindow.runConfigs = {{}};</script>"
            f"{filler}</body></html>"
        )

    async def test_malformed_item_skipped_rest_kept(self) -> None:
        items: list[object] = [
            {"productId": "1", "title": {"displayTitle": "Earbuds A"}, "prices": "n/a"},
            {
                "productId": "2",
                "title": {"displayTitle": "Earbuds B"},
                "prices": {"salePrice": {"minPrice": "US $3.50"}},
            },
            "not an item",
            {
                "productId": "3",
                "title": {"displayTitle": "Earbuds C"},
                "prices": {"salePrice": {"minPrice": 4.25}},
            },
        ]
        fetcher = MagicMock()
        fetcher.fetch = AsyncMock(
            return_value=FetchResponse(
                url="https://www.aliexpress.com/wholesale",
                status_code=200,
                text=self._run_params_page(items),
            )
        )
        scraper = AliExpressScraper(fetcher=fetcher, converter=_fixed_converter())

        result = await scraper.search("earbuds")

        self.assertEqual(result.provenance, "live")
        self.assertEqual([p.price for p in result.products], [3.5, 4.25])
        self.assertEqual(fetcher.fetch.await_count, 1)

    def test_non_dict_mods_yields_no_items(self) -> None:
        soup = BeautifulSoup(
            '<script>window.runParams = {"data": {"mods": []}};\nwindow.x = 1;</script>',
            "lxml",
        )
        self.assertEqual(AliExpressScraper._extract_run_params(soup), [])


if __name__ == "__main__":
    unittest.main()
