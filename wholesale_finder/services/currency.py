# wholesale_finder/services/currency.py

"""Exchange-rate cache and conversion of listing prices to KRW."""

import logging
import math
import time
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any

from curl_cffi import requests as curl_requests

from wholesale_finder.config.settings import Settings
from wholesale_finder.models.exchange_rate import ExchangeRate
from wholesale_finder.models.product import Product
from wholesale_finder.scrapers.fetch_client import FetchError

logger = logging.getLogger("wholesale_finder.currency")

Clock = Callable[[], float]


class ExchangeRateProvider:
    """Reads USD and CNY rates from an exchangerate.host style endpoint."""

    def __init__(
        self,
        url: str | None = None,
        local_currency: str | None = None,
        timeout: int | None = None,
    ) -> None:
        self.url = url or Settings.EXCHANGE_RATE_URL
        self.local_currency = local_currency or Settings.LOCAL_CURRENCY
        self.timeout = timeout or Settings.EXCHANGE_RATE_TIMEOUT

    async def _rate(self, session: Any, base: str) -> float:
        params = {"base": base, "symbols": self.local_currency}
        try:
            resp = await session.get(
                self.url, params=params, timeout=self.timeout
            )
        except Exception as exc:
            raise FetchError(self.url, f"rate request failed: {exc}") from exc
        if resp.status_code != 200:
            raise FetchError(self.url, f"HTTP {resp.status_code}")
        try:
            data: dict[str, Any] = resp.json()
            return float(data["rates"][self.local_currency])
        except (ValueError, KeyError, TypeError) as exc:
            raise FetchError(
                self.url, f"unexpected rate payload for {base}: {exc}"
            ) from exc

    async def fetch(self) -> ExchangeRate:
        """Fetch both rates; raise :class:`FetchError` on any failure."""
        async with curl_requests.AsyncSession(
            impersonate=Settings.IMPERSONATE_BROWSER
        ) as session:
            usd = await self._rate(session, "USD")
            cny = await self._rate(session, "CNY")
        return ExchangeRate(
            usd_local=usd,
            cny_local=cny,
            last_updated=datetime.now().isoformat(timespec="seconds"),
        )


class ExchangeRateCache:
    """In-memory exchange-rate snapshot with a time-to-live.

    ``now`` is always passed in so expiry can be tested without sleeping.
    A failed refresh reuses the last snapshot even when expired, and
    only falls back to ``Settings.FALLBACK_RATES`` when none exists.
    Concurrent refreshes are not coalesced; each just overwrites the
    snapshot with equivalent data.
    """

    def __init__(
        self,
        provider: ExchangeRateProvider | None = None,
        ttl: float | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        self.provider = provider or ExchangeRateProvider()
        self.ttl = ttl if ttl is not None else Settings.EXCHANGE_RATE_TTL
        self.clock = clock
        self._snapshot: ExchangeRate | None = None
        self._fetched_at: float = 0.0

    def get(self, now: float) -> ExchangeRate | None:
        """Return the cached snapshot if it is still fresh at ``now``."""
        if self._snapshot is None:
            return None
        if now - self._fetched_at >= self.ttl:
            return None
        return self._snapshot

    async def refresh(self, now: float) -> ExchangeRate:
        try:
            snapshot = await self.provider.fetch()
        except FetchError as exc:
            if self._snapshot is not None:
                logger.warning(
                    "Exchange-rate refresh failed (%s), reusing snapshot "
                    "from %s",
                    exc,
                    self._snapshot.last_updated,
                )
                return self._snapshot
            logger.warning(
                "Exchange-rate refresh failed (%s), using fallback rates",
                exc,
            )
            return ExchangeRate(
                usd_local=Settings.FALLBACK_RATES["USD"],
                cny_local=Settings.FALLBACK_RATES["CNY"],
                last_updated=datetime.now().isoformat(timespec="seconds"),
            )
        self._snapshot = snapshot
        self._fetched_at = now
        logger.info(
            "Exchange rates refreshed: USD=%.2f CNY=%.2f",
            snapshot.usd_local,
            snapshot.cny_local,
        )
        return snapshot

    async def rates(self) -> ExchangeRate:
        now = self.clock()
        cached = self.get(now)
        if cached is not None:
            return cached
        return await self.refresh(now)


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


class CurrencyConverter:
    """Converts listing prices to the local currency (KRW)."""

    def __init__(self, cache: ExchangeRateCache | None = None) -> None:
        self.cache = cache or ExchangeRateCache()
        self.local_currency = Settings.LOCAL_CURRENCY

    @staticmethod
    def normalize(price: float, currency: str, rates: ExchangeRate) -> int:
        """Convert ``price`` to a non-negative integer amount in KRW.

        Unknown currencies are treated as USD.
        """
        code = currency.upper()
        if code == Settings.LOCAL_CURRENCY:
            amount = float(price)
        elif code in ("CNY", "RMB"):
            amount = price * rates.cny_local
        else:
            amount = price * rates.usd_local
        return max(0, round_half_up(amount))

    async def rates(self) -> ExchangeRate:
        return await self.cache.rates()

    async def to_local(self, price: float, currency: str) -> int:
        return self.normalize(price, currency, await self.rates())

    def localize(self, product: Product, rates: ExchangeRate) -> Product:
        return product.with_local_price(
            self.normalize(product.price, product.currency, rates)
        )

    async def localize_all(self, products: Iterable[Product]) -> list[Product]:
        """Fill ``price_local`` on every product using one rate snapshot."""
        items = list(products)
        if not items:
            return []
        rates = await self.rates()
        return [self.localize(p, rates) for p in items]
