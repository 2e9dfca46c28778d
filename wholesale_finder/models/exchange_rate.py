# wholesale_finder/models/exchange_rate.py

"""Exchange-rate snapshot model."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class ExchangeRate:
    """USD and CNY rates expressed in the local currency."""

    usd_local: float
    cny_local: float
    last_updated: str  # ISO-8601

    def formatted(self, local_currency: str = "KRW") -> str:
        """Human-readable one-liner shown next to search results."""
        unit = "원" if local_currency == "KRW" else f" {local_currency}"
        try:
            stamp = datetime.fromisoformat(self.last_updated).strftime(
                "%Y-%m-%d %H:%M"
            )
        except ValueError:
            stamp = self.last_updated
        return (
            f"1 USD = {self.usd_local:,.2f}{unit}, "
            f"1 CNY = {self.cny_local:,.2f}{unit} ({stamp} 기준)"
        )

    def to_dict(self, local_currency: str = "KRW") -> dict[str, Any]:
        return {
            f"USD_{local_currency}": self.usd_local,
            f"CNY_{local_currency}": self.cny_local,
            "lastUpdated": self.last_updated,
        }
