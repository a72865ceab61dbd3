"""
Adapter: Fixed price source.

Implements the PriceSource port with a static price table.
Intended for local development and tests; never used as a fallback
for a failing live feed.
"""

from decimal import Decimal
from typing import Mapping

from app.domain.exchange.entities import PriceQuote, utcnow
from app.domain.exchange.errors import PriceUnavailableError
from app.domain.exchange.ports import PriceSource


class FixedPriceSource(PriceSource):
    """Serves configured prices stamped with the current time."""

    def __init__(self, prices: Mapping[str, Decimal]) -> None:
        self._prices = dict(prices)

    def set_price(self, symbol: str, price: Decimal) -> None:
        self._prices[symbol] = price

    def remove_price(self, symbol: str) -> None:
        self._prices.pop(symbol, None)

    async def get_unit_price(self, symbol: str) -> PriceQuote:
        price = self._prices.get(symbol)
        if price is None:
            raise PriceUnavailableError(symbol, "not configured")
        return PriceQuote(symbol=symbol, unit_price=price, as_of=utcnow())

    async def get_unit_prices(self, symbols: list[str]) -> dict[str, PriceQuote]:
        return {symbol: await self.get_unit_price(symbol) for symbol in symbols}
