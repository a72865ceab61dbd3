"""
Use case: Get current quotes for every tradable asset.

Input: None
Output: list[QuoteResult]
Side effects: None.
Failure cases: PriceUnavailableError.
"""

from app.application.exchange.dtos import QuoteResult
from app.domain.exchange.ports import PriceSource


class GetQuotesUseCase:
    """Fetches the market ticker from the price source."""

    def __init__(self, price_source: PriceSource, symbols: list[str]) -> None:
        self._price_source = price_source
        self._symbols = symbols

    async def execute(self) -> list[QuoteResult]:
        quotes = await self._price_source.get_unit_prices(self._symbols)
        return [
            QuoteResult(symbol=q.symbol, unit_price=q.unit_price, as_of=q.as_of)
            for q in (quotes[s] for s in self._symbols)
        ]
