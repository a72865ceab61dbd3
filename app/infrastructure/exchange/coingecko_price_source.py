"""
Adapter: CoinGecko price source.

Implements the PriceSource port using the public CoinGecko
``/simple/price`` endpoint. Upstream quotes are in USD and are
converted to the fiat currency with a configured rate.

A failed, malformed or stale response is a hard failure
(PriceUnavailableError). There is no fallback to cached or
hard-coded prices.
"""

import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Callable, Mapping

import httpx

from app.domain.exchange.entities import PriceQuote, utcnow
from app.domain.exchange.errors import DependencyTimeoutError, PriceUnavailableError
from app.domain.exchange.ports import PriceSource

logger = logging.getLogger(__name__)

SIMPLE_PRICE_PATH = "/simple/price"
QUOTE_CURRENCY = "usd"


class CoinGeckoPriceSource(PriceSource):
    """Fetches live prices from CoinGecko and converts them to fiat.

    Args:
        client: Shared httpx client whose base_url points at the API root.
        coin_ids: Mapping from trading symbol to CoinGecko coin id.
        usd_to_fiat_rate: Multiplier from USD to the fiat currency.
        max_age_seconds: Quotes last updated longer ago are rejected.
        clock: Source of the current time (overridable in tests).
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        coin_ids: Mapping[str, str],
        usd_to_fiat_rate: Decimal,
        max_age_seconds: float = 120.0,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._client = client
        self._coin_ids = dict(coin_ids)
        self._usd_to_fiat_rate = usd_to_fiat_rate
        self._max_age = timedelta(seconds=max_age_seconds)
        self._clock = clock

    async def get_unit_price(self, symbol: str) -> PriceQuote:
        """Return the current fiat quote for one symbol."""
        quotes = await self.get_unit_prices([symbol])
        return quotes[symbol]

    async def get_unit_prices(self, symbols: list[str]) -> dict[str, PriceQuote]:
        """Return current fiat quotes for several symbols in one request.

        Raises:
            PriceUnavailableError: Unknown symbol, HTTP failure, malformed
                payload, missing or non-positive price, or stale quote.
            DependencyTimeoutError: The upstream request timed out.
        """
        if not symbols:
            return {}

        unknown = [s for s in symbols if s not in self._coin_ids]
        if unknown:
            raise PriceUnavailableError(unknown[0], "no upstream mapping")

        label = ",".join(symbols)
        params = {
            "ids": ",".join(self._coin_ids[s] for s in symbols),
            "vs_currencies": QUOTE_CURRENCY,
            "include_last_updated_at": "true",
        }

        try:
            response = await self._client.get(SIMPLE_PRICE_PATH, params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException as exc:
            logger.warning("CoinGecko request timed out for %s: %s", label, exc)
            timeout = self._client.timeout.read or 0.0
            raise DependencyTimeoutError("price source", timeout) from exc
        except httpx.HTTPError as exc:
            logger.warning("CoinGecko request failed for %s: %s", label, exc)
            raise PriceUnavailableError(label, "upstream error") from exc
        except ValueError as exc:
            logger.warning("CoinGecko returned a non-JSON body for %s", label)
            raise PriceUnavailableError(label, "malformed response") from exc

        if not isinstance(payload, dict):
            raise PriceUnavailableError(label, "malformed response")

        now = self._clock()
        return {s: self._parse_quote(s, payload.get(self._coin_ids[s]), now) for s in symbols}

    def _parse_quote(self, symbol: str, entry: object, now: datetime) -> PriceQuote:
        if not isinstance(entry, dict) or QUOTE_CURRENCY not in entry:
            raise PriceUnavailableError(symbol, "missing from response")

        try:
            usd_price = Decimal(str(entry[QUOTE_CURRENCY]))
        except (InvalidOperation, ValueError):
            raise PriceUnavailableError(symbol, "malformed price") from None
        if not usd_price.is_finite() or usd_price <= 0:
            raise PriceUnavailableError(symbol, "non-positive price")

        as_of = now
        last_updated = entry.get("last_updated_at")
        if last_updated is not None:
            try:
                as_of = datetime.fromtimestamp(int(last_updated), tz=timezone.utc)
            except (TypeError, ValueError, OverflowError, OSError):
                raise PriceUnavailableError(symbol, "malformed timestamp") from None
            if now - as_of > self._max_age:
                logger.warning("Stale CoinGecko quote for %s (as of %s)", symbol, as_of)
                raise PriceUnavailableError(symbol, "stale quote")

        return PriceQuote(
            symbol=symbol,
            unit_price=usd_price * self._usd_to_fiat_rate,
            as_of=as_of,
        )
