"""
Shared fixtures for the exchange test suite.

Everything here is in-memory: no database file, no network.
"""

from decimal import Decimal

import pytest

from app.domain.exchange.settlement import TradePolicy
from app.infrastructure.exchange.fixed_price_source import FixedPriceSource
from app.infrastructure.exchange.memory_unit_of_work import (
    InMemoryExchangeStorage,
    InMemoryExchangeUnitOfWork,
)
from tests.factories import FIAT


@pytest.fixture
def policy() -> TradePolicy:
    """0.1% fee, minimum trade value 50, DOGE tradable but unpriced."""
    return TradePolicy(
        fiat_currency=FIAT,
        tradable_assets=frozenset({"BTC", "ETH", "USDT", "DOGE"}),
        fee_rate=Decimal("0.001"),
        min_quantity=Decimal("0.0001"),
        min_trade_value=Decimal("50"),
    )


@pytest.fixture
def prices() -> FixedPriceSource:
    return FixedPriceSource(
        {
            "BTC": Decimal("2000000"),
            "ETH": Decimal("80000"),
            "USDT": Decimal("50"),
        }
    )


@pytest.fixture
def storage() -> InMemoryExchangeStorage:
    return InMemoryExchangeStorage()


@pytest.fixture
def uow_factory(storage):
    return lambda: InMemoryExchangeUnitOfWork(storage)
