"""
Dependency injection for the exchange bounded context.

Provides FastAPI dependency functions that wire infrastructure
adapters into use cases via constructor injection.
These are the composition root for the exchange context.
"""

import logging
from typing import Optional

import httpx

from app.application.exchange.execute_trade import ExecuteTradeUseCase
from app.application.exchange.get_portfolio_value import GetPortfolioValueUseCase
from app.application.exchange.get_quotes import GetQuotesUseCase
from app.application.exchange.get_wallet import GetWalletUseCase
from app.application.exchange.list_transactions import (
    GetTransactionUseCase,
    ListTransactionsUseCase,
)
from app.application.exchange.submit_funding import SubmitFundingUseCase
from app.core.config import settings
from app.domain.exchange.ports import PriceSource, UnitOfWorkFactory
from app.domain.exchange.settlement import TradePolicy
from app.infrastructure.exchange.coingecko_price_source import CoinGeckoPriceSource
from app.infrastructure.exchange.database import get_engine
from app.infrastructure.exchange.fixed_price_source import FixedPriceSource
from app.infrastructure.exchange.memory_unit_of_work import (
    InMemoryExchangeStorage,
    InMemoryExchangeUnitOfWork,
)
from app.infrastructure.exchange.sql_unit_of_work import SqlExchangeUnitOfWork

logger = logging.getLogger(__name__)

_memory_storage: Optional[InMemoryExchangeStorage] = None
_http_client: Optional[httpx.AsyncClient] = None
_price_source: Optional[PriceSource] = None


def get_trade_policy() -> TradePolicy:
    """Build the trading policy from application settings."""
    return TradePolicy(
        fiat_currency=settings.fiat_currency,
        tradable_assets=frozenset(settings.tradable_assets),
        fee_rate=settings.fee_rate,
        min_quantity=settings.min_trade_quantity,
        min_trade_value=settings.min_trade_value,
        fiat_places=settings.fiat_decimal_places,
        asset_places=settings.asset_decimal_places,
    )


def get_wallet_assets() -> list[str]:
    """Fiat currency first, then every tradable asset."""
    return [settings.fiat_currency, *sorted(settings.tradable_assets)]


def get_uow_factory() -> UnitOfWorkFactory:
    """Return a factory producing units of work for the configured backend."""
    global _memory_storage
    if settings.wallet_backend == "memory":
        if _memory_storage is None:
            _memory_storage = InMemoryExchangeStorage()
        storage = _memory_storage
        return lambda: InMemoryExchangeUnitOfWork(storage)

    engine = get_engine()
    return lambda: SqlExchangeUnitOfWork(engine)


def get_price_source() -> PriceSource:
    """Return the process-wide price source for the configured provider."""
    global _http_client, _price_source
    if _price_source is not None:
        return _price_source

    if settings.price_source == "fixed":
        _price_source = FixedPriceSource(settings.fixed_prices)
    else:
        _http_client = httpx.AsyncClient(
            base_url=settings.coingecko_base_url,
            timeout=settings.price_timeout_seconds,
            headers={"Accept": "application/json"},
        )
        _price_source = CoinGeckoPriceSource(
            client=_http_client,
            coin_ids=settings.coingecko_ids,
            usd_to_fiat_rate=settings.usd_to_fiat_rate,
            max_age_seconds=settings.price_max_age_seconds,
        )
    logger.info("Using %s price source", settings.price_source)
    return _price_source


async def close_price_source() -> None:
    """Release the shared HTTP client, if one was opened."""
    global _http_client, _price_source
    if _http_client is not None:
        await _http_client.aclose()
    _http_client = None
    _price_source = None


def get_execute_trade_use_case() -> ExecuteTradeUseCase:
    """Build ExecuteTradeUseCase with its infrastructure dependencies."""
    return ExecuteTradeUseCase(
        price_source=get_price_source(),
        uow_factory=get_uow_factory(),
        policy=get_trade_policy(),
        price_timeout=settings.price_timeout_seconds,
        store_timeout=settings.store_timeout_seconds,
        max_attempts=settings.max_settlement_attempts,
        signup_bonus=settings.signup_bonus,
    )


def get_wallet_use_case() -> GetWalletUseCase:
    """Build GetWalletUseCase with its infrastructure dependencies."""
    return GetWalletUseCase(
        uow_factory=get_uow_factory(),
        assets=get_wallet_assets(),
        signup_bonus=settings.signup_bonus,
    )


def get_portfolio_value_use_case() -> GetPortfolioValueUseCase:
    """Build GetPortfolioValueUseCase with its infrastructure dependencies."""
    return GetPortfolioValueUseCase(
        price_source=get_price_source(),
        uow_factory=get_uow_factory(),
        policy=get_trade_policy(),
        usd_to_fiat_rate=settings.usd_to_fiat_rate,
    )


def get_submit_funding_use_case() -> SubmitFundingUseCase:
    """Build SubmitFundingUseCase with its infrastructure dependencies."""
    return SubmitFundingUseCase(
        uow_factory=get_uow_factory(),
        fiat_currency=settings.fiat_currency,
    )


def get_list_transactions_use_case() -> ListTransactionsUseCase:
    """Build ListTransactionsUseCase with its infrastructure dependencies."""
    return ListTransactionsUseCase(uow_factory=get_uow_factory())


def get_transaction_use_case() -> GetTransactionUseCase:
    """Build GetTransactionUseCase with its infrastructure dependencies."""
    return GetTransactionUseCase(uow_factory=get_uow_factory())


def get_quotes_use_case() -> GetQuotesUseCase:
    """Build GetQuotesUseCase with its infrastructure dependencies."""
    return GetQuotesUseCase(
        price_source=get_price_source(),
        symbols=sorted(settings.tradable_assets),
    )
