"""
Use case: Execute a market order against a user's wallet.

Input: ExecuteTradeCommand (user_id, symbol, side, quantity)
Output: TradeResult (transaction id, or the rejection reason)
Side effects: Applies the balance change and appends a completed ledger
    record inside one unit of work, so both are committed or neither.
Failure cases (returned, never raised): InvalidAmount, UnknownSymbol,
    PriceUnavailable, BelowMinimumTradeValue, InsufficientFiatBalance,
    InsufficientAssetBalance, ConcurrencyConflict, Timeout.
"""

import asyncio
import logging
from decimal import Decimal
from typing import Awaitable, TypeVar
from uuid import UUID

from app.application.exchange.dtos import ExecuteTradeCommand, TradeResult
from app.domain.exchange.entities import (
    PriceQuote,
    Side,
    Transaction,
    TransactionStatus,
    TransactionType,
    Wallet,
)
from app.domain.exchange.errors import (
    ConcurrencyConflictError,
    DependencyTimeoutError,
    OperationRejectedError,
    PriceUnavailableError,
)
from app.domain.exchange.ports import PriceSource, UnitOfWorkFactory
from app.domain.exchange.settlement import (
    TradeCosts,
    TradePolicy,
    balance_deltas,
    ensure_minimum_trade_value,
    ensure_sufficient_funds,
    normalize_quantity,
    normalize_symbol,
    price_trade,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PRICE_TIMEOUT = 5.0
DEFAULT_STORE_TIMEOUT = 5.0
DEFAULT_MAX_ATTEMPTS = 3


class ExecuteTradeUseCase:
    """Validates, prices and settles a market order exactly once.

    Validation runs in a fixed order (quantity, symbol, price, minimum
    value, funds). Settlement reads the wallet, re-checks funds against
    that snapshot, applies a version-conditioned balance delta and
    appends the ledger record in a single unit of work. Optimistic
    concurrency conflicts are retried from a fresh snapshot up to
    ``max_attempts`` times.
    """

    def __init__(
        self,
        price_source: PriceSource,
        uow_factory: UnitOfWorkFactory,
        policy: TradePolicy,
        price_timeout: float = DEFAULT_PRICE_TIMEOUT,
        store_timeout: float = DEFAULT_STORE_TIMEOUT,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        signup_bonus: Decimal = Decimal("0"),
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._price_source = price_source
        self._uow_factory = uow_factory
        self._policy = policy
        self._price_timeout = price_timeout
        self._store_timeout = store_timeout
        self._max_attempts = max_attempts
        self._signup_bonus = signup_bonus

    async def execute(self, command: ExecuteTradeCommand) -> TradeResult:
        """Run the trade execution use case.

        Args:
            command: The trade request.

        Returns:
            TradeResult with the ledger id on success, or the specific
            rejection reason. A rejected trade leaves no balance change
            and no ledger record behind.
        """
        logger.info(
            "Executing trade user=%s side=%s symbol=%s quantity=%s",
            command.user_id,
            command.side.value,
            command.symbol,
            command.quantity,
        )
        try:
            transaction_id = await self._execute(command)
        except OperationRejectedError as exc:
            logger.info(
                "Trade rejected user=%s reason=%s: %s",
                command.user_id,
                exc.kind.value,
                exc.message,
            )
            return TradeResult.failure(exc.kind)

        logger.info(
            "Trade settled user=%s transaction_id=%s", command.user_id, transaction_id
        )
        return TradeResult.success(transaction_id)

    async def _execute(self, command: ExecuteTradeCommand) -> UUID:
        quantity = normalize_quantity(command.quantity, self._policy)
        symbol = normalize_symbol(command.symbol, self._policy)
        quote = await self._fetch_quote(symbol)

        costs = price_trade(command.side, quantity, quote.unit_price, self._policy)
        ensure_minimum_trade_value(costs, self._policy)

        attempt = 1
        while True:
            try:
                return await self._bounded(
                    self._settle(command.user_id, command.side, symbol, quantity, quote, costs),
                    "wallet store",
                    self._store_timeout,
                )
            except ConcurrencyConflictError:
                if attempt >= self._max_attempts:
                    logger.warning(
                        "Giving up on trade for user=%s after %d conflicting attempts",
                        command.user_id,
                        attempt,
                    )
                    raise
                logger.warning(
                    "Wallet conflict for user=%s (attempt %d/%d), retrying from a fresh snapshot",
                    command.user_id,
                    attempt,
                    self._max_attempts,
                )
                attempt += 1

    async def _fetch_quote(self, symbol: str) -> PriceQuote:
        quote = await self._bounded(
            self._price_source.get_unit_price(symbol), "price source", self._price_timeout
        )
        if quote.symbol != symbol or quote.unit_price <= 0:
            raise PriceUnavailableError(symbol, "invalid quote")
        return quote

    async def _settle(
        self,
        user_id: str,
        side: Side,
        symbol: str,
        quantity: Decimal,
        quote: PriceQuote,
        costs: TradeCosts,
    ) -> UUID:
        async with self._uow_factory() as uow:
            wallet = await uow.wallets.read_wallet(user_id)
            is_new = wallet is None
            if is_new:
                wallet = Wallet.opened(
                    user_id,
                    [self._policy.fiat_currency, *sorted(self._policy.tradable_assets)],
                    bonus_balance=self._signup_bonus,
                )

            ensure_sufficient_funds(wallet, side, symbol, quantity, costs, self._policy)

            if is_new:
                await uow.wallets.create_wallet(wallet)
            await uow.wallets.apply_balance_delta(
                wallet, balance_deltas(side, symbol, quantity, costs, self._policy)
            )
            transaction_id = await uow.ledger.append(
                Transaction(
                    user_id=user_id,
                    type=TransactionType(side.value),
                    symbol=symbol,
                    amount=quantity,
                    price=quote.unit_price,
                    total=costs.gross,
                    fee=costs.fee,
                    status=TransactionStatus.COMPLETED,
                )
            )
            await uow.commit()
        return transaction_id

    @staticmethod
    async def _bounded(awaitable: Awaitable[T], dependency: str, seconds: float) -> T:
        """Await with an upper bound, cancelling the work on expiry."""
        try:
            return await asyncio.wait_for(awaitable, timeout=seconds)
        except asyncio.TimeoutError:
            logger.warning("%s timed out after %ss", dependency, seconds)
            raise DependencyTimeoutError(dependency, seconds) from None
