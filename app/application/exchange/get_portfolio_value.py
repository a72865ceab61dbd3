"""
Use case: Value a user's wallet at current market prices.

Input: GetPortfolioValueQuery (user_id)
Output: PortfolioValueResult
Side effects: None.
Failure cases: PriceUnavailableError when a held asset has no quote.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal

from app.application.exchange.dtos import (
    AssetValue,
    GetPortfolioValueQuery,
    PortfolioValueResult,
)
from app.domain.exchange.entities import Wallet
from app.domain.exchange.ports import PriceSource, UnitOfWorkFactory
from app.domain.exchange.settlement import TradePolicy

logger = logging.getLogger(__name__)


class GetPortfolioValueUseCase:
    """Computes the total fiat value of a wallet.

    Total value = fiat balance + bonus balance + sum over held assets of
    balance * unit price. A held asset without a quote fails the whole
    valuation rather than being counted as zero.
    """

    def __init__(
        self,
        price_source: PriceSource,
        uow_factory: UnitOfWorkFactory,
        policy: TradePolicy,
        usd_to_fiat_rate: Decimal,
    ) -> None:
        self._price_source = price_source
        self._uow_factory = uow_factory
        self._policy = policy
        self._usd_to_fiat_rate = usd_to_fiat_rate

    async def execute(self, query: GetPortfolioValueQuery) -> PortfolioValueResult:
        """Run the portfolio valuation use case.

        Args:
            query: The request containing the user id.

        Returns:
            The valuation with a per-asset breakdown.

        Raises:
            PriceUnavailableError: If any held asset cannot be priced.
        """
        async with self._uow_factory() as uow:
            wallet = await uow.wallets.read_wallet(query.user_id)
        if wallet is None:
            wallet = Wallet.opened(query.user_id, [self._policy.fiat_currency])

        held = sorted(
            asset
            for asset in self._policy.tradable_assets
            if wallet.balance_of(asset) > 0
        )
        quotes = await self._price_source.get_unit_prices(held) if held else {}

        step = self._policy.fiat_step
        assets = [
            AssetValue(
                symbol=asset,
                balance=wallet.balance_of(asset),
                unit_price=quotes[asset].unit_price,
                value=(wallet.balance_of(asset) * quotes[asset].unit_price).quantize(
                    step, rounding=ROUND_HALF_UP
                ),
            )
            for asset in held
        ]
        fiat_balance = wallet.balance_of(self._policy.fiat_currency)
        total = fiat_balance + wallet.bonus_balance + sum(
            (a.value for a in assets), Decimal("0")
        )

        logger.info("Valued wallet user=%s total=%s", query.user_id, total)

        return PortfolioValueResult(
            user_id=query.user_id,
            fiat_currency=self._policy.fiat_currency,
            fiat_balance=fiat_balance,
            bonus_balance=wallet.bonus_balance,
            assets=assets,
            total_value=total,
            total_value_usd=(total / self._usd_to_fiat_rate).quantize(
                step, rounding=ROUND_HALF_UP
            ),
        )
