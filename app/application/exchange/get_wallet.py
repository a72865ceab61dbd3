"""
Use case: Get a user's wallet, opening it on first access.

Input: GetWalletQuery (user_id)
Output: WalletResult
Side effects: Persists the default wallet the first time a user is seen.
Failure cases: None expected; a concurrent first access is resolved by
    re-reading the wallet the other request created.
"""

import logging
from decimal import Decimal

from app.application.exchange.dtos import GetWalletQuery, WalletResult
from app.domain.exchange.entities import Wallet
from app.domain.exchange.errors import ConcurrencyConflictError
from app.domain.exchange.ports import UnitOfWorkFactory

logger = logging.getLogger(__name__)


class GetWalletUseCase:
    """Returns the wallet snapshot for a user, creating it lazily."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        assets: list[str],
        signup_bonus: Decimal = Decimal("0"),
    ) -> None:
        self._uow_factory = uow_factory
        self._assets = assets
        self._signup_bonus = signup_bonus

    async def execute(self, query: GetWalletQuery) -> WalletResult:
        """Run the get-wallet use case.

        Args:
            query: The request containing the user id.

        Returns:
            The current wallet snapshot.
        """
        async with self._uow_factory() as uow:
            wallet = await uow.wallets.read_wallet(query.user_id)
            if wallet is not None:
                return WalletResult.from_wallet(wallet)

            wallet = Wallet.opened(
                query.user_id, self._assets, bonus_balance=self._signup_bonus
            )
            try:
                await uow.wallets.create_wallet(wallet)
                await uow.commit()
            except ConcurrencyConflictError:
                logger.info("Wallet for user=%s opened concurrently", query.user_id)
            else:
                logger.info("Opened wallet for user=%s", query.user_id)
                return WalletResult.from_wallet(wallet)

        async with self._uow_factory() as uow:
            wallet = await uow.wallets.read_wallet(query.user_id)
        if wallet is None:
            raise ConcurrencyConflictError(query.user_id)
        return WalletResult.from_wallet(wallet)
