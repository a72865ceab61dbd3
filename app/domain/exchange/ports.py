"""
Port interfaces (ABCs) for the exchange bounded context.

Ports define the contracts that the domain requires from the outside world.
Infrastructure adapters implement these interfaces.
The domain layer never depends on concrete implementations.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Callable, Mapping, Optional
from uuid import UUID

from app.domain.exchange.entities import (
    PriceQuote,
    Transaction,
    TransactionType,
    Wallet,
)


class PriceSource(ABC):
    """Port for obtaining current unit prices in the fiat currency."""

    @abstractmethod
    async def get_unit_price(self, symbol: str) -> PriceQuote:
        """Return the current quote for a symbol.

        Raises:
            PriceUnavailableError: If the symbol is unknown, the upstream
                feed errors, or the quote is stale.
        """
        raise NotImplementedError

    @abstractmethod
    async def get_unit_prices(self, symbols: list[str]) -> dict[str, PriceQuote]:
        """Return current quotes for several symbols, all or nothing."""
        raise NotImplementedError


class WalletStore(ABC):
    """Port for reading wallets and applying conditional balance changes."""

    @abstractmethod
    async def read_wallet(self, user_id: str) -> Optional[Wallet]:
        """Return the current wallet snapshot, or None if none exists yet."""
        raise NotImplementedError

    @abstractmethod
    async def create_wallet(self, wallet: Wallet) -> None:
        """Persist a brand-new wallet.

        Raises:
            ConcurrencyConflictError: If a wallet already exists for the user.
        """
        raise NotImplementedError

    @abstractmethod
    async def apply_balance_delta(
        self, snapshot: Wallet, deltas: Mapping[str, Decimal]
    ) -> Wallet:
        """Apply signed balance deltas conditioned on the snapshot version.

        Args:
            snapshot: The wallet as read at the start of the operation.
            deltas: Mapping of asset symbol to signed amount.

        Returns:
            The updated wallet (version incremented).

        Raises:
            ConcurrencyConflictError: If the stored wallet no longer matches
                the snapshot version.
            NegativeBalanceError: If a resulting balance would be negative.
        """
        raise NotImplementedError


class OrderLedger(ABC):
    """Port for the append-only record of trades and funding events."""

    @abstractmethod
    async def append(self, record: Transaction) -> UUID:
        """Append a record and return its identifier."""
        raise NotImplementedError

    @abstractmethod
    async def get(self, transaction_id: UUID) -> Optional[Transaction]:
        """Return a record by its identifier, or None if not found."""
        raise NotImplementedError

    @abstractmethod
    async def list_for_user(
        self,
        user_id: str,
        limit: int = 10,
        type: Optional[TransactionType] = None,
    ) -> list[Transaction]:
        """Return a user's records ordered by created_at descending."""
        raise NotImplementedError

    @abstractmethod
    async def count_for_user(self, user_id: str) -> int:
        """Return the number of records held for a user."""
        raise NotImplementedError


class ExchangeUnitOfWork(ABC):
    """Transactional scope spanning the wallet store and the order ledger.

    Changes made through ``wallets`` and ``ledger`` become visible to
    others only when ``commit()`` succeeds. Leaving the ``async with``
    block without committing (including through an exception or
    cancellation) discards all of them.

    Usage:
        async with uow_factory() as uow:
            wallet = await uow.wallets.read_wallet(user_id)
            await uow.wallets.apply_balance_delta(wallet, deltas)
            await uow.ledger.append(record)
            await uow.commit()
    """

    wallets: WalletStore
    ledger: OrderLedger

    async def __aenter__(self) -> "ExchangeUnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.rollback()

    @abstractmethod
    async def commit(self) -> None:
        """Atomically publish every staged change.

        Raises:
            ConcurrencyConflictError: If a staged wallet update lost the race.
        """
        raise NotImplementedError

    @abstractmethod
    async def rollback(self) -> None:
        """Discard staged changes. A no-op after a successful commit."""
        raise NotImplementedError


UnitOfWorkFactory = Callable[[], ExchangeUnitOfWork]
