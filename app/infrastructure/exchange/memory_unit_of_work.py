"""
Adapter: In-memory wallet store and order ledger.

Implements the same ports and optimistic-concurrency contract as the SQL
adapter without a database. Writes are staged inside the unit of work and
published under a lock at commit time, after re-checking that every
touched wallet still has the version it was read at.

Used by the test suite and by the ``memory`` wallet backend.
"""

import asyncio
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Mapping, Optional
from uuid import UUID

from app.domain.exchange.entities import Transaction, TransactionType, Wallet, utcnow
from app.domain.exchange.errors import ConcurrencyConflictError
from app.domain.exchange.ports import ExchangeUnitOfWork, OrderLedger, WalletStore


@dataclass
class InMemoryExchangeStorage:
    """Committed state shared by every in-memory unit of work."""

    wallets: dict[str, Wallet] = field(default_factory=dict)
    transactions: list[Transaction] = field(default_factory=list)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def seed_wallet(self, wallet: Wallet) -> None:
        """Store a wallet directly, bypassing units of work."""
        self.wallets[wallet.user_id] = wallet


class InMemoryWalletStore(WalletStore):
    """Wallet store that stages writes on its unit of work."""

    def __init__(self, uow: "InMemoryExchangeUnitOfWork") -> None:
        self._uow = uow

    async def read_wallet(self, user_id: str) -> Optional[Wallet]:
        await asyncio.sleep(0)
        staged = self._uow._staged_wallets.get(user_id)
        if staged is not None:
            return staged
        return self._uow._storage.wallets.get(user_id)

    async def create_wallet(self, wallet: Wallet) -> None:
        if (
            wallet.user_id in self._uow._storage.wallets
            or wallet.user_id in self._uow._staged_wallets
        ):
            raise ConcurrencyConflictError(wallet.user_id)
        self._uow._staged_wallets[wallet.user_id] = wallet
        self._uow._expected_versions[wallet.user_id] = None

    async def apply_balance_delta(
        self, snapshot: Wallet, deltas: Mapping[str, Decimal]
    ) -> Wallet:
        current = await self.read_wallet(snapshot.user_id)
        if current is None or current.version != snapshot.version:
            raise ConcurrencyConflictError(snapshot.user_id)

        updated = snapshot.with_deltas(deltas, utcnow())
        self._uow._staged_wallets[snapshot.user_id] = updated
        self._uow._expected_versions.setdefault(snapshot.user_id, snapshot.version)
        return updated


class InMemoryOrderLedger(OrderLedger):
    """Append-only ledger that stages appends on its unit of work."""

    def __init__(self, uow: "InMemoryExchangeUnitOfWork") -> None:
        self._uow = uow

    def _visible(self) -> list[Transaction]:
        return [*self._uow._storage.transactions, *self._uow._staged_transactions]

    async def append(self, record: Transaction) -> UUID:
        self._uow._staged_transactions.append(record)
        return record.id

    async def get(self, transaction_id: UUID) -> Optional[Transaction]:
        for record in self._visible():
            if record.id == transaction_id:
                return record
        return None

    async def list_for_user(
        self,
        user_id: str,
        limit: int = 10,
        type: Optional[TransactionType] = None,
    ) -> list[Transaction]:
        records = [
            r
            for r in self._visible()
            if r.user_id == user_id and (type is None or r.type is type)
        ]
        records.sort(key=lambda r: r.created_at, reverse=True)
        return records[:limit]

    async def count_for_user(self, user_id: str) -> int:
        return sum(1 for r in self._visible() if r.user_id == user_id)


class InMemoryExchangeUnitOfWork(ExchangeUnitOfWork):
    """Unit of work over an InMemoryExchangeStorage."""

    def __init__(self, storage: InMemoryExchangeStorage) -> None:
        self._storage = storage
        self._staged_wallets: dict[str, Wallet] = {}
        # None marks a wallet created in this unit of work.
        self._expected_versions: dict[str, Optional[int]] = {}
        self._staged_transactions: list[Transaction] = []
        self.wallets = InMemoryWalletStore(self)
        self.ledger = InMemoryOrderLedger(self)

    async def commit(self) -> None:
        """Publish staged wallets and records if no wallet changed meanwhile.

        Raises:
            ConcurrencyConflictError: If another unit of work committed a
                change to a touched wallet first.
        """
        async with self._storage.lock:
            for user_id, expected in self._expected_versions.items():
                current = self._storage.wallets.get(user_id)
                if expected is None:
                    if current is not None:
                        raise ConcurrencyConflictError(user_id)
                elif current is None or current.version != expected:
                    raise ConcurrencyConflictError(user_id)

            self._storage.wallets.update(self._staged_wallets)
            self._storage.transactions.extend(self._staged_transactions)
        self._clear()

    async def rollback(self) -> None:
        self._clear()

    def _clear(self) -> None:
        self._staged_wallets.clear()
        self._expected_versions.clear()
        self._staged_transactions.clear()
