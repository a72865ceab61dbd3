"""
Adapter: SQL wallet store and order ledger.

Implements the WalletStore, OrderLedger and ExchangeUnitOfWork ports on
top of a SQLAlchemy async engine. Every unit of work owns one connection
and one database transaction; nothing is visible to other connections
until commit.

Optimistic concurrency: a balance change first bumps the wallet version
with ``UPDATE ... WHERE user_id = :u AND version = :v``. Zero affected
rows means the wallet changed since the snapshot was read.
"""

import logging
from decimal import Decimal
from typing import Mapping, Optional
from uuid import UUID

from sqlalchemy import func, insert, select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, AsyncTransaction

from app.domain.exchange.entities import (
    Transaction,
    TransactionStatus,
    TransactionType,
    Wallet,
    utcnow,
)
from app.domain.exchange.errors import ConcurrencyConflictError
from app.domain.exchange.ports import ExchangeUnitOfWork, OrderLedger, WalletStore
from app.infrastructure.exchange.tables import transactions, wallet_balances, wallets

logger = logging.getLogger(__name__)


def _is_lock_contention(exc: OperationalError) -> bool:
    """Return True for SQLite busy/locked errors raised under write contention."""
    return "locked" in str(exc.orig).lower()


class SqlWalletStore(WalletStore):
    """Wallet persistence bound to the connection of a unit of work."""

    def __init__(self, conn: AsyncConnection) -> None:
        self._conn = conn

    async def read_wallet(self, user_id: str) -> Optional[Wallet]:
        """Return the wallet snapshot for a user, or None.

        Args:
            user_id: Identity of the wallet owner.

        Returns:
            Wallet with all balances, or None if the user has no wallet.
        """
        row = (
            await self._conn.execute(select(wallets).where(wallets.c.user_id == user_id))
        ).mappings().first()
        if row is None:
            return None

        balance_rows = (
            await self._conn.execute(
                select(wallet_balances.c.asset, wallet_balances.c.balance).where(
                    wallet_balances.c.user_id == user_id
                )
            )
        ).all()

        return Wallet(
            user_id=row["user_id"],
            balances={asset: balance for asset, balance in balance_rows},
            bonus_balance=row["bonus_balance"],
            version=row["version"],
            updated_at=row["updated_at"],
        )

    async def create_wallet(self, wallet: Wallet) -> None:
        """Insert a new wallet and its balance rows.

        Raises:
            ConcurrencyConflictError: If the user already has a wallet.
        """
        try:
            await self._conn.execute(
                insert(wallets).values(
                    user_id=wallet.user_id,
                    version=wallet.version,
                    bonus_balance=wallet.bonus_balance,
                    updated_at=wallet.updated_at or utcnow(),
                )
            )
            if wallet.balances:
                await self._conn.execute(
                    insert(wallet_balances),
                    [
                        {"user_id": wallet.user_id, "asset": asset, "balance": balance}
                        for asset, balance in wallet.balances.items()
                    ],
                )
        except IntegrityError:
            raise ConcurrencyConflictError(wallet.user_id) from None

    async def apply_balance_delta(
        self, snapshot: Wallet, deltas: Mapping[str, Decimal]
    ) -> Wallet:
        """Apply balance deltas if the stored version still matches the snapshot.

        Args:
            snapshot: Wallet as read at the start of the operation.
            deltas: Signed amount per asset.

        Returns:
            The updated wallet.

        Raises:
            ConcurrencyConflictError: If the version no longer matches.
            NegativeBalanceError: If a balance would drop below zero.
        """
        updated = snapshot.with_deltas(deltas, utcnow())

        try:
            result = await self._conn.execute(
                update(wallets)
                .where(wallets.c.user_id == snapshot.user_id)
                .where(wallets.c.version == snapshot.version)
                .values(version=updated.version, updated_at=updated.updated_at)
            )
        except OperationalError as exc:
            if _is_lock_contention(exc):
                logger.warning("Wallet row locked for user=%s", snapshot.user_id)
                raise ConcurrencyConflictError(snapshot.user_id) from exc
            raise

        if result.rowcount != 1:
            logger.warning(
                "Stale wallet snapshot user=%s version=%d",
                snapshot.user_id,
                snapshot.version,
            )
            raise ConcurrencyConflictError(snapshot.user_id)

        for asset in deltas:
            balance = updated.balances[asset]
            result = await self._conn.execute(
                update(wallet_balances)
                .where(wallet_balances.c.user_id == snapshot.user_id)
                .where(wallet_balances.c.asset == asset)
                .values(balance=balance)
            )
            if result.rowcount == 0:
                await self._conn.execute(
                    insert(wallet_balances).values(
                        user_id=snapshot.user_id, asset=asset, balance=balance
                    )
                )

        return updated


class SqlOrderLedger(OrderLedger):
    """Append-only ledger bound to the connection of a unit of work."""

    def __init__(self, conn: AsyncConnection) -> None:
        self._conn = conn

    async def append(self, record: Transaction) -> UUID:
        """Insert a ledger record and return its id."""
        await self._conn.execute(
            insert(transactions).values(
                id=str(record.id),
                user_id=record.user_id,
                type=record.type.value,
                symbol=record.symbol,
                amount=record.amount,
                price=record.price,
                total=record.total,
                fee=record.fee,
                status=record.status.value,
                payment_method_id=record.payment_method_id,
                created_at=record.created_at,
            )
        )
        return record.id

    async def get(self, transaction_id: UUID) -> Optional[Transaction]:
        row = (
            await self._conn.execute(
                select(transactions).where(transactions.c.id == str(transaction_id))
            )
        ).mappings().first()
        return self._to_entity(row) if row is not None else None

    async def list_for_user(
        self,
        user_id: str,
        limit: int = 10,
        type: Optional[TransactionType] = None,
    ) -> list[Transaction]:
        """Return a user's records, newest first.

        Args:
            user_id: Identity of the wallet owner.
            limit: Maximum number of records.
            type: Optional filter by record type.
        """
        query = select(transactions).where(transactions.c.user_id == user_id)
        if type is not None:
            query = query.where(transactions.c.type == type.value)
        query = query.order_by(transactions.c.created_at.desc()).limit(limit)

        rows = (await self._conn.execute(query)).mappings().all()
        return [self._to_entity(row) for row in rows]

    async def count_for_user(self, user_id: str) -> int:
        return (
            await self._conn.execute(
                select(func.count())
                .select_from(transactions)
                .where(transactions.c.user_id == user_id)
            )
        ).scalar_one()

    @staticmethod
    def _to_entity(row) -> Transaction:
        return Transaction(
            id=UUID(row["id"]),
            user_id=row["user_id"],
            type=TransactionType(row["type"]),
            symbol=row["symbol"],
            amount=row["amount"],
            price=row["price"],
            total=row["total"],
            fee=row["fee"],
            status=TransactionStatus(row["status"]),
            payment_method_id=row["payment_method_id"],
            created_at=row["created_at"],
        )


class SqlExchangeUnitOfWork(ExchangeUnitOfWork):
    """One database transaction spanning wallet and ledger writes."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._conn: Optional[AsyncConnection] = None
        self._tx: Optional[AsyncTransaction] = None

    async def __aenter__(self) -> "SqlExchangeUnitOfWork":
        self._conn = await self._engine.connect()
        self._tx = await self._conn.begin()
        self.wallets = SqlWalletStore(self._conn)
        self.ledger = SqlOrderLedger(self._conn)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            await self.rollback()
        finally:
            if self._conn is not None:
                await self._conn.close()
                self._conn = None

    async def commit(self) -> None:
        """Commit the database transaction.

        Raises:
            ConcurrencyConflictError: If the database refused the commit
                because of write contention.
        """
        try:
            await self._tx.commit()
        except OperationalError as exc:
            if _is_lock_contention(exc):
                raise ConcurrencyConflictError("unknown") from exc
            raise

    async def rollback(self) -> None:
        if self._tx is not None and self._tx.is_active:
            await self._tx.rollback()
