"""
Domain entities for the exchange bounded context.

Entities represent core business objects with identity and lifecycle.
They contain no framework imports and no IO operations.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Mapping, Optional
from uuid import UUID, uuid4

from app.domain.exchange.errors import NegativeBalanceError

ZERO = Decimal("0")


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class Side(Enum):
    """Direction of a market order."""

    BUY = "buy"
    SELL = "sell"


class TransactionType(Enum):
    """Kind of event recorded in the order ledger."""

    BUY = "buy"
    SELL = "sell"
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"


class TransactionStatus(Enum):
    """Lifecycle status of a ledger record."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class PriceQuote:
    """Current unit price of an asset, expressed in the fiat currency."""

    symbol: str
    unit_price: Decimal
    as_of: datetime


@dataclass(frozen=True)
class Wallet:
    """Per-user balances across the fiat currency and crypto assets.

    ``version`` is bumped on every persisted mutation and is the
    token used for optimistic concurrency control by wallet stores.
    """

    user_id: str
    balances: Mapping[str, Decimal]
    bonus_balance: Decimal = ZERO
    version: int = 0
    updated_at: Optional[datetime] = None

    def balance_of(self, asset: str) -> Decimal:
        """Return the balance held for an asset (zero when absent)."""
        return self.balances.get(asset, ZERO)

    def with_deltas(self, deltas: Mapping[str, Decimal], at: datetime) -> "Wallet":
        """Return the wallet that results from applying signed deltas.

        Raises:
            NegativeBalanceError: If any resulting balance would be below zero.
        """
        balances = dict(self.balances)
        for asset, delta in deltas.items():
            new_balance = balances.get(asset, ZERO) + delta
            if new_balance < ZERO:
                raise NegativeBalanceError(self.user_id, asset)
            balances[asset] = new_balance
        return replace(
            self, balances=balances, version=self.version + 1, updated_at=at
        )

    @classmethod
    def opened(
        cls,
        user_id: str,
        assets: list[str],
        bonus_balance: Decimal = ZERO,
        at: Optional[datetime] = None,
    ) -> "Wallet":
        """Build the default wallet given to a user on first access."""
        return cls(
            user_id=user_id,
            balances={asset: ZERO for asset in assets},
            bonus_balance=bonus_balance,
            version=0,
            updated_at=at or utcnow(),
        )


@dataclass(frozen=True)
class Transaction:
    """A single order-ledger record (trade or funding event).

    Records are append-only: once completed they are never edited,
    corrections are new compensating records.
    """

    user_id: str
    type: TransactionType
    amount: Decimal
    total: Decimal
    fee: Decimal
    status: TransactionStatus
    symbol: Optional[str] = None
    price: Optional[Decimal] = None
    payment_method_id: Optional[str] = None
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=utcnow)
