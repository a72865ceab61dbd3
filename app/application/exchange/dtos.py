"""
Data Transfer Objects for the exchange application layer.

DTOs carry data between the interface and application layers.
They are plain dataclasses with no behavior beyond simple constructors.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from app.domain.exchange.entities import Side, Transaction, TransactionType, Wallet
from app.domain.exchange.errors import ERROR_MESSAGES, ErrorKind


@dataclass(frozen=True)
class ExecuteTradeCommand:
    """Input DTO for executing a market order.

    Attributes:
        user_id: Identity of the wallet owner.
        symbol: Asset to buy or sell.
        side: BUY or SELL.
        quantity: Asset quantity, as received from the caller.
    """

    user_id: str
    symbol: str
    side: Side
    quantity: object


@dataclass(frozen=True)
class TradeResult:
    """Outcome of a trade: either a transaction id or a rejection reason.

    Attributes:
        ok: True when the trade settled.
        transaction_id: Ledger id of the settled trade.
        reason: Why the trade was rejected.
        message: User-facing message matching the reason.
    """

    ok: bool
    transaction_id: Optional[UUID] = None
    reason: Optional[ErrorKind] = None
    message: Optional[str] = None

    @classmethod
    def success(cls, transaction_id: UUID) -> "TradeResult":
        return cls(ok=True, transaction_id=transaction_id)

    @classmethod
    def failure(cls, reason: ErrorKind) -> "TradeResult":
        return cls(ok=False, reason=reason, message=ERROR_MESSAGES[reason])


@dataclass(frozen=True)
class GetWalletQuery:
    """Input DTO for reading a wallet."""

    user_id: str


@dataclass(frozen=True)
class WalletResult:
    """Output DTO for a wallet snapshot.

    Attributes:
        user_id: Identity of the wallet owner.
        balances: Balance per asset, fiat currency included.
        bonus_balance: Non-tradable bonus credit.
        version: Optimistic-concurrency version of the snapshot.
        updated_at: Time of the last mutation.
    """

    user_id: str
    balances: dict[str, Decimal]
    bonus_balance: Decimal
    version: int
    updated_at: Optional[datetime]

    @classmethod
    def from_wallet(cls, wallet: Wallet) -> "WalletResult":
        return cls(
            user_id=wallet.user_id,
            balances=dict(wallet.balances),
            bonus_balance=wallet.bonus_balance,
            version=wallet.version,
            updated_at=wallet.updated_at,
        )


@dataclass(frozen=True)
class GetPortfolioValueQuery:
    """Input DTO for valuing a wallet at current prices."""

    user_id: str


@dataclass(frozen=True)
class AssetValue:
    """Valuation of one asset holding."""

    symbol: str
    balance: Decimal
    unit_price: Decimal
    value: Decimal


@dataclass(frozen=True)
class PortfolioValueResult:
    """Output DTO for a wallet valuation.

    Attributes:
        user_id: Identity of the wallet owner.
        fiat_currency: Currency the values are expressed in.
        fiat_balance: Cash balance.
        bonus_balance: Bonus credit, counted in the total.
        assets: Per-asset valuation of non-zero holdings.
        total_value: Cash + bonus + sum of asset values.
        total_value_usd: Total converted back to USD.
    """

    user_id: str
    fiat_currency: str
    fiat_balance: Decimal
    bonus_balance: Decimal
    assets: list[AssetValue]
    total_value: Decimal
    total_value_usd: Decimal


@dataclass(frozen=True)
class SubmitFundingCommand:
    """Input DTO for a deposit or withdrawal request.

    Attributes:
        user_id: Identity of the wallet owner.
        type: DEPOSIT or WITHDRAWAL.
        amount: Fiat amount, as received from the caller.
        payment_method_id: Catalog id of the payment rail.
    """

    user_id: str
    type: TransactionType
    amount: object
    payment_method_id: str


@dataclass(frozen=True)
class ListTransactionsQuery:
    """Input DTO for a user's transaction history.

    Attributes:
        user_id: Identity of the wallet owner.
        limit: Maximum number of records to return.
        type: Optional filter on the record type.
    """

    user_id: str
    limit: int = 10
    type: Optional[TransactionType] = None


@dataclass(frozen=True)
class GetTransactionQuery:
    """Input DTO for a single ledger record."""

    user_id: str
    transaction_id: UUID


@dataclass(frozen=True)
class TransactionResult:
    """Output DTO for a ledger record."""

    id: UUID
    user_id: str
    type: str
    symbol: Optional[str]
    amount: Decimal
    price: Optional[Decimal]
    total: Decimal
    fee: Decimal
    status: str
    payment_method_id: Optional[str]
    created_at: datetime

    @classmethod
    def from_transaction(cls, record: Transaction) -> "TransactionResult":
        return cls(
            id=record.id,
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


@dataclass(frozen=True)
class QuoteResult:
    """Output DTO for a current market quote."""

    symbol: str
    unit_price: Decimal
    as_of: datetime
