"""
Pydantic schemas for exchange API request/response validation.

These schemas enforce the shape of the API contract. Business rules
(positive quantities, minimum trade value, balances) are enforced by
the use cases so that they surface as domain outcomes.
No business logic belongs here.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field

SYMBOL_DESCRIPTION = "Crypto asset symbol, e.g. BTC"
SYMBOL_PATTERN = r"^[A-Za-z0-9]{2,10}$"
USER_ID_MIN_LEN = 1
USER_ID_MAX_LEN = 128


class TradeSide(str, Enum):
    BUY = "buy"
    SELL = "sell"


class TransactionTypeFilter(str, Enum):
    BUY = "buy"
    SELL = "sell"
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    service: str
    version: str
    wallet_backend: str
    price_source: str


class ErrorResponse(BaseModel):
    """Standard error response returned by centralized handlers."""

    error: str
    detail: Optional[str] = None


class ExecuteTradeRequest(BaseModel):
    """Request schema for the trade endpoint.

    Attributes:
        user_id: Authenticated wallet owner.
        symbol: Asset to trade.
        side: buy or sell.
        quantity: Asset quantity. Accepted as a number or numeric string;
            its validity is decided by the trade executor.
    """

    user_id: str = Field(..., min_length=USER_ID_MIN_LEN, max_length=USER_ID_MAX_LEN)
    symbol: str = Field(..., pattern=SYMBOL_PATTERN, description=SYMBOL_DESCRIPTION)
    side: TradeSide
    quantity: Union[Decimal, str] = Field(
        ..., description="Asset quantity to buy or sell"
    )


class ExecuteTradeResponse(BaseModel):
    """Response schema for the trade endpoint.

    Exactly one of ``transaction_id`` or ``reason`` is set.
    """

    ok: bool
    transaction_id: Optional[UUID] = None
    reason: Optional[str] = None
    message: Optional[str] = None


class WalletResponse(BaseModel):
    """Response schema for a wallet snapshot."""

    user_id: str
    balances: dict[str, Decimal]
    bonus_balance: Decimal
    version: int
    updated_at: Optional[datetime] = None


class AssetValueItem(BaseModel):
    symbol: str
    balance: Decimal
    unit_price: Decimal
    value: Decimal


class PortfolioValueResponse(BaseModel):
    """Response schema for a wallet valuation."""

    user_id: str
    fiat_currency: str
    fiat_balance: Decimal
    bonus_balance: Decimal
    assets: list[AssetValueItem]
    total_value: Decimal
    total_value_usd: Decimal


class FundingRequest(BaseModel):
    """Request schema for deposit and withdrawal endpoints.

    Attributes:
        user_id: Authenticated wallet owner.
        amount: Fiat amount.
        payment_method_id: Catalog id of the payment rail.
    """

    user_id: str = Field(..., min_length=USER_ID_MIN_LEN, max_length=USER_ID_MAX_LEN)
    amount: Union[Decimal, str]
    payment_method_id: str = Field(..., min_length=1, max_length=64)


class TransactionItem(BaseModel):
    """A single ledger record."""

    id: UUID
    user_id: str
    type: str
    symbol: Optional[str] = None
    amount: Decimal
    price: Optional[Decimal] = None
    total: Decimal
    fee: Decimal
    status: str
    payment_method_id: Optional[str] = None
    created_at: datetime


class TransactionListResponse(BaseModel):
    transactions: list[TransactionItem]


class PaymentMethodItem(BaseModel):
    """A payment method available for funding."""

    id: str
    name: str
    type: str
    min_amount: Decimal
    max_amount: Decimal
    fee: Decimal
    fee_type: str
    settlement_time: str


class PaymentMethodListResponse(BaseModel):
    payment_methods: list[PaymentMethodItem]


class QuoteItem(BaseModel):
    symbol: str
    unit_price: Decimal
    as_of: datetime


class QuoteListResponse(BaseModel):
    quotes: list[QuoteItem]
