"""
SQLAlchemy table definitions for wallets and the order ledger.

Decimal amounts are stored as text so that precision is exact on every
backend (SQLite has no native decimal type).
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
)
from sqlalchemy.types import TypeDecorator

metadata = MetaData()


class DecimalText(TypeDecorator):
    """Stores ``Decimal`` values as their plain-notation string."""

    impl = String(64)
    cache_ok = True

    def process_bind_param(self, value: Optional[Decimal], dialect) -> Optional[str]:
        if value is None:
            return None
        return format(Decimal(value), "f")

    def process_result_value(self, value: Optional[str], dialect) -> Optional[Decimal]:
        if value is None:
            return None
        return Decimal(value)


class UtcDateTime(TypeDecorator):
    """Timezone-aware datetime that always round-trips as UTC."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


wallets = Table(
    "wallets",
    metadata,
    Column("user_id", String(128), primary_key=True),
    Column("version", Integer, nullable=False),
    Column("bonus_balance", DecimalText, nullable=False),
    Column("updated_at", UtcDateTime, nullable=False),
)

wallet_balances = Table(
    "wallet_balances",
    metadata,
    Column(
        "user_id",
        String(128),
        ForeignKey("wallets.user_id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("asset", String(16), primary_key=True),
    Column("balance", DecimalText, nullable=False),
)

transactions = Table(
    "transactions",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("user_id", String(128), nullable=False),
    Column("type", String(16), nullable=False),
    Column("symbol", String(16), nullable=True),
    Column("amount", DecimalText, nullable=False),
    Column("price", DecimalText, nullable=True),
    Column("total", DecimalText, nullable=False),
    Column("fee", DecimalText, nullable=False),
    Column("status", String(16), nullable=False),
    Column("payment_method_id", String(64), nullable=True),
    Column("created_at", UtcDateTime, nullable=False),
    Index("ix_transactions_user_created", "user_id", "created_at"),
)
