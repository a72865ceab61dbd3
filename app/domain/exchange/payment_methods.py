"""
Payment methods accepted for deposits and withdrawals.

A static catalog of local payment rails with their limits and fees.
Fees are either a fixed fiat amount or a percentage of the amount.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Optional


class PaymentMethodType(Enum):
    """Category of payment rail."""

    MOBILE_WALLET = "mobile_wallet"
    BANK_TRANSFER = "bank_transfer"
    CARD = "card"
    FAWRY = "fawry"
    INSTAPAY = "instapay"


class FeeType(Enum):
    """How a payment method fee is expressed."""

    FIXED = "fixed"
    PERCENTAGE = "percentage"


@dataclass(frozen=True)
class PaymentMethod:
    """A payment rail usable for funding a wallet."""

    id: str
    name: str
    type: PaymentMethodType
    min_amount: Decimal
    max_amount: Decimal
    fee: Decimal
    fee_type: FeeType
    settlement_time: str
    is_active: bool = True


def _method(
    id: str,
    name: str,
    type: PaymentMethodType,
    min_amount: str,
    max_amount: str,
    fee: str,
    settlement_time: str,
    fee_type: FeeType = FeeType.FIXED,
) -> PaymentMethod:
    return PaymentMethod(
        id=id,
        name=name,
        type=type,
        min_amount=Decimal(min_amount),
        max_amount=Decimal(max_amount),
        fee=Decimal(fee),
        fee_type=fee_type,
        settlement_time=settlement_time,
    )


PAYMENT_METHODS: tuple[PaymentMethod, ...] = (
    _method("vodafone_cash", "Vodafone Cash", PaymentMethodType.MOBILE_WALLET,
            "50", "50000", "5", "5-15 minutes"),
    _method("orange_cash", "Orange Cash", PaymentMethodType.MOBILE_WALLET,
            "50", "30000", "5", "5-15 minutes"),
    _method("etisalat_cash", "Etisalat Cash", PaymentMethodType.MOBILE_WALLET,
            "50", "25000", "5", "5-15 minutes"),
    _method("instapay", "InstaPay", PaymentMethodType.INSTAPAY,
            "100", "100000", "0", "Instant"),
    _method("fawry", "Fawry", PaymentMethodType.FAWRY,
            "20", "10000", "3", "10-30 minutes"),
    _method("cib_bank", "CIB Bank Transfer", PaymentMethodType.BANK_TRANSFER,
            "500", "500000", "0", "1-3 hours"),
    _method("nbe_bank", "NBE Bank Transfer", PaymentMethodType.BANK_TRANSFER,
            "500", "500000", "0", "1-3 hours"),
    _method("banque_misr", "Banque Misr Transfer", PaymentMethodType.BANK_TRANSFER,
            "500", "500000", "0", "1-3 hours"),
    _method("credit_card", "Credit/Debit Card", PaymentMethodType.CARD,
            "100", "50000", "2.9", "Instant", fee_type=FeeType.PERCENTAGE),
)


def get_payment_method(method_id: str) -> Optional[PaymentMethod]:
    """Return the active payment method with this id, or None."""
    for method in PAYMENT_METHODS:
        if method.id == method_id and method.is_active:
            return method
    return None


def active_payment_methods() -> list[PaymentMethod]:
    """Return every payment method currently accepting requests."""
    return [method for method in PAYMENT_METHODS if method.is_active]


def calculate_fee(amount: Decimal, method: PaymentMethod, places: int = 2) -> Decimal:
    """Return the fee charged by a payment method for an amount."""
    if method.fee_type is FeeType.FIXED:
        fee = method.fee
    else:
        fee = amount * method.fee / Decimal("100")
    return fee.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
