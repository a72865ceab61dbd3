"""
Trade settlement rules for market orders.

Pure functions that validate a trade request and compute its financial
effect: quantity normalisation, fee calculation, minimum checks, funds
checks and the balance deltas to apply. No IO.

Policy (fixed here so that every caller behaves identically):
    gross     = quantity * unit_price           (rounded to fiat precision)
    fee       = gross * fee_rate                (rounded to fiat precision)
    net_total = gross + fee  for buys           (fiat debited)
              = gross - fee  for sells          (fiat credited)

The minimum trade value applies to the gross value. For sells, only the
asset quantity is checked against the wallet; the fee is taken out of
the proceeds.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from app.domain.exchange.entities import Side, Wallet
from app.domain.exchange.errors import (
    BelowMinimumTradeValueError,
    InsufficientAssetBalanceError,
    InsufficientFiatBalanceError,
    InvalidAmountError,
    UnknownSymbolError,
)

ZERO = Decimal("0")


@dataclass(frozen=True)
class TradePolicy:
    """Configurable trading policy values.

    Attributes:
        fiat_currency: Balance key of the fiat currency.
        tradable_assets: Symbols that may currently be traded.
        fee_rate: Fraction of the gross value charged as fee.
        min_quantity: Smallest accepted asset quantity.
        min_trade_value: Smallest accepted gross value in fiat.
        fiat_places: Decimal places kept for fiat amounts.
        asset_places: Decimal places kept for asset quantities.
    """

    fiat_currency: str
    tradable_assets: frozenset[str]
    fee_rate: Decimal
    min_quantity: Decimal
    min_trade_value: Decimal
    fiat_places: int = 2
    asset_places: int = 8

    @property
    def fiat_step(self) -> Decimal:
        return Decimal(1).scaleb(-self.fiat_places)

    @property
    def asset_step(self) -> Decimal:
        return Decimal(1).scaleb(-self.asset_places)


@dataclass(frozen=True)
class TradeCosts:
    """Fiat-side figures of a priced trade."""

    gross: Decimal
    fee: Decimal
    net_total: Decimal


def to_decimal(value: object) -> Decimal:
    """Convert a user-supplied number to a finite Decimal.

    Floats go through ``str`` so that 0.001 stays 0.001.

    Raises:
        InvalidAmountError: If the value is not a finite number.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidAmountError(value)
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidAmountError(value) from None
    if not amount.is_finite():
        raise InvalidAmountError(value)
    return amount


def normalize_quantity(value: object, policy: TradePolicy) -> Decimal:
    """Validate a trade quantity and round it to asset precision.

    Raises:
        InvalidAmountError: If the quantity is not finite or not positive,
            rounds to zero, falls below the configured minimum, or has
            more digits than asset precision can represent.
    """
    quantity = to_decimal(value)
    if quantity <= ZERO:
        raise InvalidAmountError(value)
    try:
        quantity = quantity.quantize(policy.asset_step, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise InvalidAmountError(value) from None
    if quantity <= ZERO or quantity < policy.min_quantity:
        raise InvalidAmountError(value)
    return quantity


def normalize_symbol(symbol: str, policy: TradePolicy) -> str:
    """Return the canonical (upper-case) symbol if it is tradable.

    Raises:
        UnknownSymbolError: If the symbol is not a tradable asset.
    """
    canonical = (symbol or "").strip().upper()
    if canonical == policy.fiat_currency or canonical not in policy.tradable_assets:
        raise UnknownSymbolError(symbol)
    return canonical


def price_trade(
    side: Side, quantity: Decimal, unit_price: Decimal, policy: TradePolicy
) -> TradeCosts:
    """Compute gross value, fee and net total for a market order.

    Raises:
        InvalidAmountError: If the gross value cannot be held at fiat precision.
    """
    try:
        gross = (quantity * unit_price).quantize(policy.fiat_step, rounding=ROUND_HALF_UP)
        fee = (gross * policy.fee_rate).quantize(policy.fiat_step, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise InvalidAmountError(quantity) from None
    net_total = gross + fee if side is Side.BUY else gross - fee
    return TradeCosts(gross=gross, fee=fee, net_total=net_total)


def ensure_minimum_trade_value(costs: TradeCosts, policy: TradePolicy) -> None:
    """Reject trades whose gross value is under the policy floor."""
    if costs.gross < policy.min_trade_value:
        raise BelowMinimumTradeValueError(str(costs.gross), str(policy.min_trade_value))


def ensure_sufficient_funds(
    wallet: Wallet,
    side: Side,
    symbol: str,
    quantity: Decimal,
    costs: TradeCosts,
    policy: TradePolicy,
) -> None:
    """Check the wallet snapshot covers the trade.

    Raises:
        InsufficientFiatBalanceError: Buy whose net total exceeds fiat balance.
        InsufficientAssetBalanceError: Sell whose quantity exceeds asset balance.
    """
    if side is Side.BUY:
        available = wallet.balance_of(policy.fiat_currency)
        if available < costs.net_total:
            raise InsufficientFiatBalanceError(str(costs.net_total), str(available))
    else:
        available = wallet.balance_of(symbol)
        if available < quantity:
            raise InsufficientAssetBalanceError(symbol, str(quantity), str(available))


def balance_deltas(
    side: Side, symbol: str, quantity: Decimal, costs: TradeCosts, policy: TradePolicy
) -> dict[str, Decimal]:
    """Return the signed balance changes a trade applies to a wallet."""
    if side is Side.BUY:
        return {policy.fiat_currency: -costs.net_total, symbol: quantity}
    return {policy.fiat_currency: costs.net_total, symbol: -quantity}
