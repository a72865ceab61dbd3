"""
Domain-specific errors for the exchange bounded context.

All errors raised from the domain layer must be defined here.
Operation rejections carry an ErrorKind so that the trade executor
can return them as values; everything else is mapped to HTTP
responses at the interface layer.
No framework imports allowed.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Reason an exchange operation was rejected."""

    INVALID_AMOUNT = "InvalidAmount"
    UNKNOWN_SYMBOL = "UnknownSymbol"
    PRICE_UNAVAILABLE = "PriceUnavailable"
    BELOW_MINIMUM_TRADE_VALUE = "BelowMinimumTradeValue"
    INSUFFICIENT_FIAT_BALANCE = "InsufficientFiatBalance"
    INSUFFICIENT_ASSET_BALANCE = "InsufficientAssetBalance"
    CONCURRENCY_CONFLICT = "ConcurrencyConflict"
    TIMEOUT = "Timeout"


ERROR_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.INVALID_AMOUNT: "Please enter a valid amount.",
    ErrorKind.UNKNOWN_SYMBOL: "This asset is not available for trading.",
    ErrorKind.PRICE_UNAVAILABLE: "Price data is not available right now. Please try again shortly.",
    ErrorKind.BELOW_MINIMUM_TRADE_VALUE: "The trade value is below the minimum allowed.",
    ErrorKind.INSUFFICIENT_FIAT_BALANCE: "Insufficient cash balance for this purchase.",
    ErrorKind.INSUFFICIENT_ASSET_BALANCE: "Insufficient asset balance for this sale.",
    ErrorKind.CONCURRENCY_CONFLICT: "Your wallet changed while the trade was processed. Please retry.",
    ErrorKind.TIMEOUT: "The trade could not be completed in time. Please retry.",
}

RETRYABLE_KINDS = frozenset({ErrorKind.CONCURRENCY_CONFLICT, ErrorKind.TIMEOUT})


class ExchangeDomainError(Exception):
    """Base error for all exchange domain errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class OperationRejectedError(ExchangeDomainError):
    """Base for expected, user-facing rejections of an operation."""

    kind: ErrorKind

    @property
    def user_message(self) -> str:
        """Return the message surfaced to end users for this rejection."""
        return ERROR_MESSAGES[self.kind]


class InvalidAmountError(OperationRejectedError):
    """Raised when an amount is non-finite, non-positive or below minimum."""

    kind = ErrorKind.INVALID_AMOUNT

    def __init__(self, amount: object) -> None:
        super().__init__(f"Invalid amount: {amount}")
        self.amount = amount


class UnknownSymbolError(OperationRejectedError):
    """Raised when an asset symbol is not recognized or not tradable."""

    kind = ErrorKind.UNKNOWN_SYMBOL

    def __init__(self, symbol: str) -> None:
        super().__init__(f"Unknown or non-tradable symbol: {symbol}")
        self.symbol = symbol


class PriceUnavailableError(OperationRejectedError):
    """Raised when no current quote can be obtained for a symbol."""

    kind = ErrorKind.PRICE_UNAVAILABLE

    def __init__(self, symbol: str, reason: str = "no quote") -> None:
        super().__init__(f"Price unavailable for {symbol}: {reason}")
        self.symbol = symbol
        self.reason = reason


class BelowMinimumTradeValueError(OperationRejectedError):
    """Raised when the gross trade value is under the policy floor."""

    kind = ErrorKind.BELOW_MINIMUM_TRADE_VALUE

    def __init__(self, value: str, minimum: str) -> None:
        super().__init__(f"Trade value {value} is below the minimum of {minimum}")
        self.value = value
        self.minimum = minimum


class InsufficientFiatBalanceError(OperationRejectedError):
    """Raised when the wallet lacks fiat funds for a purchase or withdrawal."""

    kind = ErrorKind.INSUFFICIENT_FIAT_BALANCE

    def __init__(self, required: str, available: str) -> None:
        super().__init__(
            f"Insufficient fiat balance: required {required}, available {available}"
        )
        self.required = required
        self.available = available


class InsufficientAssetBalanceError(OperationRejectedError):
    """Raised when the wallet holds less of an asset than is being sold."""

    kind = ErrorKind.INSUFFICIENT_ASSET_BALANCE

    def __init__(self, symbol: str, required: str, available: str) -> None:
        super().__init__(
            f"Insufficient {symbol} balance: required {required}, available {available}"
        )
        self.symbol = symbol
        self.required = required
        self.available = available


class ConcurrencyConflictError(OperationRejectedError):
    """Raised when a wallet changed between snapshot read and conditional write."""

    kind = ErrorKind.CONCURRENCY_CONFLICT

    def __init__(self, user_id: str) -> None:
        super().__init__(f"Wallet for user {user_id} was modified concurrently")
        self.user_id = user_id


class DependencyTimeoutError(OperationRejectedError):
    """Raised when the price source or wallet store does not answer in time."""

    kind = ErrorKind.TIMEOUT

    def __init__(self, dependency: str, seconds: float) -> None:
        super().__init__(f"{dependency} did not respond within {seconds}s")
        self.dependency = dependency
        self.seconds = seconds


class PaymentMethodNotFoundError(ExchangeDomainError):
    """Raised when a funding request names an unknown or inactive payment method."""

    def __init__(self, method_id: str) -> None:
        super().__init__(f"Payment method not found: {method_id}")
        self.method_id = method_id


class FundingAmountOutOfRangeError(ExchangeDomainError):
    """Raised when a funding amount is outside the payment method limits."""

    def __init__(self, amount: str, minimum: str, maximum: str) -> None:
        super().__init__(
            f"Amount {amount} must be between {minimum} and {maximum}"
        )
        self.amount = amount
        self.minimum = minimum
        self.maximum = maximum


class TransactionNotFoundError(ExchangeDomainError):
    """Raised when a ledger record cannot be found for the requesting user."""

    def __init__(self, transaction_id: str) -> None:
        super().__init__(f"Transaction not found: {transaction_id}")
        self.transaction_id = transaction_id


class NegativeBalanceError(ExchangeDomainError):
    """Raised when a balance mutation would drive a wallet balance below zero."""

    def __init__(self, user_id: str, asset: str) -> None:
        super().__init__(f"Balance of {asset} for user {user_id} would become negative")
        self.user_id = user_id
        self.asset = asset
