"""
Centralized error handlers for FastAPI.

Maps domain-specific errors to HTTP responses.
No stack traces or internal details are exposed to clients.
All error responses use the ErrorResponse schema.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.domain.exchange.errors import (
    ErrorKind,
    ExchangeDomainError,
    FundingAmountOutOfRangeError,
    OperationRejectedError,
    PaymentMethodNotFoundError,
    TransactionNotFoundError,
)

logger = logging.getLogger(__name__)

HTTP_404 = 404
HTTP_409 = 409
HTTP_422 = 422
HTTP_500 = 500
HTTP_503 = 503
HTTP_504 = 504

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.INVALID_AMOUNT: HTTP_422,
    ErrorKind.UNKNOWN_SYMBOL: HTTP_404,
    ErrorKind.PRICE_UNAVAILABLE: HTTP_503,
    ErrorKind.BELOW_MINIMUM_TRADE_VALUE: HTTP_422,
    ErrorKind.INSUFFICIENT_FIAT_BALANCE: HTTP_409,
    ErrorKind.INSUFFICIENT_ASSET_BALANCE: HTTP_409,
    ErrorKind.CONCURRENCY_CONFLICT: HTTP_409,
    ErrorKind.TIMEOUT: HTTP_504,
}


def status_for_kind(kind: Optional[ErrorKind]) -> int:
    """Return the HTTP status used for a rejection reason."""
    return STATUS_BY_KIND.get(kind, HTTP_500)


def _error_response(status_code: int, error: str, detail: str | None = None) -> JSONResponse:
    """Build a consistent JSON error response."""
    body: dict[str, str | None] = {"error": error}
    if detail:
        body["detail"] = detail
    return JSONResponse(status_code=status_code, content=body)


def register_error_handlers(app: FastAPI) -> None:
    """Register all domain error handlers on the FastAPI application.

    Args:
        app: The FastAPI application instance.
    """

    @app.exception_handler(OperationRejectedError)
    async def handle_rejected(
        _request: Request, exc: OperationRejectedError
    ) -> JSONResponse:
        """Handle expected rejections raised outside the trade executor."""
        logger.warning("Operation rejected (%s): %s", exc.kind.value, exc.message)
        return _error_response(status_for_kind(exc.kind), exc.kind.value, exc.user_message)

    @app.exception_handler(PaymentMethodNotFoundError)
    async def handle_payment_method_not_found(
        _request: Request, exc: PaymentMethodNotFoundError
    ) -> JSONResponse:
        """Handle unknown or inactive payment methods."""
        logger.warning("Payment method not found: %s", exc.method_id)
        return _error_response(HTTP_404, "Payment method not found")

    @app.exception_handler(FundingAmountOutOfRangeError)
    async def handle_funding_out_of_range(
        _request: Request, exc: FundingAmountOutOfRangeError
    ) -> JSONResponse:
        """Handle funding amounts outside the payment method limits."""
        logger.warning("Funding amount out of range: %s", exc.amount)
        return _error_response(
            HTTP_422,
            "Amount out of range",
            f"Amount must be between {exc.minimum} and {exc.maximum}",
        )

    @app.exception_handler(TransactionNotFoundError)
    async def handle_transaction_not_found(
        _request: Request, exc: TransactionNotFoundError
    ) -> JSONResponse:
        """Handle missing ledger records."""
        logger.warning("Transaction not found: %s", exc.transaction_id)
        return _error_response(HTTP_404, "Transaction not found")

    @app.exception_handler(ExchangeDomainError)
    async def handle_exchange_domain(
        _request: Request, exc: ExchangeDomainError
    ) -> JSONResponse:
        """Catch-all for unhandled exchange domain errors."""
        logger.error("Unhandled exchange domain error: %s", exc.message)
        return _error_response(HTTP_500, "Internal server error")

    @app.exception_handler(Exception)
    async def handle_unexpected(
        _request: Request, exc: Exception
    ) -> JSONResponse:
        """Catch-all for unexpected errors. Never exposes internals."""
        logger.exception("Unexpected error: %s", type(exc).__name__)
        return _error_response(HTTP_500, "Internal server error")
