"""
Use case: Submit a deposit or withdrawal request.

Input: SubmitFundingCommand (user_id, type, amount, payment_method_id)
Output: TransactionResult (a pending ledger record)
Side effects: Appends a pending record to the order ledger. Balances are
    not touched; the approval flow settles the request later.
Failure cases: InvalidAmountError, PaymentMethodNotFoundError,
    FundingAmountOutOfRangeError, InsufficientFiatBalanceError.
"""

import logging

from app.application.exchange.dtos import SubmitFundingCommand, TransactionResult
from app.domain.exchange.entities import (
    Transaction,
    TransactionStatus,
    TransactionType,
)
from app.domain.exchange.errors import (
    FundingAmountOutOfRangeError,
    InsufficientFiatBalanceError,
    InvalidAmountError,
    PaymentMethodNotFoundError,
)
from app.domain.exchange.payment_methods import calculate_fee, get_payment_method
from app.domain.exchange.ports import UnitOfWorkFactory
from app.domain.exchange.settlement import to_decimal

logger = logging.getLogger(__name__)

FUNDING_TYPES = (TransactionType.DEPOSIT, TransactionType.WITHDRAWAL)


class SubmitFundingUseCase:
    """Validates a funding request and records it as pending."""

    def __init__(self, uow_factory: UnitOfWorkFactory, fiat_currency: str) -> None:
        self._uow_factory = uow_factory
        self._fiat_currency = fiat_currency

    async def execute(self, command: SubmitFundingCommand) -> TransactionResult:
        """Run the funding submission use case.

        Args:
            command: The deposit or withdrawal request.

        Returns:
            The pending ledger record.

        Raises:
            InvalidAmountError: If the amount is not a positive finite number.
            PaymentMethodNotFoundError: If the method is unknown or inactive.
            FundingAmountOutOfRangeError: If outside the method limits.
            InsufficientFiatBalanceError: Withdrawal above the fiat balance.
        """
        if command.type not in FUNDING_TYPES:
            raise ValueError(f"Not a funding type: {command.type}")

        amount = to_decimal(command.amount)
        if amount <= 0:
            raise InvalidAmountError(command.amount)

        method = get_payment_method(command.payment_method_id)
        if method is None:
            raise PaymentMethodNotFoundError(command.payment_method_id)
        if not (method.min_amount <= amount <= method.max_amount):
            raise FundingAmountOutOfRangeError(
                str(amount), str(method.min_amount), str(method.max_amount)
            )

        record = Transaction(
            user_id=command.user_id,
            type=command.type,
            amount=amount,
            total=amount,
            fee=calculate_fee(amount, method),
            status=TransactionStatus.PENDING,
            payment_method_id=method.id,
        )

        async with self._uow_factory() as uow:
            if command.type is TransactionType.WITHDRAWAL:
                wallet = await uow.wallets.read_wallet(command.user_id)
                available = wallet.balance_of(self._fiat_currency) if wallet else 0
                if amount > available:
                    raise InsufficientFiatBalanceError(str(amount), str(available))
            await uow.ledger.append(record)
            await uow.commit()

        logger.info(
            "Submitted %s user=%s amount=%s method=%s id=%s",
            command.type.value,
            command.user_id,
            amount,
            method.id,
            record.id,
        )
        return TransactionResult.from_transaction(record)
