"""
Use cases: Read a user's transaction history from the order ledger.

Input: ListTransactionsQuery / GetTransactionQuery
Output: list[TransactionResult] / TransactionResult
Side effects: None.
Failure cases: TransactionNotFoundError.
"""

import logging

from app.application.exchange.dtos import (
    GetTransactionQuery,
    ListTransactionsQuery,
    TransactionResult,
)
from app.domain.exchange.errors import TransactionNotFoundError
from app.domain.exchange.ports import UnitOfWorkFactory

logger = logging.getLogger(__name__)

MAX_LIMIT = 100


class ListTransactionsUseCase:
    """Returns a user's most recent ledger records, newest first."""

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def execute(self, query: ListTransactionsQuery) -> list[TransactionResult]:
        """Run the list-transactions use case.

        Args:
            query: User id, limit (capped at 100) and optional type filter.

        Returns:
            Records ordered by created_at descending.
        """
        limit = max(1, min(query.limit, MAX_LIMIT))
        logger.debug("Listing transactions user=%s limit=%d", query.user_id, limit)

        async with self._uow_factory() as uow:
            records = await uow.ledger.list_for_user(
                query.user_id, limit=limit, type=query.type
            )
        return [TransactionResult.from_transaction(r) for r in records]


class GetTransactionUseCase:
    """Returns a single ledger record owned by the requesting user."""

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def execute(self, query: GetTransactionQuery) -> TransactionResult:
        """Run the get-transaction use case.

        Raises:
            TransactionNotFoundError: If the record does not exist or
                belongs to another user.
        """
        async with self._uow_factory() as uow:
            record = await uow.ledger.get(query.transaction_id)
        if record is None or record.user_id != query.user_id:
            raise TransactionNotFoundError(str(query.transaction_id))
        return TransactionResult.from_transaction(record)
