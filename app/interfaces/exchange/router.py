"""
FastAPI router for the exchange bounded context.

All routes delegate to use cases. No business logic here.
Input shape is validated by Pydantic schemas; trade rejections come
back from the use case as values and are mapped to status codes here.
Other domain errors are mapped by the centralized error handlers.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse

from app.application.exchange.dtos import (
    ExecuteTradeCommand,
    GetPortfolioValueQuery,
    GetTransactionQuery,
    GetWalletQuery,
    ListTransactionsQuery,
    SubmitFundingCommand,
    TransactionResult,
)
from app.application.exchange.execute_trade import ExecuteTradeUseCase
from app.application.exchange.get_portfolio_value import GetPortfolioValueUseCase
from app.application.exchange.get_quotes import GetQuotesUseCase
from app.application.exchange.get_wallet import GetWalletUseCase
from app.application.exchange.list_transactions import (
    MAX_LIMIT,
    GetTransactionUseCase,
    ListTransactionsUseCase,
)
from app.application.exchange.submit_funding import SubmitFundingUseCase
from app.core.config import settings
from app.domain.exchange.entities import Side, TransactionType
from app.domain.exchange.payment_methods import active_payment_methods
from app.interfaces.exchange.dependencies import (
    get_execute_trade_use_case,
    get_list_transactions_use_case,
    get_portfolio_value_use_case,
    get_quotes_use_case,
    get_submit_funding_use_case,
    get_transaction_use_case,
    get_wallet_use_case,
)
from app.interfaces.exchange.schemas import (
    USER_ID_MAX_LEN,
    USER_ID_MIN_LEN,
    AssetValueItem,
    ErrorResponse,
    ExecuteTradeRequest,
    ExecuteTradeResponse,
    FundingRequest,
    PaymentMethodItem,
    PaymentMethodListResponse,
    PortfolioValueResponse,
    QuoteItem,
    QuoteListResponse,
    TransactionItem,
    TransactionListResponse,
    TransactionTypeFilter,
    WalletResponse,
)
from app.shared.errors.handlers import status_for_kind
from app.shared.security.rate_limiting import limiter

router = APIRouter(prefix="/exchange", tags=["exchange"])


def _transaction_item(result: TransactionResult) -> TransactionItem:
    return TransactionItem(
        id=result.id,
        user_id=result.user_id,
        type=result.type,
        symbol=result.symbol,
        amount=result.amount,
        price=result.price,
        total=result.total,
        fee=result.fee,
        status=result.status,
        payment_method_id=result.payment_method_id,
        created_at=result.created_at,
    )


@router.post(
    "/trades",
    response_model=ExecuteTradeResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"model": ExecuteTradeResponse},
        409: {"model": ExecuteTradeResponse},
        422: {"model": ExecuteTradeResponse},
        503: {"model": ExecuteTradeResponse},
        504: {"model": ExecuteTradeResponse},
    },
    summary="Execute a market order",
    description=(
        "Buy or sell a crypto asset at the current price. A 0.1% fee is "
        "charged. Rejections return ok=false with the reason."
    ),
)
@limiter.limit(settings.rate_limit_trade)
async def execute_trade(
    request: Request,
    payload: ExecuteTradeRequest,
    use_case: ExecuteTradeUseCase = Depends(get_execute_trade_use_case),
) -> JSONResponse:
    """Execute a buy or sell order for a user."""
    command = ExecuteTradeCommand(
        user_id=payload.user_id,
        symbol=payload.symbol,
        side=Side(payload.side.value),
        quantity=payload.quantity,
    )
    result = await use_case.execute(command)

    body = ExecuteTradeResponse(
        ok=result.ok,
        transaction_id=result.transaction_id,
        reason=result.reason.value if result.reason else None,
        message=result.message,
    )
    status_code = (
        status.HTTP_201_CREATED if result.ok else status_for_kind(result.reason)
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude_none=True),
    )


@router.get(
    "/wallets/{user_id}",
    response_model=WalletResponse,
    summary="Get wallet",
    description="Return the user's balances, opening a wallet on first access.",
)
async def get_wallet(
    user_id: str,
    use_case: GetWalletUseCase = Depends(get_wallet_use_case),
) -> WalletResponse:
    """Return the wallet of a user."""
    result = await use_case.execute(GetWalletQuery(user_id=user_id))
    return WalletResponse(
        user_id=result.user_id,
        balances=result.balances,
        bonus_balance=result.bonus_balance,
        version=result.version,
        updated_at=result.updated_at,
    )


@router.get(
    "/wallets/{user_id}/value",
    response_model=PortfolioValueResponse,
    responses={503: {"model": ErrorResponse}, 504: {"model": ErrorResponse}},
    summary="Value wallet",
    description="Total wallet value in fiat at current market prices.",
)
async def get_portfolio_value(
    user_id: str,
    use_case: GetPortfolioValueUseCase = Depends(get_portfolio_value_use_case),
) -> PortfolioValueResponse:
    """Value a user's wallet at current prices."""
    result = await use_case.execute(GetPortfolioValueQuery(user_id=user_id))
    return PortfolioValueResponse(
        user_id=result.user_id,
        fiat_currency=result.fiat_currency,
        fiat_balance=result.fiat_balance,
        bonus_balance=result.bonus_balance,
        assets=[
            AssetValueItem(
                symbol=a.symbol,
                balance=a.balance,
                unit_price=a.unit_price,
                value=a.value,
            )
            for a in result.assets
        ],
        total_value=result.total_value,
        total_value_usd=result.total_value_usd,
    )


@router.get(
    "/transactions",
    response_model=TransactionListResponse,
    summary="List transactions",
    description="A user's ledger records, newest first.",
)
async def list_transactions(
    user_id: str = Query(..., min_length=USER_ID_MIN_LEN, max_length=USER_ID_MAX_LEN),
    limit: int = Query(default=10, ge=1, le=MAX_LIMIT),
    type: Optional[TransactionTypeFilter] = Query(default=None),
    use_case: ListTransactionsUseCase = Depends(get_list_transactions_use_case),
) -> TransactionListResponse:
    """List recent transactions of a user."""
    query = ListTransactionsQuery(
        user_id=user_id,
        limit=limit,
        type=TransactionType(type.value) if type else None,
    )
    results = await use_case.execute(query)
    return TransactionListResponse(transactions=[_transaction_item(r) for r in results])


@router.get(
    "/transactions/{transaction_id}",
    response_model=TransactionItem,
    responses={404: {"model": ErrorResponse}},
    summary="Get transaction",
)
async def get_transaction(
    transaction_id: UUID,
    user_id: str = Query(..., min_length=USER_ID_MIN_LEN, max_length=USER_ID_MAX_LEN),
    use_case: GetTransactionUseCase = Depends(get_transaction_use_case),
) -> TransactionItem:
    """Return one ledger record owned by the user."""
    result = await use_case.execute(
        GetTransactionQuery(user_id=user_id, transaction_id=transaction_id)
    )
    return _transaction_item(result)


@router.post(
    "/deposits",
    response_model=TransactionItem,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
    summary="Request a deposit",
    description="Record a pending deposit through a payment method.",
)
async def submit_deposit(
    payload: FundingRequest,
    use_case: SubmitFundingUseCase = Depends(get_submit_funding_use_case),
) -> TransactionItem:
    """Submit a deposit request."""
    result = await use_case.execute(
        SubmitFundingCommand(
            user_id=payload.user_id,
            type=TransactionType.DEPOSIT,
            amount=payload.amount,
            payment_method_id=payload.payment_method_id,
        )
    )
    return _transaction_item(result)


@router.post(
    "/withdrawals",
    response_model=TransactionItem,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
    summary="Request a withdrawal",
    description="Record a pending withdrawal; the amount must not exceed the cash balance.",
)
async def submit_withdrawal(
    payload: FundingRequest,
    use_case: SubmitFundingUseCase = Depends(get_submit_funding_use_case),
) -> TransactionItem:
    """Submit a withdrawal request."""
    result = await use_case.execute(
        SubmitFundingCommand(
            user_id=payload.user_id,
            type=TransactionType.WITHDRAWAL,
            amount=payload.amount,
            payment_method_id=payload.payment_method_id,
        )
    )
    return _transaction_item(result)


@router.get(
    "/payment-methods",
    response_model=PaymentMethodListResponse,
    summary="List payment methods",
)
def list_payment_methods() -> PaymentMethodListResponse:
    """Return every active payment method."""
    return PaymentMethodListResponse(
        payment_methods=[
            PaymentMethodItem(
                id=m.id,
                name=m.name,
                type=m.type.value,
                min_amount=m.min_amount,
                max_amount=m.max_amount,
                fee=m.fee,
                fee_type=m.fee_type.value,
                settlement_time=m.settlement_time,
            )
            for m in active_payment_methods()
        ]
    )


@router.get(
    "/quotes",
    response_model=QuoteListResponse,
    responses={503: {"model": ErrorResponse}, 504: {"model": ErrorResponse}},
    summary="Market quotes",
    description="Current fiat prices of every tradable asset.",
)
async def get_quotes(
    use_case: GetQuotesUseCase = Depends(get_quotes_use_case),
) -> QuoteListResponse:
    """Return current quotes for all tradable assets."""
    results = await use_case.execute()
    return QuoteListResponse(
        quotes=[
            QuoteItem(symbol=q.symbol, unit_price=q.unit_price, as_of=q.as_of)
            for q in results
        ]
    )
