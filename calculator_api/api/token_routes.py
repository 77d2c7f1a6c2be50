"""
Token Routes - Balance, debit, ledger and tier catalog endpoints.

NO DICTIONARIES - All requests/responses use Pydantic models.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from calculator_api.api.dependencies import get_current_user, get_token_service
from calculator_api.config import settings
from calculator_api.exceptions import (
    DataIntegrityError,
    InsufficientTokensError,
    WriteVerificationError,
)
from calculator_api.models.api import (
    InsufficientTokensDetail,
    PurchaseTierItem,
    PurchaseTierListResponse,
    TokenBalanceResponse,
    TransactionItem,
    TransactionListResponse,
)
from calculator_api.models.domain import AuthenticatedUser, BalanceSnapshot
from calculator_api.services.tiers import list_tiers
from calculator_api.services.tokens import TokenService

router = APIRouter(prefix="/api/tokens", tags=["tokens"])


def balance_response(snapshot: BalanceSnapshot) -> TokenBalanceResponse:
    """Build the wire response for a balance snapshot."""
    return TokenBalanceResponse(token_count=snapshot.token_count, is_admin=snapshot.is_admin)


def insufficient_tokens_exception(exc: InsufficientTokensError) -> HTTPException:
    """403 carrying the error code the client uses to show the paywall."""
    detail = InsufficientTokensDetail(token_count=exc.balance)
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail=detail.model_dump(by_alias=True),
    )


@router.get("/balance", response_model=TokenBalanceResponse, response_model_by_alias=True)
async def get_balance(
    user: AuthenticatedUser = Depends(get_current_user),
    service: TokenService = Depends(get_token_service),
) -> TokenBalanceResponse:
    """
    Get the caller's token balance.

    First access creates the balance with the daily allowance; a balance
    last refreshed on an earlier UTC day is reset to the allowance.
    """
    try:
        snapshot = await service.get_balance(user)
    except (WriteVerificationError, DataIntegrityError) as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Balance update failed: {exc}",
        ) from exc

    return balance_response(snapshot)


@router.post("/use", response_model=TokenBalanceResponse, response_model_by_alias=True)
async def use_token(
    user: AuthenticatedUser = Depends(get_current_user),
    service: TokenService = Depends(get_token_service),
) -> TokenBalanceResponse:
    """Spend one token and return the remaining balance."""
    try:
        snapshot = await service.use_token(user)
    except InsufficientTokensError as exc:
        raise insufficient_tokens_exception(exc) from exc
    except (WriteVerificationError, DataIntegrityError) as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Token debit failed: {exc}",
        ) from exc

    return balance_response(snapshot)


@router.get(
    "/transactions",
    response_model=TransactionListResponse,
    response_model_by_alias=True,
)
async def list_transactions(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user: AuthenticatedUser = Depends(get_current_user),
    service: TokenService = Depends(get_token_service),
) -> TransactionListResponse:
    """Get the caller's token ledger, newest first."""
    entries = await service.list_transactions(user, limit=limit, offset=offset)

    return TransactionListResponse(
        transactions=[
            TransactionItem(
                id=str(entry.transaction_id),
                transaction_type=entry.transaction_type,
                token_amount=entry.token_amount,
                price_paid=f"{entry.price_paid:.2f}" if entry.price_paid is not None else None,
                external_transaction_id=entry.external_transaction_id,
                tier=entry.tier,
                created_at=entry.created_at.isoformat(),
            )
            for entry in entries
        ],
        limit=limit,
        offset=offset,
    )


@router.get("/tiers", response_model=PurchaseTierListResponse)
async def get_tiers() -> PurchaseTierListResponse:
    """Get the purchasable token tiers."""
    return PurchaseTierListResponse(
        tiers=[
            PurchaseTierItem(
                id=tier.tier_id,
                price=tier.price_value,
                tokens=tier.tokens,
                currency=settings.paypal_currency,
            )
            for tier in list_tiers()
        ]
    )
