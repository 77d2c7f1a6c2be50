"""
PayPal Routes - Order creation and capture for token purchases.

NO DICTIONARIES - All requests/responses use Pydantic models.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from structlog import get_logger

from calculator_api.api.dependencies import (
    get_current_user,
    get_paypal_provider,
    get_token_service,
)
from calculator_api.config import settings
from calculator_api.exceptions import (
    DataIntegrityError,
    DuplicateCaptureError,
    InvalidTierError,
    PaymentCaptureError,
    PaymentProviderError,
    WriteVerificationError,
)
from calculator_api.models.api import (
    CaptureOrderRequest,
    CaptureOrderResponse,
    CreateOrderRequest,
    CreateOrderResponse,
    OrderLinkItem,
)
from calculator_api.models.domain import AuthenticatedUser, PurchaseMetadata
from calculator_api.observability.metrics import metrics
from calculator_api.services.payment_provider import OrderIntent, PaymentProvider
from calculator_api.services.tiers import get_tier
from calculator_api.services.tokens import TokenService

logger = get_logger(__name__)

router = APIRouter(prefix="/api/paypal", tags=["paypal"])


@router.post("/create-order", response_model=CreateOrderResponse)
async def create_order(
    request: CreateOrderRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    provider: PaymentProvider = Depends(get_paypal_provider),
) -> CreateOrderResponse:
    """
    Create a PayPal order for one tier.

    The user id, tier and token grant travel in the order's custom_id and
    come back with the capture.
    """
    try:
        tier = get_tier(request.tier)
    except InvalidTierError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid tier") from exc

    intent = OrderIntent(
        price=tier.price,
        currency=settings.paypal_currency,
        description=tier.description,
        metadata=PurchaseMetadata(user_id=user.id, tier=tier.tier_id, tokens=tier.tokens),
    )

    try:
        order = await provider.create_order(intent)
    except PaymentProviderError as exc:
        metrics.record_error("PaymentProviderError", "create_order")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Payment provider unavailable",
        ) from exc

    return CreateOrderResponse(
        id=order.order_id,
        status=order.status,
        links=[
            OrderLinkItem(href=link.href, rel=link.rel, method=link.method)
            for link in order.links
        ],
    )


@router.post(
    "/capture-order",
    response_model=CaptureOrderResponse,
    response_model_by_alias=True,
)
async def capture_order(
    request: CaptureOrderRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    provider: PaymentProvider = Depends(get_paypal_provider),
    service: TokenService = Depends(get_token_service),
) -> CaptureOrderResponse:
    """Capture an approved order and credit the purchased tokens."""
    try:
        capture = await provider.capture_order(request.order_id)
        credit = await service.credit_purchase(user, capture)
    except (PaymentProviderError, PaymentCaptureError) as exc:
        logger.warning(
            "paypal_capture_failed",
            user_id=user.id,
            order_id=request.order_id,
            error=str(exc),
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Payment capture failed",
        ) from exc
    except DuplicateCaptureError as exc:
        logger.warning(
            "paypal_capture_replayed",
            user_id=user.id,
            order_id=request.order_id,
            capture_id=exc.external_transaction_id,
        )
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Payment already credited",
        ) from exc
    except (WriteVerificationError, DataIntegrityError) as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Purchase credit failed: {exc}",
        ) from exc

    return CaptureOrderResponse(
        success=True,
        token_count=credit.token_count,
        tokens_added=credit.tokens_added,
    )
