"""
API Models - Pydantic models for request/response validation.

NO DICTIONARIES - All data structures are strongly typed.

Wire names are camelCase to match the browser client; Python attributes
stay snake_case.
"""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TransactionType(str, Enum):
    """Ledger transaction type enumeration."""

    USAGE = "usage"
    PURCHASE = "purchase"


class CamelModel(BaseModel):
    """Base model accepting both field names and camelCase aliases."""

    model_config = ConfigDict(populate_by_name=True)


# ============================================================================
# Auth Models
# ============================================================================


class RedirectUrlResponse(CamelModel):
    """GET /api/oauth/google/redirect_url response."""

    redirect_url: str = Field(..., alias="redirectUrl")


class CreateSessionRequest(CamelModel):
    """POST /api/sessions request body."""

    code: str | None = Field(None, max_length=2048)


class SuccessResponse(CamelModel):
    """Generic success acknowledgement."""

    success: bool = True


class CurrentUserResponse(CamelModel):
    """GET /api/users/me response."""

    id: str
    email: str
    name: str | None = None
    picture: str | None = None
    is_admin: bool = Field(False, alias="isAdmin")


# ============================================================================
# Token Models
# ============================================================================


class TokenBalanceResponse(CamelModel):
    """GET /api/tokens/balance and POST /api/tokens/use response."""

    token_count: int = Field(..., ge=0, alias="tokenCount")
    is_admin: bool = Field(False, alias="isAdmin")


class InsufficientTokensDetail(CamelModel):
    """403 detail body for the paywall prompt."""

    error: Literal["insufficient_tokens"] = "insufficient_tokens"
    message: str = "Insufficient tokens"
    token_count: int = Field(0, alias="tokenCount")


class TransactionItem(CamelModel):
    """Single ledger row."""

    id: str
    transaction_type: TransactionType = Field(..., alias="transactionType")
    token_amount: int = Field(..., alias="tokenAmount")
    price_paid: str | None = Field(None, alias="pricePaid")
    external_transaction_id: str | None = Field(None, alias="externalTransactionId")
    tier: str | None = None
    created_at: str = Field(..., alias="createdAt")


class TransactionListResponse(CamelModel):
    """GET /api/tokens/transactions response."""

    transactions: list[TransactionItem]
    limit: int
    offset: int


class PurchaseTierItem(CamelModel):
    """Single purchase tier in the catalog."""

    id: str
    price: str
    tokens: int
    currency: str


class PurchaseTierListResponse(CamelModel):
    """GET /api/tokens/tiers response."""

    tiers: list[PurchaseTierItem]


# ============================================================================
# PayPal Models
# ============================================================================


class CreateOrderRequest(CamelModel):
    """POST /api/paypal/create-order request body."""

    tier: str = Field(..., min_length=1, max_length=50)


class OrderLinkItem(CamelModel):
    """HATEOAS link returned by PayPal."""

    href: str
    rel: str
    method: str | None = None


class CreateOrderResponse(CamelModel):
    """POST /api/paypal/create-order response (PayPal order subset)."""

    id: str
    status: str
    links: list[OrderLinkItem] = Field(default_factory=list)


class CaptureOrderRequest(CamelModel):
    """POST /api/paypal/capture-order request body."""

    order_id: str = Field(..., min_length=1, max_length=64, alias="orderId")

    @field_validator("order_id")
    @classmethod
    def validate_order_id(cls, v: str) -> str:
        """PayPal order ids are alphanumeric; reject anything else before building a URL."""
        if not v.isalnum():
            raise ValueError("orderId must be alphanumeric")
        return v


class CaptureOrderResponse(CamelModel):
    """POST /api/paypal/capture-order response."""

    success: bool = True
    token_count: int = Field(..., alias="tokenCount")
    tokens_added: int = Field(..., alias="tokensAdded")


# ============================================================================
# Formula Models
# ============================================================================


class VariableItem(CamelModel):
    """Formula variable description."""

    symbol: str
    name: str
    unit: str | None = None


class FormulaItem(CamelModel):
    """Formula description (solvers are server-side only)."""

    id: str
    name: str
    equation: str
    variables: list[VariableItem]
    solvable_for: list[str] = Field(..., alias="solvableFor")


class FormulaCategoryItem(CamelModel):
    """Formula category with its formulas."""

    id: str
    name: str
    formulas: list[FormulaItem]


class FormulaCatalogResponse(CamelModel):
    """GET /api/formulas response."""

    categories: list[FormulaCategoryItem]


class CalculateRequest(CamelModel):
    """POST /api/formulas/{formula_id}/calculate request body."""

    solve_for: str = Field(..., min_length=1, max_length=20, alias="solveFor")
    values: dict[str, float] = Field(default_factory=dict)


class QuadraticRoots(CamelModel):
    """Roots of a quadratic equation."""

    root1: float
    root2: float


class CalculateResponse(CamelModel):
    """POST /api/formulas/{formula_id}/calculate response."""

    formula_id: str = Field(..., alias="formulaId")
    solve_for: str = Field(..., alias="solveFor")
    result: float | QuadraticRoots
    token_count: int = Field(..., alias="tokenCount")
    is_admin: bool = Field(False, alias="isAdmin")


# ============================================================================
# Health Check
# ============================================================================


class HealthResponse(BaseModel):
    """GET /health response."""

    status: str
    database: str
    version: str
    timestamp: str
