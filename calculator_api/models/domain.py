"""
Domain Models - Internal business logic models using dataclasses.

NO DICTIONARIES - All data structures are strongly typed immutable dataclasses.
"""

import json
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from calculator_api.models.api import TransactionType


@dataclass(frozen=True)
class AuthenticatedUser:
    """User resolved from the session cookie via the users service."""

    id: str
    email: str
    name: str | None = None
    picture: str | None = None

    def __post_init__(self) -> None:
        """Validate user identity fields."""
        if not self.id:
            raise ValueError("User id cannot be empty")
        if not self.email:
            raise ValueError("User email cannot be empty")


@dataclass(frozen=True)
class BalanceSnapshot:
    """Immutable token balance state for one user."""

    user_id: str
    token_count: int
    is_admin: bool
    last_refresh_date: date | None = None

    def __post_init__(self) -> None:
        """Validate balance constraints."""
        if self.token_count < 0:
            raise ValueError(f"Token count cannot be negative: {self.token_count}")


@dataclass(frozen=True)
class PurchaseMetadata:
    """
    Metadata embedded in the PayPal order's custom_id.

    Serialized as {"userId": ..., "tier": ..., "tokens": ...} so the capture
    response carries the grant back to us.
    """

    user_id: str
    tier: str
    tokens: int

    def __post_init__(self) -> None:
        """Validate metadata fields."""
        if not self.user_id:
            raise ValueError("Purchase metadata user_id cannot be empty")
        if self.tokens <= 0:
            raise ValueError(f"Token grant must be positive: {self.tokens}")

    def to_custom_id(self) -> str:
        """Serialize for PayPal's custom_id field."""
        return json.dumps(
            {"userId": self.user_id, "tier": self.tier, "tokens": self.tokens},
            separators=(",", ":"),
        )

    @classmethod
    def from_custom_id(cls, custom_id: str) -> "PurchaseMetadata":
        """
        Parse PayPal's custom_id field.

        Raises:
            ValueError: If the payload is not valid purchase metadata
        """
        try:
            data = json.loads(custom_id)
        except json.JSONDecodeError as exc:
            raise ValueError(f"custom_id is not JSON: {custom_id[:50]}") from exc

        if not isinstance(data, dict):
            raise ValueError("custom_id must be a JSON object")

        try:
            return cls(
                user_id=str(data["userId"]),
                tier=str(data["tier"]),
                tokens=int(data["tokens"]),
            )
        except (KeyError, TypeError) as exc:
            raise ValueError(f"custom_id missing field: {exc}") from exc


@dataclass(frozen=True)
class PurchaseCredit:
    """Result of crediting a completed purchase."""

    user_id: str
    tokens_added: int
    token_count: int
    is_admin: bool
    external_transaction_id: str
    price_paid: Decimal | None


@dataclass(frozen=True)
class LedgerEntry:
    """Immutable ledger row after persistence."""

    transaction_id: UUID
    user_id: str
    transaction_type: TransactionType
    token_amount: int
    price_paid: Decimal | None
    external_transaction_id: str | None
    tier: str | None
    created_at: datetime
