"""
Payment Provider Protocol - Provider-agnostic interface.

NO DICTIONARIES - All data uses strongly typed models.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Protocol

from calculator_api.models.domain import PurchaseMetadata


@dataclass(frozen=True)
class OrderIntent:
    """
    Provider-agnostic order request.

    Represents a request to create a checkout order for one tier.
    """

    price: Decimal
    currency: str
    description: str
    metadata: PurchaseMetadata


@dataclass(frozen=True)
class OrderLink:
    """Approval/capture link returned with an order."""

    href: str
    rel: str
    method: str | None = None


@dataclass(frozen=True)
class OrderResult:
    """
    Provider-agnostic order result.

    Returned after successful order creation.
    """

    order_id: str  # Provider-specific order ID
    status: str
    links: tuple[OrderLink, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class CaptureResult:
    """
    Provider-agnostic capture result.

    capture_id is the id of the money movement (used as the ledger's
    external transaction id); metadata is the custom_id echoed back.
    """

    order_id: str
    capture_id: str
    status: str
    metadata: PurchaseMetadata
    amount: Decimal | None
    currency: str | None

    @property
    def is_completed(self) -> bool:
        """True once the funds have been captured."""
        return self.status == "COMPLETED"


class PaymentProvider(Protocol):
    """
    Payment provider protocol.

    PayPal is the only implementation; tests substitute fakes.
    """

    async def create_order(self, intent: OrderIntent) -> OrderResult:
        """
        Create a checkout order with the provider.

        Raises:
            PaymentProviderError: If order creation fails
        """
        ...

    async def capture_order(self, order_id: str) -> CaptureResult:
        """
        Capture an approved order.

        Raises:
            PaymentProviderError: If the capture call fails or the response is malformed
        """
        ...

    async def close(self) -> None:
        """Release provider resources."""
        ...
