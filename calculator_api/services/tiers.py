"""
Purchase tier catalog configuration.

Maps tier IDs to a price and the number of tokens granted.
"""

from dataclasses import dataclass
from decimal import Decimal

from calculator_api.exceptions import InvalidTierError


@dataclass(frozen=True)
class PurchaseTier:
    """Purchase tier configuration."""

    tier_id: str
    price: Decimal
    tokens: int

    def __post_init__(self) -> None:
        """Validate tier configuration."""
        if self.tokens <= 0:
            raise ValueError(f"Tokens must be positive: {self.tokens}")
        if self.price <= 0:
            raise ValueError(f"Price must be positive: {self.price}")
        if not self.tier_id:
            raise ValueError("Tier ID required")

    @property
    def price_value(self) -> str:
        """Price formatted for PayPal amounts ("20.00")."""
        return f"{self.price:.2f}"

    @property
    def description(self) -> str:
        """Human readable order description."""
        return f"{self.tokens} Calculator Tokens"


# Tier catalog (prices in USD)
PURCHASE_TIERS: dict[str, PurchaseTier] = {
    "tier1": PurchaseTier(tier_id="tier1", price=Decimal("5.00"), tokens=75),
    "tier2": PurchaseTier(tier_id="tier2", price=Decimal("20.00"), tokens=500),
    "tier3": PurchaseTier(tier_id="tier3", price=Decimal("50.00"), tokens=2000),
}


def get_tier(tier_id: str) -> PurchaseTier:
    """
    Get tier configuration by ID.

    Raises:
        InvalidTierError: If tier ID not found
    """
    tier = PURCHASE_TIERS.get(tier_id)
    if not tier:
        raise InvalidTierError(tier_id)
    return tier


def list_tiers() -> list[PurchaseTier]:
    """All tiers, cheapest first."""
    return sorted(PURCHASE_TIERS.values(), key=lambda t: t.price)
