"""
Exception Classes - Strongly typed exception hierarchy.

NO DICTIONARIES - All exceptions have typed attributes.
"""


class CalculatorError(Exception):
    """Base exception for all calculator service errors."""

    pass


class InsufficientTokensError(CalculatorError):
    """Raised when a user has no tokens left to spend."""

    def __init__(self, user_id: str, balance: int) -> None:
        self.user_id = user_id
        self.balance = balance
        super().__init__(f"Insufficient tokens for user {user_id}. Balance: {balance}")


class WriteVerificationError(CalculatorError):
    """Raised when database write verification fails."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Write verification failed: {message}")


class DataIntegrityError(CalculatorError):
    """Raised when data integrity constraint violated."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Data integrity error: {message}")


class DuplicateCaptureError(CalculatorError):
    """Raised when a payment capture has already been credited."""

    def __init__(self, external_transaction_id: str) -> None:
        self.external_transaction_id = external_transaction_id
        super().__init__(f"Capture already credited: {external_transaction_id}")


class InvalidTierError(CalculatorError):
    """Raised when a purchase tier id is not in the catalog."""

    def __init__(self, tier_id: str) -> None:
        self.tier_id = tier_id
        super().__init__(f"Invalid tier: {tier_id}")


class PaymentProviderError(CalculatorError):
    """Raised when payment provider operation fails."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Payment provider error: {message}")


class PaymentCaptureError(CalculatorError):
    """Raised when a capture did not complete."""

    def __init__(self, order_id: str, status: str) -> None:
        self.order_id = order_id
        self.status = status
        super().__init__(f"Payment capture failed for order {order_id}: status {status}")


class UsersServiceError(CalculatorError):
    """Raised when the users/session service call fails."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Users service error: {message}")


class FormulaNotFoundError(CalculatorError):
    """Raised when a formula id is not in the catalog."""

    def __init__(self, formula_id: str) -> None:
        self.formula_id = formula_id
        super().__init__(f"Formula not found: {formula_id}")


class UnsolvableFormulaError(CalculatorError):
    """Raised when a formula cannot be solved for the given inputs."""

    def __init__(self, formula_id: str, reason: str) -> None:
        self.formula_id = formula_id
        self.reason = reason
        super().__init__(f"Unable to solve {formula_id}: {reason}")
