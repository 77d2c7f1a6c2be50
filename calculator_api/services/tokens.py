"""
Token Service - Daily allowance, debit-on-use and purchase credit.

NO DICTIONARIES - All operations use strongly typed domain models.
"""

from datetime import UTC, date, datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from calculator_api.config import settings
from calculator_api.db.models import TokenTransaction, UserTokenBalance
from calculator_api.exceptions import (
    DataIntegrityError,
    DuplicateCaptureError,
    InsufficientTokensError,
    PaymentCaptureError,
    WriteVerificationError,
)
from calculator_api.models.api import TransactionType
from calculator_api.models.domain import (
    AuthenticatedUser,
    BalanceSnapshot,
    LedgerEntry,
    PurchaseCredit,
)
from calculator_api.observability.metrics import metrics
from calculator_api.services.admin import is_admin
from calculator_api.services.payment_provider import CaptureResult

logger = get_logger(__name__)


def _today() -> date:
    """Get the current UTC calendar date."""
    return datetime.now(UTC).date()


def _needs_refresh(last_refresh_date: date | None) -> bool:
    """Check if a balance should be reset to the daily allowance."""
    if last_refresh_date is None:
        return True
    return last_refresh_date != _today()


class TokenService:
    """
    Token accounting with write verification.

    All write operations follow the pattern:
    1. Lock (or create) the user's balance row
    2. Apply the daily refresh check
    3. Mutate balance and append to the ledger
    4. Flush, read back and verify
    5. Commit once
    """

    def __init__(
        self,
        session: AsyncSession,
        daily_allowance: int | None = None,
        admin_sentinel: int | None = None,
        admin_emails: list[str] | None = None,
    ) -> None:
        """Initialize token service with database session."""
        self.session = session
        self.daily_allowance = (
            settings.daily_token_allowance if daily_allowance is None else daily_allowance
        )
        self.admin_sentinel = (
            settings.admin_token_sentinel if admin_sentinel is None else admin_sentinel
        )
        self.admin_emails = admin_emails

    def is_admin(self, user: AuthenticatedUser) -> bool:
        """Check the admin allow-list for this user."""
        return is_admin(user.email, self.admin_emails)

    def _admin_snapshot(self, user: AuthenticatedUser) -> BalanceSnapshot:
        return BalanceSnapshot(
            user_id=user.id, token_count=self.admin_sentinel, is_admin=True
        )

    async def get_balance(self, user: AuthenticatedUser) -> BalanceSnapshot:
        """
        Get the user's current token balance.

        Creates the balance row with the daily allowance on first access and
        resets a stale balance to the allowance. Admins never touch storage.
        """
        if self.is_admin(user):
            metrics.record_balance_read(is_admin=True)
            return self._admin_snapshot(user)

        balance = await self._find_balance(user.id)

        if balance is None:
            balance = await self._create_balance(user.id)
        elif _needs_refresh(balance.last_refresh_date):
            # Re-check under the row lock; a concurrent debit may have refreshed it
            balance = await self._get_or_create_locked(user.id)
            if self._refresh_if_stale(balance):
                await self.session.flush()
                await self._verify_balance(balance, self.daily_allowance)

        await self.session.commit()
        metrics.record_balance_read(is_admin=False)

        return self._to_snapshot(balance)

    async def use_token(self, user: AuthenticatedUser) -> BalanceSnapshot:
        """
        Spend exactly one token.

        Raises:
            InsufficientTokensError: Balance is zero after the refresh check
        """
        if self.is_admin(user):
            metrics.record_debit(success=True, reason="admin")
            return self._admin_snapshot(user)

        balance = await self._get_or_create_locked(user.id)
        self._refresh_if_stale(balance)

        if balance.token_count < 1:
            await self.session.rollback()
            metrics.record_debit(success=False, reason="insufficient_tokens")
            logger.info("token_debit_rejected", user_id=user.id, token_count=0)
            raise InsufficientTokensError(user.id, 0)

        tokens_after = balance.token_count - 1
        balance.token_count = tokens_after

        ledger_row = TokenTransaction(
            user_id=user.id,
            transaction_type=TransactionType.USAGE,
            token_amount=-1,
        )
        self.session.add(ledger_row)
        await self.session.flush()

        await self._verify_ledger_row(ledger_row, -1)
        await self._verify_balance(balance, tokens_after)

        await self.session.commit()

        metrics.record_debit(success=True)
        logger.info("token_debited", user_id=user.id, token_count=tokens_after)

        return self._to_snapshot(balance)

    async def credit_purchase(
        self, user: AuthenticatedUser, capture: CaptureResult
    ) -> PurchaseCredit:
        """
        Credit a completed payment capture to the user's balance.

        Raises:
            PaymentCaptureError: Capture not COMPLETED or issued for another user
            DuplicateCaptureError: Capture already credited
        """
        if not capture.is_completed:
            metrics.record_purchase(capture.metadata.tier, success=False)
            logger.warning(
                "payment_capture_not_completed",
                user_id=user.id,
                order_id=capture.order_id,
                status=capture.status,
            )
            raise PaymentCaptureError(capture.order_id, capture.status)

        if capture.metadata.user_id != user.id:
            metrics.record_purchase(capture.metadata.tier, success=False)
            logger.error(
                "payment_capture_user_mismatch",
                user_id=user.id,
                order_user_id=capture.metadata.user_id,
                order_id=capture.order_id,
            )
            raise PaymentCaptureError(capture.order_id, "USER_MISMATCH")

        tokens_added = capture.metadata.tokens

        if self.is_admin(user):
            metrics.record_purchase(capture.metadata.tier, success=True, tokens=tokens_added)
            logger.info("admin_purchase_ignored", user_id=user.id, order_id=capture.order_id)
            return PurchaseCredit(
                user_id=user.id,
                tokens_added=tokens_added,
                token_count=self.admin_sentinel,
                is_admin=True,
                external_transaction_id=capture.capture_id,
                price_paid=capture.amount,
            )

        existing = await self._find_transaction_by_external_id(capture.capture_id)
        if existing is not None:
            raise DuplicateCaptureError(capture.capture_id)

        balance = await self._get_or_create_locked(user.id)
        self._refresh_if_stale(balance)

        tokens_after = balance.token_count + tokens_added
        balance.token_count = tokens_after

        ledger_row = TokenTransaction(
            user_id=user.id,
            transaction_type=TransactionType.PURCHASE,
            token_amount=tokens_added,
            price_paid=capture.amount,
            external_transaction_id=capture.capture_id,
            tier=capture.metadata.tier,
        )
        self.session.add(ledger_row)

        try:
            await self.session.flush()
        except IntegrityError as exc:
            # Concurrent replay of the same capture won the unique index
            logger.error(
                "purchase_credit_integrity_error",
                user_id=user.id,
                capture_id=capture.capture_id,
                error=str(exc),
            )
            await self.session.rollback()
            raise DuplicateCaptureError(capture.capture_id) from exc

        await self._verify_ledger_row(ledger_row, tokens_added)
        await self._verify_balance(balance, tokens_after)

        await self.session.commit()

        metrics.record_purchase(capture.metadata.tier, success=True, tokens=tokens_added)
        logger.info(
            "tokens_purchased",
            user_id=user.id,
            tier=capture.metadata.tier,
            tokens_added=tokens_added,
            token_count=tokens_after,
            capture_id=capture.capture_id,
        )

        return PurchaseCredit(
            user_id=user.id,
            tokens_added=tokens_added,
            token_count=tokens_after,
            is_admin=False,
            external_transaction_id=capture.capture_id,
            price_paid=capture.amount,
        )

    async def list_transactions(
        self, user: AuthenticatedUser, limit: int = 50, offset: int = 0
    ) -> list[LedgerEntry]:
        """Get the user's ledger, newest first. Admins have no ledger."""
        if self.is_admin(user):
            return []

        stmt = (
            select(TokenTransaction)
            .where(TokenTransaction.user_id == user.id)
            .order_by(TokenTransaction.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return [self._ledger_to_domain(row) for row in result.scalars().all()]

    # ========================================================================
    # Private Helper Methods
    # ========================================================================

    def _refresh_if_stale(self, balance: UserTokenBalance) -> bool:
        """Reset the balance to the daily allowance if it was last refreshed on another day."""
        if not _needs_refresh(balance.last_refresh_date):
            return False

        logger.info(
            "daily_tokens_refreshed",
            user_id=balance.user_id,
            previous_count=balance.token_count,
            previous_refresh_date=str(balance.last_refresh_date),
        )
        balance.token_count = self.daily_allowance
        balance.last_refresh_date = _today()
        metrics.daily_refreshes_total.inc()
        return True

    async def _get_or_create_locked(self, user_id: str) -> UserTokenBalance:
        """Lock the user's balance row, creating it when missing."""
        balance = await self._lock_balance_for_update(user_id)
        if balance is None:
            balance = await self._create_balance(user_id, lock=True)
        return balance

    async def _create_balance(self, user_id: str, lock: bool = False) -> UserTokenBalance:
        """
        Insert a new balance row holding the daily allowance.

        A concurrent insert for the same user loses on the unique constraint;
        the row written by the winner is re-read instead.
        """
        new_balance = UserTokenBalance(
            user_id=user_id,
            token_count=self.daily_allowance,
            last_refresh_date=_today(),
        )
        self.session.add(new_balance)

        try:
            await self.session.flush()
        except IntegrityError as e:
            logger.warning("balance_creation_integrity_error", user_id=user_id, error=str(e))
            await self.session.rollback()
            if lock:
                existing = await self._lock_balance_for_update(user_id)
            else:
                existing = await self._find_balance(user_id)
            if existing is None:
                raise WriteVerificationError(f"Balance creation failed for {user_id}") from e
            if self._refresh_if_stale(existing):
                await self.session.flush()
            return existing

        await self._verify_balance(new_balance, self.daily_allowance)

        metrics.balances_created_total.inc()
        logger.info("token_balance_created", user_id=user_id, token_count=self.daily_allowance)
        return new_balance

    async def _verify_balance(self, balance: UserTokenBalance, expected: int) -> None:
        """Read the balance row back and check the persisted count."""
        await self.session.refresh(balance)
        if balance.token_count != expected:
            raise DataIntegrityError(
                f"Token count mismatch for {balance.user_id}: "
                f"expected {expected}, got {balance.token_count}"
            )

    async def _verify_ledger_row(self, row: TokenTransaction, expected_amount: int) -> None:
        """Read the ledger row back and check the persisted amount."""
        await self.session.refresh(row)
        if row.token_amount != expected_amount:
            raise WriteVerificationError(
                f"Ledger row for {row.user_id} has amount {row.token_amount}, "
                f"expected {expected_amount}"
            )

    async def _find_balance(self, user_id: str) -> UserTokenBalance | None:
        """Find balance row by user id."""
        stmt = select(UserTokenBalance).where(UserTokenBalance.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def _lock_balance_for_update(self, user_id: str) -> UserTokenBalance | None:
        """Lock balance row for update (SELECT FOR UPDATE)."""
        stmt = (
            select(UserTokenBalance)
            .where(UserTokenBalance.user_id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def _find_transaction_by_external_id(
        self, external_transaction_id: str
    ) -> TokenTransaction | None:
        """Find ledger row by payment capture id."""
        stmt = select(TokenTransaction).where(
            TokenTransaction.external_transaction_id == external_transaction_id
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    def _to_snapshot(self, balance: UserTokenBalance) -> BalanceSnapshot:
        """Convert ORM balance to domain model."""
        return BalanceSnapshot(
            user_id=balance.user_id,
            token_count=balance.token_count,
            is_admin=False,
            last_refresh_date=balance.last_refresh_date,
        )

    def _ledger_to_domain(self, row: TokenTransaction) -> LedgerEntry:
        """Convert ORM ledger row to domain model."""
        return LedgerEntry(
            transaction_id=row.id,
            user_id=row.user_id,
            transaction_type=row.transaction_type,
            token_amount=row.token_amount,
            price_paid=row.price_paid,
            external_transaction_id=row.external_transaction_id,
            tier=row.tier,
            created_at=row.created_at,
        )
