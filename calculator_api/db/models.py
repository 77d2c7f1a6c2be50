"""
Database Models - SQLAlchemy ORM models with strict typing.

NO DICTIONARIES - All columns use Mapped[] type annotations.
"""

from datetime import UTC, date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from calculator_api.models.api import TransactionType


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def utc_now() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(UTC)


class UserTokenBalance(Base):
    """
    ORM model for user_tokens table.

    One row per user holding the current token count and the day it was
    last refreshed to the daily allowance.
    """

    __tablename__ = "user_tokens"

    # Primary Key
    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)

    # External identity from the users service
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    # Balance
    token_count: Mapped[int] = mapped_column(Integer, nullable=False, default=25)
    last_refresh_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Audit timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint("token_count >= 0", name="ck_user_tokens_count_non_negative"),
        Index("idx_user_tokens_updated_at", "updated_at"),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<UserTokenBalance(user_id={self.user_id}, token_count={self.token_count}, "
            f"last_refresh_date={self.last_refresh_date})>"
        )


class TokenTransaction(Base):
    """
    ORM model for token_transactions table.

    Immutable ledger of every balance-affecting event (usage and purchases).
    """

    __tablename__ = "token_transactions"

    # Primary Key
    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)

    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    transaction_type: Mapped[TransactionType] = mapped_column(
        SQLEnum(
            TransactionType,
            name="token_transaction_type",
            native_enum=False,
            length=20,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )

    # Signed delta: -1 for usage, +grant for purchases
    token_amount: Mapped[int] = mapped_column(Integer, nullable=False)

    # Purchase details
    price_paid: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    external_transaction_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    tier: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Audit timestamp
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

    __table_args__ = (
        CheckConstraint(
            "(transaction_type = 'usage' AND token_amount < 0) OR "
            "(transaction_type = 'purchase' AND token_amount > 0)",
            name="ck_token_transactions_amount_sign",
        ),
        Index("idx_token_transactions_user_created", "user_id", "created_at"),
        Index(
            "uq_token_transactions_external_id",
            "external_transaction_id",
            unique=True,
            postgresql_where=(external_transaction_id.isnot(None)),
        ),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<TokenTransaction(id={self.id}, user_id={self.user_id}, "
            f"type={self.transaction_type}, amount={self.token_amount})>"
        )
