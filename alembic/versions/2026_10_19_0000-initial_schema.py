"""initial schema

Revision ID: 2026_10_19_0000
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID


# revision identifiers, used by Alembic.
revision: str = '2026_10_19_0000'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create token balance and ledger tables."""

    # ========================================================================
    # Create user_tokens table
    # ========================================================================
    op.create_table(
        'user_tokens',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('token_count', sa.Integer(), nullable=False, server_default='25'),
        sa.Column('last_refresh_date', sa.Date(), nullable=False, server_default=sa.text('CURRENT_DATE')),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),

        # Constraints
        sa.CheckConstraint('token_count >= 0', name='ck_user_tokens_count_non_negative'),
        sa.UniqueConstraint('user_id', name='uq_user_tokens_user_id'),
    )

    op.create_index('idx_user_tokens_updated_at', 'user_tokens', ['updated_at'])

    # ========================================================================
    # Create token_transactions table
    # ========================================================================
    op.create_table(
        'token_transactions',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('transaction_type', sa.String(20), nullable=False),
        sa.Column('token_amount', sa.Integer(), nullable=False),
        sa.Column('price_paid', sa.Numeric(10, 2), nullable=True),
        sa.Column('external_transaction_id', sa.String(255), nullable=True),
        sa.Column('tier', sa.String(50), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),

        # Constraints
        sa.CheckConstraint(
            "transaction_type IN ('usage', 'purchase')",
            name='ck_token_transactions_type',
        ),
        sa.CheckConstraint(
            "(transaction_type = 'usage' AND token_amount < 0) OR "
            "(transaction_type = 'purchase' AND token_amount > 0)",
            name='ck_token_transactions_amount_sign',
        ),
    )

    op.create_index('ix_token_transactions_user_id', 'token_transactions', ['user_id'])
    op.create_index(
        'idx_token_transactions_user_created', 'token_transactions', ['user_id', 'created_at']
    )
    op.create_index(
        'uq_token_transactions_external_id',
        'token_transactions',
        ['external_transaction_id'],
        unique=True,
        postgresql_where=sa.text('external_transaction_id IS NOT NULL'),
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('token_transactions')
    op.drop_table('user_tokens')
