"""add_unmatched_captures

Revision ID: d4b8e2a61c05
Revises: c0a1f3e9d2b7
Create Date: 2026-10-18 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'd4b8e2a61c05'
down_revision: Union[str, Sequence[str], None] = 'c0a1f3e9d2b7'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema - Hold gateway captures that arrive before their order."""
    op.create_table(
        'commerce_unmatched_captures',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('payment_id', sa.String(length=64), nullable=False),
        sa.Column('gateway_order_id', sa.String(length=64), nullable=True),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('method', sa.String(length=50), nullable=True),
        sa.Column('received_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('payment_id'),
    )
    op.create_index(
        'ix_commerce_unmatched_captures_gateway_order_id',
        'commerce_unmatched_captures',
        ['gateway_order_id'],
    )


def downgrade() -> None:
    """Downgrade schema - Drop held captures."""
    op.drop_index(
        'ix_commerce_unmatched_captures_gateway_order_id',
        table_name='commerce_unmatched_captures',
    )
    op.drop_table('commerce_unmatched_captures')
