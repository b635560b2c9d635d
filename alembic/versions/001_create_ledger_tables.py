"""Create commission ledger tables

Revision ID: 001_ledger
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

# revision identifiers
revision = '001_ledger'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Create withdrawal_requests and commissions"""

    # ====================
    # WITHDRAWAL REQUESTS TABLE
    # ====================
    op.create_table(
        'withdrawal_requests',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('vendor_id', UUID(as_uuid=True), nullable=False),
        sa.Column('amount', sa.BigInteger, nullable=False, comment='Requested amount in minor currency units'),
        sa.Column('status', sa.String(20), server_default='PENDING', nullable=False,
                  comment='PENDING, COMPLETED, REJECTED, CANCELLED'),
        sa.Column('request_date', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('payment_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('payment_method', sa.String(50), nullable=True),
        sa.Column('payment_details', sa.Text, nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('processed_by', UUID(as_uuid=True), nullable=True,
                  comment='Admin who approved or rejected the request'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.CheckConstraint('amount > 0', name='ck_withdrawal_requests_amount_positive'),
    )

    op.create_index('ix_withdrawal_requests_vendor_id', 'withdrawal_requests', ['vendor_id'])
    op.create_index('ix_withdrawal_requests_status_requested', 'withdrawal_requests', ['status', 'request_date'])
    # At most one PENDING request per vendor
    op.create_index(
        'uq_withdrawal_requests_vendor_pending',
        'withdrawal_requests',
        ['vendor_id'],
        unique=True,
        postgresql_where=sa.text("status = 'PENDING'"),
    )

    # ====================
    # COMMISSIONS TABLE
    # ====================
    op.create_table(
        'commissions',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('vendor_id', UUID(as_uuid=True), nullable=False),
        sa.Column('order_id', UUID(as_uuid=True), nullable=False),
        sa.Column('doctor_id', UUID(as_uuid=True), nullable=True),
        sa.Column('amount', sa.BigInteger, nullable=False, comment='Commission amount in minor currency units'),
        sa.Column('rate', sa.Numeric(5, 2), server_default='0', nullable=False,
                  comment='Commission % used to derive the amount (informational)'),
        sa.Column('status', sa.String(20), server_default='PENDING', nullable=False,
                  comment='PENDING, PROCESSING, PAID, CANCELLED'),
        sa.Column('withdrawal_id', UUID(as_uuid=True), sa.ForeignKey('withdrawal_requests.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('payment_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.CheckConstraint('amount > 0', name='ck_commissions_amount_positive'),
    )

    op.create_index('ix_commissions_vendor_id', 'commissions', ['vendor_id'])
    op.create_index('ix_commissions_order_id', 'commissions', ['order_id'])
    op.create_index('ix_commissions_withdrawal_id', 'commissions', ['withdrawal_id'])
    op.create_index('ix_commissions_vendor_status_created', 'commissions', ['vendor_id', 'status', 'created_at'])


def downgrade():
    """Drop ledger tables"""
    op.drop_index('ix_commissions_vendor_status_created', table_name='commissions')
    op.drop_index('ix_commissions_withdrawal_id', table_name='commissions')
    op.drop_index('ix_commissions_order_id', table_name='commissions')
    op.drop_index('ix_commissions_vendor_id', table_name='commissions')
    op.drop_table('commissions')

    op.drop_index('uq_withdrawal_requests_vendor_pending', table_name='withdrawal_requests')
    op.drop_index('ix_withdrawal_requests_status_requested', table_name='withdrawal_requests')
    op.drop_index('ix_withdrawal_requests_vendor_id', table_name='withdrawal_requests')
    op.drop_table('withdrawal_requests')
