"""initial ledger schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18 10:00:00

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None

card_status = postgresql.ENUM('UNASSIGNED', 'ACTIVE', 'BLOCKED', name='card_status', create_type=False)
tier = postgresql.ENUM('SILVER', 'GOLD', 'PLATINUM', name='tier', create_type=False)
tx_type = postgresql.ENUM('EARN', 'REDEEM', 'ADJUST', name='tx_type', create_type=False)
tx_category = postgresql.ENUM('PURCHASE', 'REPAIR', 'OTHER', name='tx_category', create_type=False)
payment_status = postgresql.ENUM('PENDING', 'COMPLETED', 'EXPIRED', 'FAILED', name='payment_status', create_type=False)
payment_purpose = postgresql.ENUM('PURCHASE', 'STORE_CREDIT', name='payment_purpose', create_type=False)

ENUMS = (card_status, tier, tx_type, tx_category, payment_status, payment_purpose)


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in ENUMS:
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        'stores',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('tenant_id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('active', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_stores_tenant_id', 'stores', ['tenant_id'])

    op.create_table(
        'customers',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('tenant_id', sa.String(), nullable=False),
        sa.Column('first_name', sa.String(), nullable=False),
        sa.Column('last_name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('tier', tier, nullable=False),
        sa.Column('total_spend_cents', sa.BigInteger(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_customers_tenant_id', 'customers', ['tenant_id'])
    op.create_index('ix_customers_email', 'customers', ['email'])

    op.create_table(
        'cards',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('tenant_id', sa.String(), nullable=False),
        sa.Column('card_uid', sa.String(length=32), nullable=False),
        sa.Column('customer_id', sa.String(), sa.ForeignKey('customers.id'), nullable=True),
        sa.Column('store_id', sa.String(), sa.ForeignKey('stores.id'), nullable=True),
        sa.Column('status', card_status, nullable=False),
        sa.Column('balance_cents', sa.Integer(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('activated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint('balance_cents >= 0', name='ck_cards_balance_non_negative'),
    )
    op.create_index('ix_cards_tenant_id', 'cards', ['tenant_id'])
    op.create_index('ix_cards_card_uid', 'cards', ['card_uid'], unique=True)
    op.create_index('ix_cards_customer_id', 'cards', ['customer_id'])

    op.create_table(
        'transactions',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('tenant_id', sa.String(), nullable=False),
        sa.Column('card_id', sa.String(), sa.ForeignKey('cards.id'), nullable=False),
        sa.Column('customer_id', sa.String(), sa.ForeignKey('customers.id'), nullable=True),
        sa.Column('store_id', sa.String(), sa.ForeignKey('stores.id'), nullable=True),
        sa.Column('cashier_id', sa.String(), nullable=True),
        sa.Column('type', tx_type, nullable=False),
        sa.Column('category', tx_category, nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('cashback_cents', sa.Integer(), nullable=False),
        sa.Column('balance_before_cents', sa.Integer(), nullable=False),
        sa.Column('balance_after_cents', sa.Integer(), nullable=False),
        sa.Column('card_version', sa.Integer(), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('card_id', 'card_version', name='uq_transactions_card_version'),
    )
    for column in ('tenant_id', 'card_id', 'customer_id', 'store_id', 'created_at'):
        op.create_index(f'ix_transactions_{column}', 'transactions', [column])

    op.create_table(
        'cashback_rules',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('tenant_id', sa.String(), nullable=False),
        sa.Column('category', tx_category, nullable=False),
        sa.Column('base_rate_bps', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('tenant_id', 'category', name='uq_cashback_rules_tenant_category'),
    )
    op.create_index('ix_cashback_rules_tenant_id', 'cashback_rules', ['tenant_id'])

    op.create_table(
        'tier_rules',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('tenant_id', sa.String(), nullable=False),
        sa.Column('tier', tier, nullable=False),
        sa.Column('min_total_spend_cents', sa.Integer(), nullable=False),
        sa.Column('bonus_rate_bps', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('tenant_id', 'tier', name='uq_tier_rules_tenant_tier'),
    )
    op.create_index('ix_tier_rules_tenant_id', 'tier_rules', ['tenant_id'])

    op.create_table(
        'offers',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('tenant_id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('rate_bps', sa.Integer(), nullable=False),
        sa.Column('start_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_offers_tenant_id', 'offers', ['tenant_id'])

    op.create_table(
        'pending_payments',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('tenant_id', sa.String(), nullable=False),
        sa.Column('external_reference', sa.String(), nullable=False),
        sa.Column('intent_id', sa.String(), nullable=True, unique=True),
        sa.Column('purpose', payment_purpose, nullable=False),
        sa.Column('category', tx_category, nullable=False),
        sa.Column('card_id', sa.String(), sa.ForeignKey('cards.id'), nullable=True),
        sa.Column('customer_id', sa.String(), sa.ForeignKey('customers.id'), nullable=True),
        sa.Column('store_id', sa.String(), sa.ForeignKey('stores.id'), nullable=True),
        sa.Column('cashier_id', sa.String(), nullable=True),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', payment_status, nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('transaction_id', sa.String(), sa.ForeignKey('transactions.id'), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('failure_reason', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_pending_payments_tenant_id', 'pending_payments', ['tenant_id'])
    op.create_index('ix_pending_payments_external_reference', 'pending_payments', ['external_reference'], unique=True)

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.String(), nullable=False),
        sa.Column('customer_id', sa.String(), sa.ForeignKey('customers.id'), nullable=False),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('related_entity_id', sa.String(), nullable=True),
        sa.Column('is_read', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    )
    op.create_index('ix_notifications_id', 'notifications', ['id'])
    op.create_index('ix_notifications_tenant_id', 'notifications', ['tenant_id'])
    op.create_index('ix_notifications_customer_id', 'notifications', ['customer_id'])
    op.create_index('ix_notifications_type', 'notifications', ['type'])


def downgrade() -> None:
    for table in (
        'notifications', 'pending_payments', 'offers', 'tier_rules', 'cashback_rules',
        'transactions', 'cards', 'customers', 'stores',
    ):
        op.drop_table(table)
    bind = op.get_bind()
    for enum_type in reversed(ENUMS):
        enum_type.drop(bind, checkfirst=True)
