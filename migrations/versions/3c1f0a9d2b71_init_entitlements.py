"""init entitlements schema

Revision ID: 3c1f0a9d2b71
Revises: 
Create Date: 2025-07-21 10:14:02.118305

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3c1f0a9d2b71'
down_revision = None
branch_labels = None
depends_on = None

PLANS = ('free', 'premium')
STATUSES = (
    'trialing',
    'active',
    'canceled',
    'past_due',
    'incomplete',
    'incomplete_expired',
)


def upgrade() -> None:
    op.create_table(
        'subscriptions',
        sa.Column('user_id', sa.BigInteger, primary_key=True, autoincrement=False),
        sa.Column('plan', sa.Enum(*PLANS, name='subscription_plan'), nullable=False),
        sa.Column('status', sa.Enum(*STATUSES, name='subscription_status'), nullable=False),
        sa.Column('billing_interval', sa.Enum('month', 'year', name='billing_interval')),
        sa.Column('current_period_start', sa.DateTime(timezone=True), nullable=False),
        sa.Column('current_period_end', sa.DateTime(timezone=True), nullable=False),
        sa.Column('cancel_at_period_end', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('trial_end', sa.DateTime(timezone=True)),
        sa.Column('provider_customer_id', sa.String(128)),
        sa.Column('provider_subscription_id', sa.String(128)),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(
        'ix_subscriptions_provider_subscription_id',
        'subscriptions',
        ['provider_subscription_id'],
    )

    op.create_table(
        'usage_limits',
        sa.Column('user_id', sa.BigInteger, primary_key=True, autoincrement=False),
        sa.Column('plan', sa.Enum(*PLANS, name='usage_plan'), nullable=False),
        sa.Column('recipes_generated_this_month', sa.Integer, nullable=False, server_default='0'),
        sa.Column('photo_analyses_this_month', sa.Integer, nullable=False, server_default='0'),
        sa.Column('ai_chat_messages_this_month', sa.Integer, nullable=False, server_default='0'),
        sa.Column('total_saved_recipes', sa.Integer, nullable=False, server_default='0'),
        sa.Column('total_fridge_items', sa.Integer, nullable=False, server_default='0'),
        sa.Column('total_habits', sa.Integer, nullable=False, server_default='0'),
        sa.Column('total_routines', sa.Integer, nullable=False, server_default='0'),
        sa.Column('last_reset_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('reset_month', sa.String(7), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        'daily_throttle',
        sa.Column('user_id', sa.BigInteger, primary_key=True, autoincrement=False),
        sa.Column('feature', sa.String(16), primary_key=True),
        sa.Column('day', sa.String(10), nullable=False),
        sa.Column('used', sa.Integer, nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )

    op.create_table(
        'events',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('user_id', sa.BigInteger, nullable=False),
        sa.Column('event', sa.String, nullable=False),
        sa.Column('ts', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_events_user_id', 'events', ['user_id'])


def downgrade() -> None:
    op.drop_index('ix_events_user_id', table_name='events')
    op.drop_table('events')
    op.drop_table('daily_throttle')
    op.drop_table('usage_limits')
    op.drop_index('ix_subscriptions_provider_subscription_id', table_name='subscriptions')
    op.drop_table('subscriptions')

    if op.get_bind().dialect.name == 'postgresql':
        for name in ('usage_plan', 'billing_interval', 'subscription_status', 'subscription_plan'):
            op.execute(f"DROP TYPE IF EXISTS {name}")
