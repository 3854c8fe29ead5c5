"""League tiers, pricing, leagues, payments and audit logs

Revision ID: 3f2a9c7d1b64
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3f2a9c7d1b64'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('id', sa.UUID(), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    """Create tier pricing and league checkout tables."""
    pricing_type = sa.Enum('fixed', 'dynamic', name='pricingtype')
    league_status = sa.Enum(
        'draft', 'pending_payment', 'scheduled', 'active', 'completed', 'cancelled', 'abandoned',
        name='leaguestatus',
    )
    payment_purpose = sa.Enum('league_creation', 'subscription', 'other', name='paymentpurpose')
    payment_status = sa.Enum('pending', 'completed', 'failed', 'cancelled', 'refunded', name='paymentstatus')

    # 1. Pricing (no dependencies)
    op.create_table(
        'pricing',
        *_timestamps(),
        sa.Column('tier_name', sa.String(length=50), nullable=False),
        sa.Column('pricing_type', pricing_type, nullable=False),
        sa.Column('fixed_price', sa.Numeric(12, 2), nullable=True),
        sa.Column('base_fee', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('per_day_rate', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('per_participant_rate', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('gst_percentage', sa.Numeric(5, 2), nullable=False, server_default='18'),
        sa.Column('config', postgresql.JSONB(), nullable=False, server_default='{}'),
        sa.Column('created_by', sa.String(), nullable=True),
        sa.Column('updated_by', sa.String(), nullable=True),
        sa.CheckConstraint('fixed_price IS NULL OR fixed_price >= 0', name='ck_pricing_fixed_price_non_negative'),
        sa.CheckConstraint(
            'base_fee >= 0 AND per_day_rate >= 0 AND per_participant_rate >= 0',
            name='ck_pricing_rates_non_negative',
        ),
        sa.CheckConstraint('gst_percentage >= 0 AND gst_percentage <= 100', name='ck_pricing_gst_range'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_pricing_id'), 'pricing', ['id'])
    op.create_index(op.f('ix_pricing_created_at'), 'pricing', ['created_at'])

    # 2. League tiers (depends on pricing)
    op.create_table(
        'league_tiers',
        *_timestamps(),
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.Column('display_name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('max_days', sa.Integer(), nullable=False),
        sa.Column('max_participants', sa.Integer(), nullable=False),
        sa.Column('pricing_id', sa.UUID(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('is_featured', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('features', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('created_by', sa.String(), nullable=True),
        sa.Column('updated_by', sa.String(), nullable=True),
        sa.CheckConstraint('max_days > 0', name='ck_league_tiers_max_days_positive'),
        sa.CheckConstraint('max_participants > 0', name='ck_league_tiers_max_participants_positive'),
        sa.ForeignKeyConstraint(['pricing_id'], ['pricing.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sa.UniqueConstraint('pricing_id'),
    )
    op.create_index(op.f('ix_league_tiers_id'), 'league_tiers', ['id'])
    op.create_index(op.f('ix_league_tiers_created_at'), 'league_tiers', ['created_at'])
    op.create_index(op.f('ix_league_tiers_is_active'), 'league_tiers', ['is_active'])
    op.create_index('ix_league_tiers_active_display_order', 'league_tiers', ['is_active', 'display_order'])

    # 3. Leagues (depends on league_tiers)
    op.create_table(
        'leagues',
        *_timestamps(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('tier_id', sa.UUID(), nullable=False),
        sa.Column('num_teams', sa.Integer(), nullable=False, server_default='4'),
        sa.Column('max_participants', sa.Integer(), nullable=True),
        sa.Column('rest_days', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('is_exclusive', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_by', sa.String(), nullable=False),
        sa.Column('status', league_status, nullable=False, server_default='draft'),
        sa.Column('tier_snapshot', postgresql.JSONB(), nullable=True),
        sa.CheckConstraint('end_date >= start_date', name='ck_leagues_date_range'),
        sa.CheckConstraint(
            "status NOT IN ('scheduled', 'active', 'completed') OR tier_snapshot IS NOT NULL",
            name='ck_leagues_paid_has_snapshot',
        ),
        sa.ForeignKeyConstraint(['tier_id'], ['league_tiers.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_leagues_id'), 'leagues', ['id'])
    op.create_index(op.f('ix_leagues_created_at'), 'leagues', ['created_at'])
    op.create_index(op.f('ix_leagues_tier_id'), 'leagues', ['tier_id'])
    op.create_index(op.f('ix_leagues_created_by'), 'leagues', ['created_by'])
    op.create_index(op.f('ix_leagues_status'), 'leagues', ['status'])

    # 4. Payments (depends on leagues)
    op.create_table(
        'payments',
        *_timestamps(),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('league_id', sa.UUID(), nullable=True),
        sa.Column('purpose', payment_purpose, nullable=False, server_default='league_creation'),
        sa.Column('gateway_order_id', sa.String(), nullable=False),
        sa.Column('gateway_payment_id', sa.String(), nullable=True),
        sa.Column('status', payment_status, nullable=False, server_default='pending'),
        sa.Column('base_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('platform_fee', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('gst_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('amount_subunits', sa.Integer(), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='INR'),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('receipt', sa.String(), nullable=True),
        sa.Column('notes', postgresql.JSONB(), nullable=False, server_default='{}'),
        sa.Column('failure_message', sa.Text(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['league_id'], ['leagues.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_payments_id'), 'payments', ['id'])
    op.create_index(op.f('ix_payments_created_at'), 'payments', ['created_at'])
    op.create_index(op.f('ix_payments_user_id'), 'payments', ['user_id'])
    op.create_index(op.f('ix_payments_league_id'), 'payments', ['league_id'])
    op.create_index(op.f('ix_payments_gateway_order_id'), 'payments', ['gateway_order_id'], unique=True)
    op.create_index(op.f('ix_payments_status'), 'payments', ['status'])
    # Abandoned checkout cleanup scans pending payments by age
    op.create_index('ix_payments_status_created_at', 'payments', ['status', 'created_at'])

    # 5. Audit logs (no dependencies)
    op.create_table(
        'audit_logs',
        *_timestamps(),
        sa.Column('entity_type', sa.String(), nullable=False),
        sa.Column('entity_id', sa.UUID(), nullable=False),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=True),
        sa.Column('changes', postgresql.JSONB(), nullable=False, server_default='{}'),
        sa.Column('request_id', sa.String(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_audit_logs_id'), 'audit_logs', ['id'])
    op.create_index(op.f('ix_audit_logs_created_at'), 'audit_logs', ['created_at'])
    op.create_index(op.f('ix_audit_logs_entity_type'), 'audit_logs', ['entity_type'])
    op.create_index(op.f('ix_audit_logs_entity_id'), 'audit_logs', ['entity_id'])


def downgrade() -> None:
    """Drop all tables."""
    # Drop tables in reverse dependency order
    op.drop_table('audit_logs')
    op.drop_table('payments')
    op.drop_table('leagues')
    op.drop_table('league_tiers')
    op.drop_table('pricing')

    op.execute('DROP TYPE IF EXISTS paymentstatus')
    op.execute('DROP TYPE IF EXISTS paymentpurpose')
    op.execute('DROP TYPE IF EXISTS leaguestatus')
    op.execute('DROP TYPE IF EXISTS pricingtype')
