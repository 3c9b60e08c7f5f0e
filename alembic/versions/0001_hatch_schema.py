"""Hatch schema: profiles, events, registrations, payments

Revision ID: 0001
Revises:
Create Date: 2026-10-12
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID, JSONB


# revision identifiers
revision = '0001_hatch_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # =========================================================================
    # 1. USER_PROFILES (id = auth.users.id)
    # =========================================================================
    op.create_table(
        'user_profiles',
        sa.Column('id', UUID(as_uuid=True), sa.ForeignKey('auth.users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('email', sa.String(320), nullable=True),
        sa.Column('role', sa.String(20), server_default='user', nullable=False),
        sa.Column('username', sa.String(50), nullable=True),
        sa.Column('full_name', sa.String(100), nullable=True),
        sa.Column('bio', sa.String(1000), nullable=True),
        sa.Column('skills', JSONB, nullable=True),

        # Subscription state
        sa.Column('subscription_tier', sa.String(32), server_default='free', nullable=False),
        sa.Column('subscription_expires_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('tier_upgraded_by', UUID(as_uuid=True), nullable=True),
        sa.Column('tier_upgraded_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('auto_downgrade_enabled', sa.Boolean, server_default='true', nullable=False),
        sa.Column('total_events_attended', sa.Integer, server_default='0', nullable=False),

        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.CheckConstraint('total_events_attended >= 0', name='ck_user_profiles_attended_non_negative'),
        sa.CheckConstraint(
            "subscription_tier <> 'free' OR subscription_expires_at IS NULL",
            name='ck_user_profiles_free_has_no_expiry',
        ),
    )
    op.create_index('ix_user_profiles_email', 'user_profiles', ['email'])
    op.create_index('ix_user_profiles_username', 'user_profiles', ['username'])
    op.create_index('ix_user_profiles_subscription_tier', 'user_profiles', ['subscription_tier'])
    op.create_index(
        'ix_user_profiles_expiry',
        'user_profiles',
        ['subscription_expires_at'],
        postgresql_where=sa.text('subscription_expires_at IS NOT NULL'),
    )

    # =========================================================================
    # 2. EVENTS
    # =========================================================================
    op.create_table(
        'events',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text, server_default='', nullable=False),
        sa.Column('registration_link', sa.String(2048), nullable=True),
        sa.Column('required_tier', sa.String(32), server_default='free', nullable=False),
        sa.Column('status', sa.String(20), server_default='draft', nullable=False),
        sa.Column('event_date', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('registration_deadline', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('organizer', sa.String(200), nullable=True),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('mode', sa.String(20), server_default='online', nullable=False),
        sa.Column('location', sa.String(300), nullable=True),
        sa.Column('tags', JSONB, nullable=True),
        sa.Column('created_by', UUID(as_uuid=True), nullable=True),
        sa.Column('attendance_processed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
    )
    op.create_index('ix_events_required_tier', 'events', ['required_tier'])
    op.create_index('ix_events_status', 'events', ['status'])
    op.create_index('ix_events_event_date', 'events', ['event_date'])

    # =========================================================================
    # 3. EVENT_REGISTRATIONS
    # =========================================================================
    op.create_table(
        'event_registrations',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('user_id', UUID(as_uuid=True), sa.ForeignKey('user_profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('event_id', UUID(as_uuid=True), sa.ForeignKey('events.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', sa.String(20), server_default='registered', nullable=False),
        sa.Column('source', sa.String(20), server_default='self_reported', nullable=False),
        sa.Column('confirmed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
    )
    op.create_index('ix_event_registrations_user_id', 'event_registrations', ['user_id'])
    op.create_index('ix_event_registrations_event_id', 'event_registrations', ['event_id'])
    op.create_index('ix_event_registrations_status', 'event_registrations', ['status'])
    op.create_index('ix_event_registrations_user_created', 'event_registrations', ['user_id', 'created_at'])

    # One registration per user + event
    op.create_unique_constraint(
        'uq_event_registrations_user_event',
        'event_registrations',
        ['user_id', 'event_id']
    )

    # =========================================================================
    # 4. PAYMENT_SUBMISSIONS
    # =========================================================================
    op.create_table(
        'payment_submissions',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('user_id', UUID(as_uuid=True), sa.ForeignKey('user_profiles.id'), nullable=False),
        sa.Column('requested_tier', sa.String(32), nullable=False),
        sa.Column('amount_paid', sa.Float, nullable=False),
        sa.Column('payment_method', sa.String(32), server_default='upi', nullable=False),
        sa.Column('transaction_id', sa.String(20), nullable=False),
        sa.Column('screenshot_ref', sa.String(1024), nullable=False),
        sa.Column('status', sa.String(20), server_default='pending', nullable=False),
        sa.Column('admin_notes', sa.String(1000), nullable=True),
        sa.Column('reviewed_by', UUID(as_uuid=True), nullable=True),
        sa.Column('reviewed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.CheckConstraint('amount_paid > 0', name='ck_payment_submissions_amount_positive'),
    )
    op.create_index('ix_payment_submissions_user_id', 'payment_submissions', ['user_id'])
    op.create_index('ix_payment_submissions_status', 'payment_submissions', ['status'])
    op.create_index(
        'ix_payment_submissions_transaction_id',
        'payment_submissions',
        ['transaction_id'],
        unique=True,
    )

    # =========================================================================
    # 5. PAYMENT_CLEANUP_LOGS
    # =========================================================================
    op.create_table(
        'payment_cleanup_logs',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('records_deleted', sa.Integer, server_default='0', nullable=False),
        sa.Column('retention_days', sa.Integer, nullable=False),
        sa.Column('cutoff', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('triggered_by', sa.String(100), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
    )

    # =========================================================================
    # 6. ROW LEVEL SECURITY
    # The backend connects with the service role; these policies only cover
    # direct client access through Supabase.
    # =========================================================================
    op.execute("ALTER TABLE public.user_profiles ENABLE ROW LEVEL SECURITY")
    op.execute("""
        CREATE POLICY user_profiles_select_policy ON public.user_profiles
        FOR SELECT USING (id = auth.uid())
    """)

    op.execute("ALTER TABLE public.events ENABLE ROW LEVEL SECURITY")
    op.execute("""
        CREATE POLICY events_select_policy ON public.events
        FOR SELECT USING (status = 'published')
    """)

    op.execute("ALTER TABLE public.event_registrations ENABLE ROW LEVEL SECURITY")
    op.execute("""
        CREATE POLICY event_registrations_select_policy ON public.event_registrations
        FOR SELECT USING (user_id = auth.uid())
    """)

    op.execute("ALTER TABLE public.payment_submissions ENABLE ROW LEVEL SECURITY")
    op.execute("""
        CREATE POLICY payment_submissions_select_policy ON public.payment_submissions
        FOR SELECT USING (user_id = auth.uid())
    """)

    # Internal only: no policies, so only the service role can read it
    op.execute("ALTER TABLE public.payment_cleanup_logs ENABLE ROW LEVEL SECURITY")


def downgrade() -> None:
    op.drop_table('payment_cleanup_logs')
    op.drop_table('payment_submissions')
    op.drop_table('event_registrations')
    op.drop_table('events')
    op.drop_table('user_profiles')
