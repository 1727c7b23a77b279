"""Create caregiver, child and sleep tables

Revision ID: 20260101_create_sleep_tables
Revises:
Create Date: 2026-01-01 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '20260101_create_sleep_tables'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=25), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('clerk_id', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('timezone', sa.String(length=64), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=True),
        sa.Column('type', sa.String(length=50), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_clerk_id', 'users', ['clerk_id'], unique=True)

    op.create_table(
        'children',
        sa.Column('id', sa.String(length=25), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('birth_date', sa.DateTime(), nullable=True),
        sa.Column('photo_url', sa.String(length=500), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_children_id', 'children', ['id'])

    op.create_table(
        'child_caregivers',
        sa.Column('id', sa.String(length=25), nullable=False),
        sa.Column('child_id', sa.String(length=25), nullable=False),
        sa.Column('user_id', sa.String(length=25), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['child_id'], ['children.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('child_id', 'user_id', name='uq_child_caregiver'),
    )
    op.create_index('ix_child_caregivers_id', 'child_caregivers', ['id'])
    op.create_index('ix_child_caregivers_child_id', 'child_caregivers', ['child_id'])
    op.create_index('ix_child_caregivers_user_id', 'child_caregivers', ['user_id'])

    op.create_table(
        'sleep_sessions',
        sa.Column('id', sa.String(length=25), nullable=False),
        sa.Column('child_id', sa.String(length=25), nullable=False),
        sa.Column('created_by_id', sa.String(length=25), nullable=True),
        sa.Column('session_type', sa.String(length=20), nullable=False),
        sa.Column('nap_number', sa.Integer(), nullable=True),
        sa.Column('is_ad_hoc', sa.Boolean(), nullable=False),
        sa.Column('location', sa.String(length=20), nullable=False),
        sa.Column('state', sa.String(length=20), nullable=False),

        # Lifecycle
        sa.Column('put_down_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('asleep_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('woke_up_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('out_of_crib_at', sa.DateTime(timezone=True), nullable=True),

        # Derived minutes
        sa.Column('total_minutes', sa.Integer(), nullable=True),
        sa.Column('sleep_minutes', sa.Integer(), nullable=True),
        sa.Column('settling_minutes', sa.Integer(), nullable=True),
        sa.Column('post_wake_minutes', sa.Integer(), nullable=True),
        sa.Column('awake_crib_minutes', sa.Integer(), nullable=True),
        sa.Column('qualified_rest_minutes', sa.Integer(), nullable=True),
        sa.Column('calculation_notes', sa.JSON(), nullable=True),

        sa.Column('crying_minutes', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('timezone', sa.String(length=64), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['child_id'], ['children.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['created_by_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sleep_sessions_id', 'sleep_sessions', ['id'])
    op.create_index('ix_sleep_sessions_child_id', 'sleep_sessions', ['child_id'])
    op.create_index('ix_sleep_sessions_state', 'sleep_sessions', ['state'])
    op.create_index('ix_sleep_sessions_child_put_down', 'sleep_sessions', ['child_id', 'put_down_at'])
    op.create_index('ix_sleep_sessions_child_state', 'sleep_sessions', ['child_id', 'state'])

    op.create_table(
        'sleep_cycles',
        sa.Column('id', sa.String(length=25), nullable=False),
        sa.Column('session_id', sa.String(length=25), nullable=False),
        sa.Column('cycle_number', sa.Integer(), nullable=False),
        sa.Column('woke_up_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('fell_back_asleep_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('wake_type', sa.String(length=20), nullable=False),
        sa.Column('sleep_minutes', sa.Integer(), nullable=True),
        sa.Column('awake_minutes', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['session_id'], ['sleep_sessions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sleep_cycles_id', 'sleep_cycles', ['id'])
    op.create_index('ix_sleep_cycles_session_id', 'sleep_cycles', ['session_id'])

    op.create_table(
        'sleep_schedules',
        sa.Column('id', sa.String(length=25), nullable=False),
        sa.Column('child_id', sa.String(length=25), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),

        # Wake windows
        sa.Column('wake_window_1_min', sa.Integer(), nullable=False),
        sa.Column('wake_window_1_max', sa.Integer(), nullable=False),
        sa.Column('wake_window_2_min', sa.Integer(), nullable=True),
        sa.Column('wake_window_2_max', sa.Integer(), nullable=True),
        sa.Column('wake_window_3_min', sa.Integer(), nullable=True),
        sa.Column('wake_window_3_max', sa.Integer(), nullable=True),

        # Nap bounds
        sa.Column('nap1_earliest', sa.String(length=5), nullable=True),
        sa.Column('nap1_latest_start', sa.String(length=5), nullable=True),
        sa.Column('nap1_max_duration', sa.Integer(), nullable=True),
        sa.Column('nap1_end_by', sa.String(length=5), nullable=True),
        sa.Column('nap2_earliest', sa.String(length=5), nullable=True),
        sa.Column('nap2_latest_start', sa.String(length=5), nullable=True),
        sa.Column('nap2_max_duration', sa.Integer(), nullable=True),
        sa.Column('nap2_end_by', sa.String(length=5), nullable=True),
        sa.Column('nap2_exception_duration', sa.Integer(), nullable=True),

        # Bedtime and morning
        sa.Column('bedtime_earliest', sa.String(length=5), nullable=False),
        sa.Column('bedtime_latest', sa.String(length=5), nullable=False),
        sa.Column('bedtime_goal_start', sa.String(length=5), nullable=True),
        sa.Column('bedtime_goal_end', sa.String(length=5), nullable=True),
        sa.Column('wake_time_earliest', sa.String(length=5), nullable=False),
        sa.Column('wake_time_latest', sa.String(length=5), nullable=False),
        sa.Column('must_wake_by', sa.String(length=5), nullable=True),

        # Caps
        sa.Column('day_sleep_cap', sa.Integer(), nullable=True),
        sa.Column('nap_cap_minutes', sa.Integer(), nullable=True),
        sa.Column('minimum_crib_minutes', sa.Integer(), nullable=True),
        sa.Column('nap_reminder_minutes', sa.Integer(), nullable=True),
        sa.Column('bedtime_reminder_minutes', sa.Integer(), nullable=True),

        sa.Column('created_by_id', sa.String(length=25), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['child_id'], ['children.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['created_by_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sleep_schedules_id', 'sleep_schedules', ['id'])
    op.create_index('ix_sleep_schedules_child_id', 'sleep_schedules', ['child_id'])
    op.create_index('ix_sleep_schedules_child_active', 'sleep_schedules', ['child_id', 'is_active'])

    op.create_table(
        'schedule_transitions',
        sa.Column('id', sa.String(length=25), nullable=False),
        sa.Column('child_id', sa.String(length=25), nullable=False),
        sa.Column('from_type', sa.String(length=20), nullable=False),
        sa.Column('to_type', sa.String(length=20), nullable=False),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('current_week', sa.Integer(), nullable=False),
        sa.Column('target_weeks', sa.Integer(), nullable=False),
        sa.Column('current_nap_time', sa.String(length=5), nullable=False),
        sa.Column('last_push_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['child_id'], ['children.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_schedule_transitions_id', 'schedule_transitions', ['id'])
    op.create_index('ix_schedule_transitions_child_id', 'schedule_transitions', ['child_id'])


def downgrade() -> None:
    op.drop_table('schedule_transitions')
    op.drop_table('sleep_schedules')
    op.drop_table('sleep_cycles')
    op.drop_table('sleep_sessions')
    op.drop_table('child_caregivers')
    op.drop_table('children')
    op.drop_table('users')
