"""initial_schema

Revision ID: 3f2a9c1d7e45
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

import milestone_tracker.db.models


# revision identifiers, used by Alembic.
revision: str = '3f2a9c1d7e45'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create users, milestones, trackings and notifications."""

    op.create_table('users',
        sa.Column('id', milestone_tracker.db.models.GUID(), nullable=False),
        sa.Column('username', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('password_salt', sa.String(length=64), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('queue_remaining', sa.Integer(), nullable=False),
        sa.Column('daily_tracking_limit', sa.Integer(), nullable=False),
        sa.Column('notify_email', sa.Boolean(), nullable=False),
        sa.Column('notify_daily_summary', sa.Boolean(), nullable=False),
        sa.Column('notify_push', sa.Boolean(), nullable=False),
        sa.Column('interest_categories', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('daily_tracking_limit > 0', name='ck_user_daily_limit_positive'),
        sa.CheckConstraint(
            'queue_remaining >= 0 AND queue_remaining <= daily_tracking_limit',
            name='ck_user_queue_remaining_bounds',
        ),
        sa.CheckConstraint("role IN ('owner', 'tracker')", name='ck_user_role'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username'),
        sa.UniqueConstraint('email'),
    )

    op.create_table('milestones',
        sa.Column('id', milestone_tracker.db.models.GUID(), nullable=False),
        sa.Column('owner_id', milestone_tracker.db.models.GUID(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('progress', sa.Integer(), nullable=False),
        sa.Column('tracking_count', sa.Integer(), nullable=False),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('progress >= 0 AND progress <= 100', name='ck_milestone_progress_range'),
        sa.CheckConstraint('tracking_count >= 0', name='ck_milestone_tracking_count_nonneg'),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_milestone_owner_id', 'milestones', ['owner_id'], unique=False)

    op.create_table('trackings',
        sa.Column('id', milestone_tracker.db.models.GUID(), nullable=False),
        sa.Column('milestone_id', milestone_tracker.db.models.GUID(), nullable=False),
        sa.Column('tracker_id', milestone_tracker.db.models.GUID(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_notified_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['milestone_id'], ['milestones.id'], ),
        sa.ForeignKeyConstraint(['tracker_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('milestone_id', 'tracker_id', name='uq_tracking_milestone_tracker'),
    )
    op.create_index('ix_tracking_tracker_id', 'trackings', ['tracker_id'], unique=False)

    op.create_table('notifications',
        sa.Column('id', milestone_tracker.db.models.GUID(), nullable=False),
        sa.Column('recipient_id', milestone_tracker.db.models.GUID(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('kind', sa.String(length=32), nullable=False),
        sa.Column('read', sa.Boolean(), nullable=False),
        sa.Column('related_milestone_id', milestone_tracker.db.models.GUID(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_notification_recipient_created',
        'notifications',
        ['recipient_id', 'created_at'],
        unique=False,
    )


def downgrade() -> None:
    """Drop all tables."""

    op.drop_index('ix_notification_recipient_created', table_name='notifications')
    op.drop_table('notifications')
    op.drop_index('ix_tracking_tracker_id', table_name='trackings')
    op.drop_table('trackings')
    op.drop_index('ix_milestone_owner_id', table_name='milestones')
    op.drop_table('milestones')
    op.drop_table('users')
