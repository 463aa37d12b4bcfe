"""initial care and notification tables

Revision ID: a1c3e5f70001
Revises:
Create Date: 2026-10-18 09:12:04.113527

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = 'a1c3e5f70001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

care_task_type_enum = sa.Enum(
    'water', 'fertilize', 'water_fertilize', 'mist', 'repot_check', 'prune', 'rotate', 'custom',
    name='care_task_type_enum',
)
recurrence_unit_enum = sa.Enum('days', 'weeks', 'months', name='recurrence_unit_enum')
notification_type_enum = sa.Enum(
    'task_due', 'task_overdue', 'task_completed', 'task_created', 'plant_needs_attention',
    name='notification_type_enum',
)
notification_channel_enum = sa.Enum('in_app', 'sms', 'email', name='notification_channel_enum')
email_digest_frequency_enum = sa.Enum('daily', 'weekly', 'never', name='email_digest_frequency_enum')
pipeline_status_enum = sa.Enum('running', 'success', 'failed', name='pipeline_status_enum')


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('external_id', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('timezone', sa.String(50), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_users_external_id', 'users', ['external_id'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'plants',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('species_name', sa.String(200), nullable=True),
        sa.Column('location', sa.String(200), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('last_watered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_fertilized_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_misted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_repotted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_plants_user_id', 'plants', ['user_id'])

    op.create_table(
        'care_tasks',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('plant_id', sa.Integer(), sa.ForeignKey('plants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', care_task_type_enum, nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_recurring', sa.Boolean(), nullable=False),
        sa.Column('recurrence_frequency', sa.Integer(), nullable=True),
        sa.Column('recurrence_unit', recurrence_unit_enum, nullable=True),
        sa.Column('next_due_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_care_tasks_plant_id', 'care_tasks', ['plant_id'])
    op.create_index('ix_care_tasks_user_id', 'care_tasks', ['user_id'])
    op.create_index('ix_care_tasks_next_due_date', 'care_tasks', ['next_due_date'])

    op.create_table(
        'task_completions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('task_id', sa.Integer(), sa.ForeignKey('care_tasks.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('skipped', sa.Boolean(), nullable=False),
    )
    op.create_index('ix_task_completions_task_id', 'task_completions', ['task_id'])
    op.create_index('ix_task_completions_user_id', 'task_completions', ['user_id'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('task_id', sa.Integer(), sa.ForeignKey('care_tasks.id', ondelete='CASCADE'), nullable=True),
        sa.Column('plant_id', sa.Integer(), sa.ForeignKey('plants.id', ondelete='CASCADE'), nullable=True),
        sa.Column('type', notification_type_enum, nullable=False),
        sa.Column('channel', notification_channel_enum, nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('metadata', sa.JSON(), nullable=False),
        sa.Column('read', sa.Boolean(), nullable=False),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])
    op.create_index('ix_notifications_task_id', 'notifications', ['task_id'])
    op.create_index('ix_notifications_plant_id', 'notifications', ['plant_id'])
    op.create_index('ix_notifications_created_at', 'notifications', ['created_at'])

    op.create_table(
        'user_notification_preferences',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('phone_number', sa.String(20), nullable=True),
        sa.Column('phone_verified', sa.Boolean(), nullable=False),
        sa.Column('phone_verification_code', sa.String(6), nullable=True),
        sa.Column('phone_verification_expiry', sa.DateTime(timezone=True), nullable=True),
        sa.Column('sms_enabled', sa.Boolean(), nullable=False),
        sa.Column('sms_opt_in_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('sms_opt_out_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('email_enabled', sa.Boolean(), nullable=False),
        sa.Column('email_digest_frequency', email_digest_frequency_enum, nullable=False),
        sa.Column('quiet_hours_start', sa.Integer(), nullable=True),
        sa.Column('quiet_hours_end', sa.Integer(), nullable=True),
        sa.Column('notify_task_due', sa.Boolean(), nullable=False),
        sa.Column('notify_task_overdue', sa.Boolean(), nullable=False),
        sa.Column('notify_task_completed', sa.Boolean(), nullable=False),
        sa.Column('advance_notice_hours', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        'ix_user_notification_preferences_user_id', 'user_notification_preferences', ['user_id'], unique=True
    )

    op.create_table(
        'pipeline_runs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('pipeline_name', sa.String(100), nullable=False),
        sa.Column('status', pipeline_status_enum, nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('finished_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('duration_ms', sa.Integer(), nullable=True),
        sa.Column('records_processed', sa.Integer(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
    )
    op.create_index('ix_pipeline_runs_pipeline_name', 'pipeline_runs', ['pipeline_name'])


def downgrade() -> None:
    op.drop_table('pipeline_runs')
    op.drop_table('user_notification_preferences')
    op.drop_table('notifications')
    op.drop_table('task_completions')
    op.drop_table('care_tasks')
    op.drop_table('plants')
    op.drop_table('users')
    for enum in (
        pipeline_status_enum,
        email_digest_frequency_enum,
        notification_channel_enum,
        notification_type_enum,
        recurrence_unit_enum,
        care_task_type_enum,
    ):
        enum.drop(op.get_bind(), checkfirst=True)
