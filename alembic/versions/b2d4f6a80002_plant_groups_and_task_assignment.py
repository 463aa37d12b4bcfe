"""plant groups, plant archiving and task assignment

Revision ID: b2d4f6a80002
Revises: a1c3e5f70001
Create Date: 2026-10-25 14:03:51.620114

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = 'b2d4f6a80002'
down_revision: Union[str, None] = 'a1c3e5f70001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

plant_group_role_enum = sa.Enum('admin', 'member', name='plant_group_role_enum')
invitation_status_enum = sa.Enum('pending', 'accepted', 'revoked', name='invitation_status_enum')


def upgrade() -> None:
    op.create_table(
        'plant_groups',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        'plant_group_members',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('plant_group_id', sa.Integer(), sa.ForeignKey('plant_groups.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role', plant_group_role_enum, nullable=False),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_plant_group_members_plant_group_id', 'plant_group_members', ['plant_group_id'])
    op.create_index('ix_plant_group_members_user_id', 'plant_group_members', ['user_id'], unique=True)

    op.create_table(
        'plant_group_invitations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('plant_group_id', sa.Integer(), sa.ForeignKey('plant_groups.id', ondelete='CASCADE'), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('invited_by_user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', invitation_status_enum, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('responded_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_plant_group_invitations_plant_group_id', 'plant_group_invitations', ['plant_group_id'])
    op.create_index('ix_plant_group_invitations_email', 'plant_group_invitations', ['email'])

    op.add_column('plants', sa.Column('plant_group_id', sa.Integer(), nullable=True))
    op.create_foreign_key(
        'plants_plant_group_id_fkey', 'plants', 'plant_groups', ['plant_group_id'], ['id'], ondelete='SET NULL'
    )
    op.create_index('ix_plants_plant_group_id', 'plants', ['plant_group_id'])
    op.add_column(
        'plants', sa.Column('is_archived', sa.Boolean(), nullable=False, server_default=sa.false())
    )

    op.add_column('care_tasks', sa.Column('assigned_user_id', sa.Integer(), nullable=True))
    op.create_foreign_key(
        'care_tasks_assigned_user_id_fkey', 'care_tasks', 'users', ['assigned_user_id'], ['id'], ondelete='SET NULL'
    )
    op.create_index('ix_care_tasks_assigned_user_id', 'care_tasks', ['assigned_user_id'])


def downgrade() -> None:
    op.drop_index('ix_care_tasks_assigned_user_id', table_name='care_tasks')
    op.drop_constraint('care_tasks_assigned_user_id_fkey', 'care_tasks', type_='foreignkey')
    op.drop_column('care_tasks', 'assigned_user_id')

    op.drop_column('plants', 'is_archived')
    op.drop_index('ix_plants_plant_group_id', table_name='plants')
    op.drop_constraint('plants_plant_group_id_fkey', 'plants', type_='foreignkey')
    op.drop_column('plants', 'plant_group_id')

    op.drop_table('plant_group_invitations')
    op.drop_table('plant_group_members')
    op.drop_table('plant_groups')
    for enum in (invitation_status_enum, plant_group_role_enum):
        enum.drop(op.get_bind(), checkfirst=True)
