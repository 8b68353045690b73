"""Create cadence tables

Revision ID: 001
Revises: 
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from sqlalchemy.sql import func

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql")


def upgrade() -> None:
    # Cadences
    op.create_table('cadences',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('workspace_id', sa.String(64), nullable=False),
    sa.Column('form_id', sa.String(64), nullable=False),
    sa.Column('name', sa.String(255), nullable=False),
    sa.Column('description', sa.Text(), nullable=True),
    sa.Column('schedule_config', JSON, nullable=False),
    sa.Column('notification_config', JSON, nullable=True),
    sa.Column('assigned_to', JSON, nullable=False),
    sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
    sa.Column('created_by', sa.String(100), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=func.now(), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), server_default=func.now(), nullable=False),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_cadences_id'), 'cadences', ['id'], unique=False)
    op.create_index(op.f('ix_cadences_workspace_id'), 'cadences', ['workspace_id'], unique=False)
    op.create_index(op.f('ix_cadences_form_id'), 'cadences', ['form_id'], unique=False)
    op.create_index('idx_cadences_workspace_active', 'cadences', ['workspace_id', 'is_active'], unique=False)

    # Instances
    op.create_table('cadence_instances',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('workspace_id', sa.String(64), nullable=False),
    sa.Column('cadence_id', sa.Integer(), nullable=True),
    sa.Column('form_id', sa.String(64), nullable=False),
    sa.Column('instance_name', sa.String(255), nullable=False),
    sa.Column('scheduled_for', sa.DateTime(timezone=True), nullable=False),
    sa.Column('due_at', sa.DateTime(timezone=True), nullable=False),
    sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
    sa.Column('submission_id', sa.String(64), nullable=True),
    sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
    sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
    sa.Column('completed_by', sa.String(100), nullable=True),
    sa.Column('assigned_to', JSON, nullable=False),
    sa.Column('metadata', JSON, nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=func.now(), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), server_default=func.now(), nullable=False),
    sa.ForeignKeyConstraint(['cadence_id'], ['cadences.id'], ondelete='SET NULL'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('cadence_id', 'scheduled_for', name='uq_instances_cadence_scheduled_for')
    )
    op.create_index(op.f('ix_cadence_instances_id'), 'cadence_instances', ['id'], unique=False)
    op.create_index(op.f('ix_cadence_instances_workspace_id'), 'cadence_instances', ['workspace_id'], unique=False)
    op.create_index(op.f('ix_cadence_instances_form_id'), 'cadence_instances', ['form_id'], unique=False)
    op.create_index('idx_instances_status_scheduled_for', 'cadence_instances', ['status', 'scheduled_for'], unique=False)
    op.create_index('idx_instances_status_due_at', 'cadence_instances', ['status', 'due_at'], unique=False)

    # Engine runs
    op.create_table('engine_runs',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('kind', sa.String(30), nullable=False),
    sa.Column('trigger_type', sa.String(30), nullable=False, server_default='scheduled'),
    sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
    sa.Column('end_time', sa.DateTime(timezone=True), nullable=True),
    sa.Column('status', sa.String(20), nullable=False),
    sa.Column('items_processed', sa.Integer(), nullable=False, server_default='0'),
    sa.Column('items_changed', sa.Integer(), nullable=False, server_default='0'),
    sa.Column('items_failed', sa.Integer(), nullable=False, server_default='0'),
    sa.Column('error_message', sa.Text(), nullable=True),
    sa.Column('details', JSON, nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=func.now(), nullable=False),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_engine_runs_id'), 'engine_runs', ['id'], unique=False)
    op.create_index(op.f('ix_engine_runs_kind'), 'engine_runs', ['kind'], unique=False)

    # Audit logs
    op.create_table('audit_logs',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('action', sa.String(100), nullable=False),
    sa.Column('entity_type', sa.String(50), nullable=True),
    sa.Column('entity_id', sa.Integer(), nullable=True),
    sa.Column('workspace_id', sa.String(64), nullable=True),
    sa.Column('user', sa.String(100), nullable=True),
    sa.Column('details', JSON, nullable=True),
    sa.Column('ip_address', sa.String(45), nullable=True),
    sa.Column('user_agent', sa.String(), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=func.now(), nullable=False),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_audit_logs_id'), 'audit_logs', ['id'], unique=False)
    op.create_index(op.f('ix_audit_logs_created_at'), 'audit_logs', ['created_at'], unique=False)
    op.create_index('idx_audit_logs_action', 'audit_logs', ['action'], unique=False)
    op.create_index('idx_audit_logs_workspace_created', 'audit_logs', ['workspace_id', 'created_at'], unique=False)


def downgrade() -> None:
    op.drop_table('audit_logs')
    op.drop_table('engine_runs')
    op.drop_table('cadence_instances')
    op.drop_table('cadences')
