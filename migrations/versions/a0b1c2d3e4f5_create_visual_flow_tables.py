"""Create visual flow tables

Revision ID: a0b1c2d3e4f5
Revises:
Create Date: 2025-12-08 04:45:05.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'a0b1c2d3e4f5'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'visual_flow',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.Column('updated_at', sa.DateTime, nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text),
        sa.Column('status', sa.String(20), nullable=False, server_default='draft'),
        sa.Column('trigger_type', sa.String(20), nullable=False, server_default='manual'),
        sa.Column('trigger_config', sa.JSON, nullable=False),
        sa.Column('canvas_state', sa.JSON, nullable=False),
        sa.Column('metadata', sa.JSON, nullable=False),
    )
    op.create_index('idx_visual_flow_status', 'visual_flow', ['status'])
    op.create_index('idx_visual_flow_trigger_type', 'visual_flow', ['trigger_type'])

    op.create_table(
        'visual_flow_operation',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.Column('flow_id', sa.String(36), sa.ForeignKey('visual_flow.id', ondelete='CASCADE'), nullable=False),
        sa.Column('operation_key', sa.String(255), nullable=False),
        sa.Column('operation_type', sa.String(100), nullable=False),
        sa.Column('name', sa.String(255)),
        sa.Column('options', sa.JSON, nullable=False),
        sa.Column('position_x', sa.Float, nullable=False, server_default='0'),
        sa.Column('position_y', sa.Float, nullable=False, server_default='0'),
        sa.Column('sort_order', sa.Integer, nullable=False, server_default='0'),
    )
    op.create_index('idx_vf_operation_flow_id', 'visual_flow_operation', ['flow_id'])
    op.create_index('idx_vf_operation_key', 'visual_flow_operation', ['operation_key'])
    op.create_index('idx_vf_operation_type', 'visual_flow_operation', ['operation_type'])

    op.create_table(
        'visual_flow_connection',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.Column('flow_id', sa.String(36), sa.ForeignKey('visual_flow.id', ondelete='CASCADE'), nullable=False),
        sa.Column('source_id', sa.String(36), nullable=False),
        sa.Column('source_handle', sa.String(50), nullable=False, server_default='default'),
        sa.Column('target_id', sa.String(36), nullable=False),
        sa.Column('target_handle', sa.String(50), nullable=False, server_default='default'),
        sa.Column('connection_type', sa.String(20), nullable=False, server_default='default'),
        sa.Column('condition', sa.JSON),
        sa.Column('label', sa.String(255)),
    )
    op.create_index('idx_vf_connection_flow_id', 'visual_flow_connection', ['flow_id'])
    op.create_index('idx_vf_connection_source', 'visual_flow_connection', ['source_id'])
    op.create_index('idx_vf_connection_target', 'visual_flow_connection', ['target_id'])

    # Executions keep flow_id without a foreign key so runs of missing flows are recorded
    op.create_table(
        'visual_flow_execution',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('flow_id', sa.String(36), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('trigger_data', sa.JSON, nullable=False),
        sa.Column('data_chain', sa.JSON, nullable=False),
        sa.Column('error', sa.Text),
        sa.Column('error_details', sa.JSON),
        sa.Column('triggered_by', sa.String(255)),
        sa.Column('metadata', sa.JSON, nullable=False),
        sa.Column('started_at', sa.DateTime),
        sa.Column('completed_at', sa.DateTime),
        sa.Column('created_at', sa.DateTime),
        sa.Column('updated_at', sa.DateTime),
    )
    op.create_index('idx_vf_execution_flow_id', 'visual_flow_execution', ['flow_id'])
    op.create_index('idx_vf_execution_status', 'visual_flow_execution', ['status'])
    op.create_index('idx_vf_execution_started', 'visual_flow_execution', ['started_at'])

    op.create_table(
        'visual_flow_execution_log',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column(
            'execution_id',
            sa.String(36),
            sa.ForeignKey('visual_flow_execution.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('operation_id', sa.String(36)),
        sa.Column('operation_key', sa.String(255), nullable=False),
        sa.Column('sequence', sa.Integer, nullable=False, server_default='0'),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('input_data', sa.JSON),
        sa.Column('output_data', sa.JSON),
        sa.Column('error', sa.Text),
        sa.Column('error_stack', sa.Text),
        sa.Column('duration_ms', sa.Integer),
        sa.Column('executed_at', sa.DateTime, nullable=False),
    )
    op.create_index('idx_vf_log_execution_id', 'visual_flow_execution_log', ['execution_id'])
    op.create_index('idx_vf_log_operation_key', 'visual_flow_execution_log', ['operation_key'])
    op.create_index('idx_vf_log_status', 'visual_flow_execution_log', ['status'])
    op.create_index('idx_vf_log_exec_sequence', 'visual_flow_execution_log', ['execution_id', 'sequence'])


def downgrade():
    op.drop_table('visual_flow_execution_log')
    op.drop_table('visual_flow_execution')
    op.drop_table('visual_flow_connection')
    op.drop_table('visual_flow_operation')
    op.drop_table('visual_flow')
