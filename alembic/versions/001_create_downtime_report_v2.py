"""create downtime_report_v2 table

Revision ID: 001_create_downtime_report_v2
Revises:
Create Date: 2025-06-01
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_create_downtime_report_v2'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'downtime_report_v2',
        sa.Column('serial', sa.Integer(), primary_key=True),
        sa.Column('downtime_id', sa.String(length=32), nullable=False),
        sa.Column('issue_date', sa.Date(), nullable=True),
        sa.Column('issue_title', sa.String(), nullable=False),
        sa.Column('category', sa.String(), nullable=True),
        sa.Column('affected_channel', sa.String(), nullable=False),
        sa.Column('affected_persona', sa.String(), nullable=True),
        sa.Column('affected_mno', sa.String(), nullable=True),
        sa.Column('affected_portal', sa.String(), nullable=True),
        sa.Column('affected_type', sa.String(), nullable=True),
        sa.Column('affected_service', sa.String(), nullable=True),
        sa.Column('impact_type', sa.String(length=16), nullable=False),
        sa.Column('modality', sa.String(length=16), nullable=False),
        sa.Column('reliability_impacted', sa.String(length=8), nullable=False, server_default='NO'),
        sa.Column('start_date_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_date_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('duration', sa.String(length=16), nullable=True),
        sa.Column('concern', sa.Text(), nullable=True),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('resolution', sa.Text(), nullable=True),
        sa.Column('service_desk_ticket_id', sa.String(), nullable=True),
        sa.Column('service_desk_ticket_link', sa.String(), nullable=True),
        sa.Column('system_unavailability', sa.String(), nullable=True),
        sa.Column('tracked_by', sa.String(), nullable=True),
        sa.Column('remark', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_downtime_report_v2_serial', 'downtime_report_v2', ['serial'])
    op.create_index('ix_downtime_report_v2_downtime_id', 'downtime_report_v2', ['downtime_id'])
    op.create_index('ix_downtime_report_v2_start_date_time', 'downtime_report_v2', ['start_date_time'])


def downgrade():
    op.drop_index('ix_downtime_report_v2_start_date_time', table_name='downtime_report_v2')
    op.drop_index('ix_downtime_report_v2_downtime_id', table_name='downtime_report_v2')
    op.drop_index('ix_downtime_report_v2_serial', table_name='downtime_report_v2')
    op.drop_table('downtime_report_v2')
