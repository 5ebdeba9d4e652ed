# (c) Copyright Datacraft, 2026
"""Documents, staff queue settings, unmatched reports and activity log.

Revision ID: sb_0001
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = 'sb_0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
	op.create_table(
		'documents',
		sa.Column('id', sa.String(36), primary_key=True),
		sa.Column('owner_id', sa.String(64)),
		sa.Column('original_filename', sa.String(512), nullable=False),
		sa.Column('normalized_key', sa.String(512), nullable=False),
		sa.Column('file_path', sa.String(1024)),
		sa.Column('scan_type', sa.String(32), nullable=False, server_default='FULL'),  # FULL, SIMILARITY_ONLY
		sa.Column('status', sa.String(32), nullable=False, server_default='PENDING'),  # PENDING, IN_PROGRESS, COMPLETED, CANCELLED
		sa.Column('assigned_staff_id', sa.String(64)),
		sa.Column('assigned_at', sa.DateTime(timezone=True)),
		sa.Column('similarity_report_path', sa.String(1024)),
		sa.Column('ai_report_path', sa.String(1024)),
		sa.Column('similarity_percentage', sa.Float),
		sa.Column('ai_percentage', sa.Float),
		sa.Column('needs_review', sa.Boolean, nullable=False, server_default=sa.false()),
		sa.Column('review_reason', sa.Text),
		sa.Column('remarks', sa.Text),
		sa.Column('cancelled_at', sa.DateTime(timezone=True)),
		sa.Column('cancelled_by', sa.String(64)),
		sa.Column('cancellation_reason', sa.Text),
		sa.Column('uploaded_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
		sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
		sa.Column('completed_at', sa.DateTime(timezone=True)),
	)
	op.create_index('ix_documents_status', 'documents', ['status'])
	op.create_index('ix_documents_normalized_key', 'documents', ['normalized_key'])
	op.create_index('ix_documents_assigned_staff', 'documents', ['assigned_staff_id', 'status'])
	op.create_index('ix_documents_uploaded', 'documents', ['uploaded_at'])

	op.create_table(
		'staff_settings',
		sa.Column('id', sa.String(36), primary_key=True),
		sa.Column('staff_id', sa.String(64), nullable=False, unique=True),
		sa.Column('max_concurrent_files', sa.Integer, nullable=False, server_default='1'),
		sa.Column('time_limit_minutes', sa.Integer, nullable=False, server_default='30'),
		sa.Column('assigned_scan_types', sa.JSON),
		sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
		sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
	)

	op.create_table(
		'unmatched_reports',
		sa.Column('id', sa.String(36), primary_key=True),
		sa.Column('batch_id', sa.String(36)),
		sa.Column('file_name', sa.String(512), nullable=False),
		sa.Column('normalized_key', sa.String(512), nullable=False),
		sa.Column('file_path', sa.String(1024), nullable=False),
		sa.Column('report_type', sa.String(32)),  # SIMILARITY, AI
		sa.Column('similarity_percentage', sa.Float),
		sa.Column('ai_percentage', sa.Float),
		sa.Column('reason', sa.Text, nullable=False),
		sa.Column('matched_document_id', sa.String(36), sa.ForeignKey('documents.id', ondelete='SET NULL')),
		sa.Column('suggested_documents', sa.JSON),
		sa.Column('uploaded_by', sa.String(64)),
		sa.Column('uploaded_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
		sa.Column('resolved', sa.Boolean, nullable=False, server_default=sa.false()),
		sa.Column('resolved_at', sa.DateTime(timezone=True)),
		sa.Column('resolved_by', sa.String(64)),
	)
	op.create_index('ix_unmatched_reports_resolved', 'unmatched_reports', ['resolved'])
	op.create_index('ix_unmatched_reports_batch', 'unmatched_reports', ['batch_id'])

	op.create_table(
		'activity_logs',
		sa.Column('id', sa.String(36), primary_key=True),
		sa.Column('staff_id', sa.String(64)),
		sa.Column('document_id', sa.String(36), sa.ForeignKey('documents.id', ondelete='CASCADE')),
		sa.Column('action', sa.String(255), nullable=False),
		sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
	)
	op.create_index('ix_activity_logs_document', 'activity_logs', ['document_id'])
	op.create_index('ix_activity_logs_staff', 'activity_logs', ['staff_id'])


def downgrade() -> None:
	op.drop_table('activity_logs')
	op.drop_table('unmatched_reports')
	op.drop_table('staff_settings')
	op.drop_table('documents')
