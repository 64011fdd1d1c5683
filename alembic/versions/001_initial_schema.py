"""Initial schema: certificate records and the processing log.

Revision ID: 001_initial
Revises:
Create Date: 2025-11-05

- certificate_records: one row per idempotency key, status machine plus extracted fields
- processing_log_entries: append-only audit trail of every attempt
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

certificate_status = sa.Enum('PENDING', 'PROCESSING', 'EXTRACTED', 'FAILED', name='certificatestatus')
log_outcome = sa.Enum('SUCCESS', 'TRANSIENT_ERROR', 'PERMANENT_ERROR', name='logoutcome')


def upgrade() -> None:
    """Create certificate tables."""

    # ==========================================================================
    # certificate_records
    # ==========================================================================
    op.create_table('certificate_records',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),

        # Identity (deduplication key)
        sa.Column('idempotency_key', sa.String(64), nullable=False),
        sa.Column('status', certificate_status, nullable=False),
        sa.Column('attempt_count', sa.Integer(), nullable=False, server_default='0'),

        # Document locator
        sa.Column('document_path', sa.String(1024), nullable=False),
        sa.Column('content_version', sa.String(255), nullable=False),

        # Extracted fields
        sa.Column('student_name', sa.String(255), nullable=True),
        sa.Column('student_id', sa.String(100), nullable=True),
        sa.Column('date_of_birth', sa.Date(), nullable=True),
        sa.Column('certificate_type', sa.String(100), nullable=True),
        sa.Column('degree_program', sa.String(255), nullable=True),
        sa.Column('gpa', sa.Float(), nullable=True),
        sa.Column('issuing_institution', sa.String(255), nullable=True),
        sa.Column('graduation_date', sa.Date(), nullable=True),
        sa.Column('graduation_year', sa.Integer(), nullable=True),
        sa.Column('transcript_number', sa.String(100), nullable=True),
        sa.Column('confidence_score', sa.Float(), nullable=True),

        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_error', sa.Text(), nullable=True),

        # Timestamps
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),

        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            'confidence_score IS NULL OR (confidence_score >= 0.0 AND confidence_score <= 1.0)',
            name='ck_certificate_records_confidence_range',
        ),
    )
    op.create_index('ix_certificate_records_idempotency_key', 'certificate_records', ['idempotency_key'], unique=True)
    op.create_index('ix_certificate_records_status', 'certificate_records', ['status'])
    op.create_index('ix_certificate_records_student_name', 'certificate_records', ['student_name'])
    op.create_index('ix_certificate_records_student_id', 'certificate_records', ['student_id'])
    op.create_index('ix_certificate_records_certificate_type', 'certificate_records', ['certificate_type'])
    op.create_index('ix_certificate_records_graduation_year', 'certificate_records', ['graduation_year'])
    op.create_index('ix_certificate_records_created_at_id', 'certificate_records', ['created_at', 'id'])

    # ==========================================================================
    # processing_log_entries
    # ==========================================================================
    op.create_table('processing_log_entries',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('certificate_id', sa.Integer(), nullable=True),
        sa.Column('idempotency_key', sa.String(64), nullable=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('outcome', log_outcome, nullable=False),
        sa.Column('attempt', sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['certificate_id'], ['certificate_records.id']),
    )
    op.create_index('ix_processing_log_entries_certificate_id', 'processing_log_entries', ['certificate_id'])
    op.create_index('ix_processing_log_entries_idempotency_key', 'processing_log_entries', ['idempotency_key'])


def downgrade() -> None:
    """Drop certificate tables."""
    op.drop_index('ix_processing_log_entries_idempotency_key', table_name='processing_log_entries')
    op.drop_index('ix_processing_log_entries_certificate_id', table_name='processing_log_entries')
    op.drop_table('processing_log_entries')

    op.drop_index('ix_certificate_records_created_at_id', table_name='certificate_records')
    op.drop_index('ix_certificate_records_graduation_year', table_name='certificate_records')
    op.drop_index('ix_certificate_records_certificate_type', table_name='certificate_records')
    op.drop_index('ix_certificate_records_student_id', table_name='certificate_records')
    op.drop_index('ix_certificate_records_student_name', table_name='certificate_records')
    op.drop_index('ix_certificate_records_status', table_name='certificate_records')
    op.drop_index('ix_certificate_records_idempotency_key', table_name='certificate_records')
    op.drop_table('certificate_records')

    log_outcome.drop(op.get_bind(), checkfirst=True)
    certificate_status.drop(op.get_bind(), checkfirst=True)
