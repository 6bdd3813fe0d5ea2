"""Initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB


# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Create every table."""
    op.create_table(
        'user_profiles',
        sa.Column('id', sa.String(255), primary_key=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('organization', sa.String(255), nullable=True),
        sa.Column('role', sa.String(100), nullable=True),
        sa.Column('preferences', JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        *_timestamps(),
    )

    op.create_table(
        'hospitals',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False, unique=True),
        sa.Column('local_health_district', sa.String(255), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'patients',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=False, server_default=''),
        sa.Column('age', sa.Integer, nullable=True),
        sa.Column('sex', sa.String(20), nullable=True),
        sa.Column('context', sa.Text, nullable=True),
        sa.Column('discharge_text', sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_patients_user_id', 'patients', ['user_id'])

    op.create_table(
        'documents',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(255), nullable=True),
        sa.Column('filename', sa.String(500), nullable=False),
        sa.Column('summary', sa.Text, nullable=True),
        sa.Column('source', sa.String(20), nullable=True),
        sa.Column('share_status', sa.String(20), nullable=True),
        sa.Column('uploaded_by', sa.String(255), nullable=True),
        sa.Column('storage_key', sa.String(1000), nullable=True),
        sa.Column('s3_url', sa.String(2000), nullable=True),
        sa.Column('content_type', sa.String(100), nullable=True),
        sa.Column('file_size', sa.Integer, nullable=True),
        sa.Column('page_count', sa.Integer, nullable=True),
        sa.Column('full_text', sa.Text, nullable=True),
        sa.Column('metadata', JSONB, nullable=True),
        sa.Column('tags', JSONB, nullable=True),
        sa.Column('uploaded_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_documents_user_id', 'documents', ['user_id'])

    op.create_table(
        'snippets',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('shortcut', sa.String(50), nullable=False),
        sa.Column('content', sa.Text, nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('user_id', 'shortcut', name='uq_snippet_user_shortcut'),
    )
    op.create_index('ix_snippets_user_id', 'snippets', ['user_id'])

    op.create_table(
        'patient_summaries',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column(
            'patient_id',
            sa.String(36),
            sa.ForeignKey('patients.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('doctor_id', sa.String(255), nullable=False),
        sa.Column('patient_user_id', sa.String(255), nullable=True),
        sa.Column('blocks', JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column('discharge_text', sa.Text, nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='draft'),
        sa.Column('preferred_locale', sa.String(10), nullable=False, server_default='en'),
        *_timestamps(),
    )
    op.create_index('ix_patient_summaries_patient_id', 'patient_summaries', ['patient_id'])
    op.create_index('ix_patient_summaries_doctor_id', 'patient_summaries', ['doctor_id'])

    op.create_table(
        'summary_translations',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column(
            'summary_id',
            sa.String(36),
            sa.ForeignKey('patient_summaries.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('locale', sa.String(10), nullable=False),
        sa.Column('source_locale', sa.String(10), nullable=False, server_default='en'),
        sa.Column('translated_blocks', JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        *_timestamps(),
        sa.UniqueConstraint('summary_id', 'locale', name='uq_summary_translation_locale'),
    )
    op.create_index('ix_summary_translations_summary_id', 'summary_translations', ['summary_id'])

    op.create_table(
        'patient_access_keys',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column(
            'summary_id',
            sa.String(36),
            sa.ForeignKey('patient_summaries.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('role', sa.String(20), nullable=False, server_default='patient'),
        sa.Column('phone_number', sa.String(20), nullable=True),
        sa.Column('access_key', sa.String(128), nullable=False, unique=True),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index('ix_patient_access_keys_summary_id', 'patient_access_keys', ['summary_id'])


def downgrade() -> None:
    """Drop every table, children first."""
    op.drop_table('patient_access_keys')
    op.drop_table('summary_translations')
    op.drop_table('patient_summaries')
    op.drop_table('snippets')
    op.drop_table('documents')
    op.drop_table('patients')
    op.drop_table('hospitals')
    op.drop_table('user_profiles')
