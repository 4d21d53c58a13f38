"""Initial schema - users, uploaded_files, insights, vitals

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.Column('updated_at', sa.DateTime, nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(50), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(32), nullable=True),
        sa.Column('date_of_birth', sa.Date, nullable=True),
        sa.Column('gender', sa.String(20), nullable=True),
        sa.Column('preferences', sa.JSON, nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('deleted_at', sa.DateTime, nullable=True),
        sa.Column('last_login_at', sa.DateTime, nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_status', 'users', ['status'])

    op.create_table(
        'uploaded_files',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('report_type', sa.String(32), nullable=False),
        sa.Column('report_date', sa.Date, nullable=False),
        sa.Column('doctor_name', sa.String(255), nullable=False, server_default=''),
        sa.Column('hospital_name', sa.String(255), nullable=False, server_default=''),
        sa.Column('notes', sa.Text, nullable=False, server_default=''),
        sa.Column('files', sa.JSON, nullable=False),
        sa.Column('ai_analysis', sa.JSON, nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='uploaded'),
        sa.Column('error_message', sa.Text, nullable=True),
        sa.Column('uploaded_at', sa.DateTime, nullable=False),
        sa.Column('analyzed_at', sa.DateTime, nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_uploaded_files_id', 'uploaded_files', ['id'])
    op.create_index('ix_uploaded_files_status', 'uploaded_files', ['status'])
    op.create_index('ix_uploaded_files_user_uploaded', 'uploaded_files', ['user_id', 'uploaded_at'])
    op.create_index('ix_uploaded_files_user_type', 'uploaded_files', ['user_id', 'report_type'])

    op.create_table(
        'insights',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('file_id', sa.String(36), sa.ForeignKey('uploaded_files.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.String(32), nullable=False, server_default='report_analysis'),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('analysis_kind', sa.String(20), nullable=False, server_default='structured'),
        sa.Column('summary', sa.JSON, nullable=False),
        sa.Column('key_findings', sa.JSON, nullable=False),
        sa.Column('abnormal_values', sa.JSON, nullable=False),
        sa.Column('doctor_questions', sa.JSON, nullable=False),
        sa.Column('recommendations', sa.JSON, nullable=False),
        sa.Column('risk_factors', sa.JSON, nullable=False),
        sa.Column('follow_up_suggestions', sa.JSON, nullable=False),
        sa.Column('disclaimers', sa.JSON, nullable=False),
        sa.Column('critical_findings_count', sa.Integer, nullable=False, server_default='0'),
        sa.Column('confidence', sa.Float, nullable=False, server_default='85'),
        sa.Column('language', sa.String(10), nullable=False, server_default='both'),
        sa.Column('model', sa.String(64), nullable=False),
        sa.Column('processing_time_ms', sa.Float, nullable=False, server_default='0'),
        sa.Column('version', sa.String(10), nullable=False, server_default='1.0'),
        sa.Column('is_read', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('read_at', sa.DateTime, nullable=True),
        sa.Column('is_reviewed', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('user_feedback', sa.JSON, nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_insights_id', 'insights', ['id'])
    op.create_index('ix_insights_file_id', 'insights', ['file_id'])
    op.create_index('ix_insights_user_created', 'insights', ['user_id', 'created_at'])

    op.create_table(
        'vitals',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.String(32), nullable=False),
        sa.Column('value_numeric', sa.Float, nullable=True),
        sa.Column('value_text', sa.String(255), nullable=True),
        sa.Column('value_systolic', sa.Integer, nullable=True),
        sa.Column('value_diastolic', sa.Integer, nullable=True),
        sa.Column('unit', sa.String(16), nullable=False),
        sa.Column('recorded_at', sa.DateTime, nullable=False),
        sa.Column('notes', sa.String(500), nullable=True),
        sa.Column('source', sa.String(16), nullable=False, server_default='manual'),
        sa.Column('location', sa.String(16), nullable=False, server_default='home'),
        sa.Column('device', sa.JSON, nullable=True),
        sa.Column('conditions', sa.JSON, nullable=False),
        sa.Column('tags', sa.JSON, nullable=False),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index('ix_vitals_id', 'vitals', ['id'])
    op.create_index('ix_vitals_is_active', 'vitals', ['is_active'])
    op.create_index('ix_vitals_user_type_recorded', 'vitals', ['user_id', 'type', 'recorded_at'])
    op.create_index('ix_vitals_user_recorded', 'vitals', ['user_id', 'recorded_at'])


def downgrade() -> None:
    op.drop_table('vitals')
    op.drop_table('insights')
    op.drop_table('uploaded_files')
    op.drop_table('users')
