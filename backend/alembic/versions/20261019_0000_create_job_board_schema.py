"""create_job_board_schema

Revision ID: 20261019_0000
Revises:
Create Date: 2026-10-19 00:00:00.000000+00:00

"""
from alembic import op
import sqlalchemy as sa


revision = '20261019_0000'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'job',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('external_id', sa.String(length=32), nullable=False),
        sa.Column('slug', sa.String(length=256), nullable=False),
        sa.Column('title', sa.String(length=128), nullable=False),
        sa.Column('company', sa.String(length=128), nullable=False),
        sa.Column('company_url', sa.String(length=128), nullable=True),
        sa.Column('company_email', sa.String(length=128), nullable=False),
        sa.Column('location', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('perks', sa.Text(), nullable=True),
        sa.Column('interview_process', sa.Text(), nullable=True),
        sa.Column('how_to_apply', sa.String(length=512), nullable=False),
        sa.Column('company_icon_id', sa.String(length=255), nullable=True),
        sa.Column('salary_min', sa.Integer(), nullable=False),
        sa.Column('salary_max', sa.Integer(), nullable=False),
        sa.Column('salary_currency', sa.String(length=4), nullable=False),
        sa.Column('salary_range', sa.String(length=100), nullable=False),
        sa.Column('ad_tier', sa.SmallInteger(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('submitted_at', sa.DateTime(), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('external_id', name='uq_job_external_id'),
        sa.UniqueConstraint('slug', name='uq_job_slug'),
    )
    op.create_index('idx_job_listing', 'job', ['approved_at', 'ad_tier', 'created_at'], unique=False)

    op.create_table(
        'edit_token',
        sa.Column('token', sa.String(length=32), nullable=False),
        sa.Column('job_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['job_id'], ['job.id'], name='fk_edit_token_job_id'),
        sa.PrimaryKeyConstraint('token'),
    )
    op.create_index(op.f('ix_edit_token_job_id'), 'edit_token', ['job_id'], unique=False)

    op.create_table(
        'apply_token',
        sa.Column('token', sa.String(length=32), nullable=False),
        sa.Column('job_id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('cv', sa.LargeBinary(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('confirmed_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['job_id'], ['job.id'], name='fk_apply_token_job_id'),
        sa.PrimaryKeyConstraint('token'),
    )
    op.create_index(op.f('ix_apply_token_job_id'), 'apply_token', ['job_id'], unique=False)

    op.create_table(
        'job_event',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('event_type', sa.String(length=128), nullable=False),
        sa.Column('job_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['job_id'], ['job.id'], name='fk_job_event_job_id'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_job_event_job', 'job_event', ['job_id', 'event_type'], unique=False)

    op.create_table(
        'purchase_event',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('session_id', sa.String(length=255), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('ad_tier', sa.SmallInteger(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('job_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['job_id'], ['job.id'], name='fk_purchase_event_job_id'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('session_id', name='uq_purchase_event_session_id'),
    )
    op.create_index(op.f('ix_purchase_event_job_id'), 'purchase_event', ['job_id'], unique=False)


def downgrade() -> None:
    # Dependents first
    op.drop_index(op.f('ix_purchase_event_job_id'), table_name='purchase_event')
    op.drop_table('purchase_event')
    op.drop_index('idx_job_event_job', table_name='job_event')
    op.drop_table('job_event')
    op.drop_index(op.f('ix_apply_token_job_id'), table_name='apply_token')
    op.drop_table('apply_token')
    op.drop_index(op.f('ix_edit_token_job_id'), table_name='edit_token')
    op.drop_table('edit_token')
    op.drop_index('idx_job_listing', table_name='job')
    op.drop_table('job')
