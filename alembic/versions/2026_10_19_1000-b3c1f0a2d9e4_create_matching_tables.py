"""create_matching_tables

Revision ID: b3c1f0a2d9e4
Revises:
Create Date: 2026-10-19 10:00:00.000000+00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'b3c1f0a2d9e4'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        'students',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('department', sa.String(length=255), nullable=True),
        sa.Column('skills', sa.JSON(), nullable=True),
        sa.Column('interests', sa.JSON(), nullable=True),
        sa.Column('partner_id', sa.Uuid(), nullable=True),
        sa.Column('partnership_status', sa.String(length=20), nullable=False, server_default='none'),
        sa.Column('version', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['partner_id'], ['students.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_students_id'), 'students', ['id'], unique=False)
    op.create_index(op.f('ix_students_email'), 'students', ['email'], unique=True)
    op.create_index(op.f('ix_students_partner_id'), 'students', ['partner_id'], unique=False)
    op.create_index(op.f('ix_students_partnership_status'), 'students', ['partnership_status'], unique=False)

    op.create_table(
        'supervisors',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('department', sa.String(length=255), nullable=True),
        sa.Column('research_interests', sa.JSON(), nullable=True),
        sa.Column('current_capacity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_capacity', sa.Integer(), nullable=False),
        sa.Column('availability_status', sa.String(length=20), nullable=False, server_default='available'),
        sa.Column('version', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('current_capacity >= 0', name='check_current_capacity_non_negative'),
    )
    op.create_index(op.f('ix_supervisors_id'), 'supervisors', ['id'], unique=False)
    op.create_index(op.f('ix_supervisors_email'), 'supervisors', ['email'], unique=True)

    op.create_table(
        'partnership_requests',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('requester_id', sa.Uuid(), nullable=False),
        sa.Column('target_id', sa.Uuid(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('responded_at', sa.DateTime(), nullable=True),
        sa.Column('pending_pair_key', sa.String(length=80), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['requester_id'], ['students.id']),
        sa.ForeignKeyConstraint(['target_id'], ['students.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('pending_pair_key', name='unique_pending_partnership_pair'),
    )
    op.create_index(op.f('ix_partnership_requests_id'), 'partnership_requests', ['id'], unique=False)
    op.create_index(op.f('ix_partnership_requests_requester_id'), 'partnership_requests', ['requester_id'], unique=False)
    op.create_index(op.f('ix_partnership_requests_target_id'), 'partnership_requests', ['target_id'], unique=False)
    op.create_index(op.f('ix_partnership_requests_status'), 'partnership_requests', ['status'], unique=False)

    op.create_table(
        'applications',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('student_id', sa.Uuid(), nullable=False),
        sa.Column('supervisor_id', sa.Uuid(), nullable=False),
        sa.Column('project_title', sa.String(length=255), nullable=False),
        sa.Column('project_description', sa.Text(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('supervisor_feedback', sa.Text(), nullable=True),
        sa.Column('response_date', sa.DateTime(), nullable=True),
        sa.Column('resubmitted_date', sa.DateTime(), nullable=True),
        sa.Column('has_partner', sa.Boolean(), nullable=False),
        sa.Column('partner_id', sa.Uuid(), nullable=True),
        sa.Column('linked_application_id', sa.Uuid(), nullable=True),
        sa.Column('is_lead_application', sa.Boolean(), nullable=False),
        sa.Column('active_key', sa.String(length=80), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['student_id'], ['students.id']),
        sa.ForeignKeyConstraint(['supervisor_id'], ['supervisors.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('active_key', name='unique_active_student_supervisor_application'),
    )
    op.create_index(op.f('ix_applications_id'), 'applications', ['id'], unique=False)
    op.create_index(op.f('ix_applications_student_id'), 'applications', ['student_id'], unique=False)
    op.create_index(op.f('ix_applications_supervisor_id'), 'applications', ['supervisor_id'], unique=False)
    op.create_index(op.f('ix_applications_status'), 'applications', ['status'], unique=False)
    op.create_index(op.f('ix_applications_partner_id'), 'applications', ['partner_id'], unique=False)
    op.create_index(op.f('ix_applications_linked_application_id'), 'applications', ['linked_application_id'], unique=False)


def downgrade() -> None:
    op.drop_table('applications')
    op.drop_table('partnership_requests')
    op.drop_table('supervisors')
    op.drop_table('students')
