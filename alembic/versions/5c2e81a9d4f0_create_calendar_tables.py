"""create_calendar_tables

Revision ID: 5c2e81a9d4f0
Revises:
Create Date: 2026-10-18 10:12:44.318207

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5c2e81a9d4f0'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'trainers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('timezone', sa.String(length=50), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_trainers_id'), 'trainers', ['id'], unique=False)
    op.create_index(op.f('ix_trainers_email'), 'trainers', ['email'], unique=True)

    op.create_table(
        'students',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('trainer_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['trainer_id'], ['trainers.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_students_trainer_id', 'students', ['trainer_id'], unique=False)
    op.create_index(op.f('ix_students_id'), 'students', ['id'], unique=False)

    op.create_table(
        'calendar_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('trainer_id', sa.Integer(), nullable=False),
        sa.Column('student_id', sa.Integer(), nullable=True),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('location', sa.String(length=500), nullable=True),
        sa.Column('is_all_day', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['student_id'], ['students.id'], ),
        sa.ForeignKeyConstraint(['trainer_id'], ['trainers.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_calendar_events_trainer_id', 'calendar_events', ['trainer_id'], unique=False)
    op.create_index('idx_calendar_events_start_time', 'calendar_events', ['start_time'], unique=False)
    op.create_index('idx_calendar_events_end_time', 'calendar_events', ['end_time'], unique=False)
    op.create_index(op.f('ix_calendar_events_id'), 'calendar_events', ['id'], unique=False)

    op.create_table(
        'calendar_connections',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('trainer_id', sa.Integer(), nullable=False),
        sa.Column('provider', sa.String(length=20), nullable=False),
        sa.Column('access_token', sa.Text(), nullable=True),
        sa.Column('refresh_token', sa.Text(), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('account_username', sa.String(length=255), nullable=True),
        sa.Column('oauth_state', sa.String(length=128), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['trainer_id'], ['trainers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('oauth_state'),
        sa.UniqueConstraint('trainer_id', 'provider', name='uq_calendar_connection_trainer_provider')
    )
    op.create_index('idx_calendar_connections_expires_at', 'calendar_connections', ['expires_at'], unique=False)
    op.create_index(op.f('ix_calendar_connections_id'), 'calendar_connections', ['id'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f('ix_calendar_connections_id'), table_name='calendar_connections')
    op.drop_index('idx_calendar_connections_expires_at', table_name='calendar_connections')
    op.drop_table('calendar_connections')
    op.drop_index(op.f('ix_calendar_events_id'), table_name='calendar_events')
    op.drop_index('idx_calendar_events_end_time', table_name='calendar_events')
    op.drop_index('idx_calendar_events_start_time', table_name='calendar_events')
    op.drop_index('idx_calendar_events_trainer_id', table_name='calendar_events')
    op.drop_table('calendar_events')
    op.drop_index(op.f('ix_students_id'), table_name='students')
    op.drop_index('idx_students_trainer_id', table_name='students')
    op.drop_table('students')
    op.drop_index(op.f('ix_trainers_email'), table_name='trainers')
    op.drop_index(op.f('ix_trainers_id'), table_name='trainers')
    op.drop_table('trainers')
