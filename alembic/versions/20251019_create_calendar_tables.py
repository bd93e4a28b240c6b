"""Create persisted calendar event tables

Revision ID: 3f7a1c2e9b40
Revises:
Create Date: 2025-10-19

Creates the event store schema:
- calendar_events: user-created events
- event_attendees: users invited to an event
- event_attachments: files attached to an event
- recurrence_rules: at most one repeat definition per event

Child rows are removed in cascade with their event.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f7a1c2e9b40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('calendar_events',
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('category', sa.String(length=50), nullable=False),
        sa.Column('priority', sa.String(length=20), nullable=False),
        sa.Column('is_all_day', sa.Boolean(), nullable=False),
        sa.Column('is_public', sa.Boolean(), nullable=False),
        sa.Column('location', sa.String(length=200), nullable=True),
        sa.Column('color', sa.String(length=50), nullable=True),
        sa.Column('author_id', sa.String(length=255), nullable=False),
        sa.Column('event_metadata', sa.JSON(), nullable=False),
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('calendar_events', schema=None) as batch_op:
        batch_op.create_index('idx_calendar_event_start', ['start_date'], unique=False)
        batch_op.create_index('idx_calendar_event_end', ['end_date'], unique=False)
        batch_op.create_index('idx_calendar_event_author', ['author_id'], unique=False)
        batch_op.create_index('idx_calendar_event_category', ['category'], unique=False)
        batch_op.create_index('idx_calendar_event_range', ['start_date', 'end_date'], unique=False)

    op.create_table('event_attendees',
        sa.Column('event_id', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['event_id'], ['calendar_events.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('event_id', 'user_id', name='uq_event_attendee')
    )
    with op.batch_alter_table('event_attendees', schema=None) as batch_op:
        batch_op.create_index('idx_attendee_user', ['user_id'], unique=False)

    op.create_table('event_attachments',
        sa.Column('event_id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('url', sa.Text(), nullable=False),
        sa.Column('content_type', sa.String(length=100), nullable=False),
        sa.Column('size', sa.Integer(), nullable=False),
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['event_id'], ['calendar_events.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('event_attachments', schema=None) as batch_op:
        batch_op.create_index('idx_attachment_event', ['event_id'], unique=False)

    op.create_table('recurrence_rules',
        sa.Column('event_id', sa.String(length=64), nullable=False),
        sa.Column('pattern', sa.String(length=20), nullable=False),
        sa.Column('interval', sa.Integer(), nullable=False),
        sa.Column('days_of_week', sa.JSON(), nullable=False),
        sa.Column('month_of_year', sa.Integer(), nullable=True),
        sa.Column('week_of_month', sa.Integer(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('occurrences', sa.Integer(), nullable=True),
        sa.Column('exceptions', sa.JSON(), nullable=False),
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['event_id'], ['calendar_events.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('event_id')
    )


def downgrade() -> None:
    op.drop_table('recurrence_rules')
    with op.batch_alter_table('event_attachments', schema=None) as batch_op:
        batch_op.drop_index('idx_attachment_event')
    op.drop_table('event_attachments')
    with op.batch_alter_table('event_attendees', schema=None) as batch_op:
        batch_op.drop_index('idx_attendee_user')
    op.drop_table('event_attendees')
    with op.batch_alter_table('calendar_events', schema=None) as batch_op:
        batch_op.drop_index('idx_calendar_event_range')
        batch_op.drop_index('idx_calendar_event_category')
        batch_op.drop_index('idx_calendar_event_author')
        batch_op.drop_index('idx_calendar_event_end')
        batch_op.drop_index('idx_calendar_event_start')
    op.drop_table('calendar_events')
