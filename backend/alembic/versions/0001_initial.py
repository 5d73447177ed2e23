"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2025-06-01 00:00:00

"""
from alembic import op
import sqlalchemy as sa


revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'resources',
        sa.Column('id', sa.Text(), primary_key=True),
        sa.Column('organization_id', sa.Text(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('type', sa.Text(), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('timezone', sa.Text(), nullable=False, server_default=sa.text("'UTC'")),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default=sa.text('1')),
        sa.Column('is_fungible', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('is_standalone', sa.Integer(), nullable=False, server_default=sa.text('1')),
        sa.Column('is_active', sa.Integer(), nullable=False, server_default=sa.text('1')),
        sa.Column('created_at', sa.BigInteger()),
        sa.Column('updated_at', sa.BigInteger()),
    )
    op.create_index('ix_resources_organization_id', 'resources', ['organization_id'])

    op.create_table(
        'schedules',
        sa.Column('id', sa.Text(), primary_key=True),
        sa.Column('organization_id', sa.Text(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('timezone', sa.Text(), nullable=False, server_default=sa.text("'UTC'")),
        sa.Column('is_default', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('weekly_hours', sa.Text(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column('created_at', sa.BigInteger()),
        sa.Column('updated_at', sa.BigInteger()),
    )
    op.create_index('ix_schedules_organization_id', 'schedules', ['organization_id'])

    op.create_table(
        'date_overrides',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column(
            'schedule_id', sa.Text(),
            sa.ForeignKey('schedules.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('date', sa.Text(), nullable=False),
        sa.Column('type', sa.Text(), nullable=False),
        sa.Column('custom_hours', sa.Text()),
        sa.UniqueConstraint('schedule_id', 'date'),
    )

    op.create_table(
        'event_types',
        sa.Column('id', sa.Text(), primary_key=True),
        sa.Column('organization_id', sa.Text()),
        sa.Column('slug', sa.Text(), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('length_in_minutes', sa.Integer(), nullable=False),
        sa.Column('length_in_minutes_options', sa.Text()),
        sa.Column('slot_interval', sa.Integer()),
        sa.Column('timezone', sa.Text(), nullable=False, server_default=sa.text("'UTC'")),
        sa.Column('lock_time_zone_toggle', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('locations', sa.Text(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column('schedule_id', sa.Text(), sa.ForeignKey('schedules.id', ondelete='SET NULL')),
        sa.Column('buffer_before', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('buffer_after', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('min_notice_minutes', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('max_future_minutes', sa.Integer()),
        sa.Column('requires_confirmation', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('is_active', sa.Integer(), nullable=False, server_default=sa.text('1')),
        sa.Column('created_at', sa.BigInteger()),
        sa.Column('updated_at', sa.BigInteger()),
        sa.UniqueConstraint('organization_id', 'slug'),
    )
    op.create_index('ix_event_types_organization_id', 'event_types', ['organization_id'])

    op.create_table(
        'resource_event_types',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column(
            'resource_id', sa.Text(),
            sa.ForeignKey('resources.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column(
            'event_type_id', sa.Text(),
            sa.ForeignKey('event_types.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('created_at', sa.BigInteger()),
        sa.UniqueConstraint('resource_id', 'event_type_id'),
    )

    op.create_table(
        'daily_availability',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('resource_id', sa.Text(), nullable=False),
        sa.Column('date', sa.Text(), nullable=False),
        sa.Column('busy_slots', sa.Text(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.UniqueConstraint('resource_id', 'date'),
    )

    op.create_table(
        'quantity_availability',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('resource_id', sa.Text(), nullable=False),
        sa.Column('date', sa.Text(), nullable=False),
        sa.Column('slot_quantities', sa.Text(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.UniqueConstraint('resource_id', 'date'),
    )

    op.create_table(
        'bookings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('uid', sa.Text(), nullable=False, unique=True),
        sa.Column('resource_id', sa.Text(), nullable=False),
        sa.Column('actor_id', sa.Text(), nullable=False),
        sa.Column('event_type_id', sa.Text()),
        sa.Column('organization_id', sa.Text()),
        sa.Column('start', sa.BigInteger(), nullable=False),
        sa.Column('end', sa.BigInteger(), nullable=False),
        sa.Column('timezone', sa.Text(), nullable=False, server_default=sa.text("'UTC'")),
        sa.Column('status', sa.Text(), nullable=False, server_default=sa.text("'confirmed'")),
        sa.Column('booker_name', sa.Text(), nullable=False),
        sa.Column('booker_email', sa.Text(), nullable=False),
        sa.Column('booker_phone', sa.Text()),
        sa.Column('booker_notes', sa.Text()),
        sa.Column('event_title', sa.Text(), nullable=False),
        sa.Column('event_description', sa.Text()),
        sa.Column('location', sa.Text(), nullable=False, server_default=sa.text("'{}'")),
        sa.Column('management_token_hash', sa.Text()),
        sa.Column('cancellation_reason', sa.Text()),
        sa.Column('cancelled_at', sa.BigInteger()),
        sa.Column('rescheduled_from_uid', sa.Text()),
        sa.Column('rescheduled_to_uid', sa.Text()),
        sa.Column('created_at', sa.BigInteger(), nullable=False),
        sa.Column('updated_at', sa.BigInteger(), nullable=False),
    )
    op.create_index('ix_bookings_resource_id', 'bookings', ['resource_id'])
    op.create_index('ix_bookings_event_type_id', 'bookings', ['event_type_id'])
    op.create_index('ix_bookings_organization_id', 'bookings', ['organization_id'])

    op.create_table(
        'booking_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column(
            'booking_id', sa.Integer(),
            sa.ForeignKey('bookings.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('resource_id', sa.Text(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default=sa.text('1')),
    )
    op.create_index('ix_booking_items_booking_id', 'booking_items', ['booking_id'])

    op.create_table(
        'booking_history',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column(
            'booking_id', sa.Integer(),
            sa.ForeignKey('bookings.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('from_status', sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column('to_status', sa.Text(), nullable=False),
        sa.Column('changed_by', sa.Text()),
        sa.Column('reason', sa.Text()),
        sa.Column('timestamp', sa.BigInteger(), nullable=False),
    )
    op.create_index('ix_booking_history_booking_id', 'booking_history', ['booking_id'])

    op.create_table(
        'presence',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('resource_id', sa.Text(), nullable=False),
        sa.Column('slot', sa.Text(), nullable=False),
        sa.Column('user', sa.Text(), nullable=False),
        sa.Column('updated', sa.BigInteger(), nullable=False),
        sa.Column('data', sa.Text()),
        sa.UniqueConstraint('resource_id', 'slot', 'user'),
    )

    op.create_table(
        'presence_heartbeats',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('resource_id', sa.Text(), nullable=False),
        sa.Column('slot', sa.Text(), nullable=False),
        sa.Column('user', sa.Text(), nullable=False),
        sa.Column('mark_as_gone', sa.Text(), nullable=False),
        sa.UniqueConstraint('resource_id', 'slot', 'user'),
    )


def downgrade() -> None:
    op.drop_table('presence_heartbeats')
    op.drop_table('presence')
    op.drop_index('ix_booking_history_booking_id', table_name='booking_history')
    op.drop_table('booking_history')
    op.drop_index('ix_booking_items_booking_id', table_name='booking_items')
    op.drop_table('booking_items')
    op.drop_index('ix_bookings_organization_id', table_name='bookings')
    op.drop_index('ix_bookings_event_type_id', table_name='bookings')
    op.drop_index('ix_bookings_resource_id', table_name='bookings')
    op.drop_table('bookings')
    op.drop_table('quantity_availability')
    op.drop_table('daily_availability')
    op.drop_table('resource_event_types')
    op.drop_index('ix_event_types_organization_id', table_name='event_types')
    op.drop_table('event_types')
    op.drop_table('date_overrides')
    op.drop_index('ix_schedules_organization_id', table_name='schedules')
    op.drop_table('schedules')
    op.drop_index('ix_resources_organization_id', table_name='resources')
    op.drop_table('resources')
