"""Create scheduling tables

Revision ID: 202506010000
Revises:
Create Date: 2025-06-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '202506010000'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('locations',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('tenant_id', sa.Integer(), nullable=False),
    sa.Column('name', sa.String(length=255), nullable=False),
    sa.Column('timezone', sa.String(length=64), nullable=False),
    sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=True),
    sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=True),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_locations_id'), 'locations', ['id'], unique=False)
    op.create_index('idx_locations_tenant', 'locations', ['tenant_id'], unique=False)

    op.create_table('practitioners',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('tenant_id', sa.Integer(), nullable=False),
    sa.Column('name', sa.String(length=255), nullable=False),
    sa.Column('location_id', sa.Integer(), nullable=True),
    sa.Column('is_active', sa.Boolean(), nullable=False),
    sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=True),
    sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=True),
    sa.ForeignKeyConstraint(['location_id'], ['locations.id']),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_practitioners_id'), 'practitioners', ['id'], unique=False)
    op.create_index('idx_practitioners_tenant', 'practitioners', ['tenant_id', 'is_active'], unique=False)

    op.create_table('practitioner_availability',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('tenant_id', sa.Integer(), nullable=False),
    sa.Column('practitioner_id', sa.Integer(), nullable=False),
    sa.Column('day_of_week', sa.Integer(), nullable=False),
    sa.Column('start_time', sa.Time(), nullable=False),
    sa.Column('end_time', sa.Time(), nullable=False),
    sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=True),
    sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=True),
    sa.ForeignKeyConstraint(['practitioner_id'], ['practitioners.id']),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_practitioner_availability_id'), 'practitioner_availability', ['id'], unique=False)
    op.create_index(
        'idx_practitioner_availability_practitioner_day',
        'practitioner_availability',
        ['tenant_id', 'practitioner_id', 'day_of_week'],
        unique=False,
    )

    op.create_table('availability_overrides',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('tenant_id', sa.Integer(), nullable=False),
    sa.Column('practitioner_id', sa.Integer(), nullable=False),
    sa.Column('override_type', sa.String(length=20), nullable=False),
    sa.Column('start_date', sa.Date(), nullable=False),
    sa.Column('end_date', sa.Date(), nullable=False),
    sa.Column('start_time', sa.Time(), nullable=True),
    sa.Column('end_time', sa.Time(), nullable=True),
    sa.Column('recurrence', sa.String(length=20), nullable=False),
    sa.Column('recurring_weekdays', sa.JSON(), nullable=True),
    sa.Column('reason', sa.String(length=100), nullable=True),
    sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=True),
    sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=True),
    sa.ForeignKeyConstraint(['practitioner_id'], ['practitioners.id']),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_availability_overrides_id'), 'availability_overrides', ['id'], unique=False)
    op.create_index(
        'idx_availability_overrides_range',
        'availability_overrides',
        ['tenant_id', 'practitioner_id', 'start_date', 'end_date'],
        unique=False,
    )

    op.create_table('bookings',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('tenant_id', sa.Integer(), nullable=False),
    sa.Column('practitioner_id', sa.Integer(), nullable=False),
    sa.Column('client_id', sa.Integer(), nullable=False),
    sa.Column('location_id', sa.Integer(), nullable=True),
    sa.Column('date', sa.Date(), nullable=False),
    sa.Column('start_time', sa.Time(), nullable=False),
    sa.Column('end_time', sa.Time(), nullable=False),
    sa.Column('status', sa.String(length=20), nullable=False),
    sa.Column('appointment_type', sa.String(length=50), nullable=False),
    sa.Column('notes', sa.String(length=1000), nullable=True),
    sa.Column('is_recurring', sa.Boolean(), nullable=False),
    sa.Column('recurrence_rule', sa.JSON(), nullable=True),
    sa.Column('parent_booking_id', sa.Integer(), nullable=True),
    sa.Column('cancelled_at', sa.TIMESTAMP(timezone=True), nullable=True),
    sa.Column('cancellation_reason', sa.String(length=100), nullable=True),
    sa.Column('cancellation_note', sa.String(length=1000), nullable=True),
    sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=True),
    sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=True),
    sa.ForeignKeyConstraint(['location_id'], ['locations.id']),
    sa.ForeignKeyConstraint(['parent_booking_id'], ['bookings.id']),
    sa.ForeignKeyConstraint(['practitioner_id'], ['practitioners.id']),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_bookings_id'), 'bookings', ['id'], unique=False)
    op.create_index(
        'idx_bookings_practitioner_date_status',
        'bookings',
        ['tenant_id', 'practitioner_id', 'date', 'status'],
        unique=False,
    )
    op.create_index('idx_bookings_parent', 'bookings', ['parent_booking_id'], unique=False)
    op.create_index('idx_bookings_client', 'bookings', ['tenant_id', 'client_id'], unique=False)

    op.create_table('waitlist_entries',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('tenant_id', sa.Integer(), nullable=False),
    sa.Column('client_id', sa.Integer(), nullable=False),
    sa.Column('practitioner_id', sa.Integer(), nullable=False),
    sa.Column('preferred_dates', sa.JSON(), nullable=True),
    sa.Column('preferred_times', sa.JSON(), nullable=True),
    sa.Column('priority', sa.String(length=20), nullable=False),
    sa.Column('status', sa.String(length=20), nullable=False),
    sa.Column('added_at', sa.TIMESTAMP(timezone=True), nullable=False),
    sa.Column('notified_at', sa.TIMESTAMP(timezone=True), nullable=True),
    sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=True),
    sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=True),
    sa.ForeignKeyConstraint(['practitioner_id'], ['practitioners.id']),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'idx_waitlist_practitioner_status',
        'waitlist_entries',
        ['tenant_id', 'practitioner_id', 'status'],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index('idx_waitlist_practitioner_status', table_name='waitlist_entries')
    op.drop_table('waitlist_entries')

    op.drop_index('idx_bookings_client', table_name='bookings')
    op.drop_index('idx_bookings_parent', table_name='bookings')
    op.drop_index('idx_bookings_practitioner_date_status', table_name='bookings')
    op.drop_index(op.f('ix_bookings_id'), table_name='bookings')
    op.drop_table('bookings')

    op.drop_index('idx_availability_overrides_range', table_name='availability_overrides')
    op.drop_index(op.f('ix_availability_overrides_id'), table_name='availability_overrides')
    op.drop_table('availability_overrides')

    op.drop_index('idx_practitioner_availability_practitioner_day', table_name='practitioner_availability')
    op.drop_index(op.f('ix_practitioner_availability_id'), table_name='practitioner_availability')
    op.drop_table('practitioner_availability')

    op.drop_index('idx_practitioners_tenant', table_name='practitioners')
    op.drop_index(op.f('ix_practitioners_id'), table_name='practitioners')
    op.drop_table('practitioners')

    op.drop_index('idx_locations_tenant', table_name='locations')
    op.drop_index(op.f('ix_locations_id'), table_name='locations')
    op.drop_table('locations')
