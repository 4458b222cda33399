"""Initial database schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _id_column() -> sa.Column:
    return sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False)


def _created_at_column() -> sa.Column:
    return sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False)


def upgrade() -> None:
    """Upgrade database schema."""
    # Create profiles table
    op.create_table('profiles',
        _id_column(),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('avatar_url', sa.String(length=1024), nullable=True),
        _created_at_column(),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_profiles_email'), 'profiles', ['email'], unique=False)

    # Create user_roles table
    op.create_table('user_roles',
        _id_column(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'role', name='uq_user_role')
    )
    op.create_index(op.f('ix_user_roles_user_id'), 'user_roles', ['user_id'], unique=False)

    # Create packages table
    op.create_table('packages',
        _id_column(),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('package_type', sa.String(length=50), nullable=True),
        sa.Column('duration_days', sa.Integer(), nullable=True),
        sa.Column('image_url', sa.String(length=1024), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('minimum_dp', sa.BigInteger(), nullable=False),
        sa.Column('dp_deadline_days', sa.Integer(), nullable=True),
        sa.Column('full_deadline_days', sa.Integer(), nullable=True),
        _created_at_column(),
        sa.CheckConstraint('minimum_dp >= 0', name='ck_package_minimum_dp_non_negative'),
        sa.CheckConstraint('length(slug) > 0', name='ck_package_slug_not_empty'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_packages_title'), 'packages', ['title'], unique=False)
    op.create_index(op.f('ix_packages_slug'), 'packages', ['slug'], unique=True)
    op.create_index(op.f('ix_packages_is_active'), 'packages', ['is_active'], unique=False)

    # Create package_commissions table
    op.create_table('package_commissions',
        _id_column(),
        sa.Column('package_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('pic_type', sa.String(length=20), nullable=False),
        sa.Column('commission_amount', sa.BigInteger(), nullable=False),
        sa.CheckConstraint('commission_amount >= 0', name='ck_package_commission_non_negative'),
        sa.ForeignKeyConstraint(['package_id'], ['packages.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('package_id', 'pic_type', name='uq_package_commission_pic_type')
    )
    op.create_index(op.f('ix_package_commissions_package_id'), 'package_commissions', ['package_id'], unique=False)

    # Create package_departures table
    op.create_table('package_departures',
        _id_column(),
        sa.Column('package_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('departure_date', sa.Date(), nullable=False),
        sa.Column('return_date', sa.Date(), nullable=True),
        sa.Column('quota', sa.Integer(), nullable=False),
        sa.Column('remaining_quota', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        _created_at_column(),
        sa.CheckConstraint('quota >= 0', name='ck_departure_quota_non_negative'),
        sa.CheckConstraint('remaining_quota >= 0', name='ck_departure_remaining_quota_non_negative'),
        sa.CheckConstraint('remaining_quota <= quota', name='ck_departure_remaining_quota_lte_quota'),
        sa.ForeignKeyConstraint(['package_id'], ['packages.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_package_departures_package_id'), 'package_departures', ['package_id'], unique=False)
    op.create_index(op.f('ix_package_departures_departure_date'), 'package_departures', ['departure_date'], unique=False)

    # Create departure_prices table
    op.create_table('departure_prices',
        _id_column(),
        sa.Column('departure_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('room_type', sa.String(length=20), nullable=False),
        sa.Column('price', sa.BigInteger(), nullable=False),
        sa.CheckConstraint('price >= 0', name='ck_departure_price_non_negative'),
        sa.ForeignKeyConstraint(['departure_id'], ['package_departures.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('departure_id', 'room_type', name='uq_departure_price_room_type')
    )
    op.create_index(op.f('ix_departure_prices_departure_id'), 'departure_prices', ['departure_id'], unique=False)

    # Create branches and agents tables
    op.create_table('branches',
        _id_column(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('city', sa.String(length=100), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        _created_at_column(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table('agents',
        _id_column(),
        sa.Column('branch_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        _created_at_column(),
        sa.ForeignKeyConstraint(['branch_id'], ['branches.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_agents_branch_id'), 'agents', ['branch_id'], unique=False)

    # Create bookings table
    op.create_table('bookings',
        _id_column(),
        sa.Column('booking_code', sa.String(length=32), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('package_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('departure_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('total_price', sa.BigInteger(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('pic_type', sa.String(length=20), nullable=False),
        sa.Column('pic_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        _created_at_column(),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('total_price >= 0', name='ck_booking_total_price_non_negative'),
        sa.CheckConstraint('length(booking_code) > 0', name='ck_booking_code_not_empty'),
        sa.ForeignKeyConstraint(['user_id'], ['profiles.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['package_id'], ['packages.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['departure_id'], ['package_departures.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_bookings_booking_code'), 'bookings', ['booking_code'], unique=True)
    op.create_index(op.f('ix_bookings_user_id'), 'bookings', ['user_id'], unique=False)
    op.create_index(op.f('ix_bookings_package_id'), 'bookings', ['package_id'], unique=False)
    op.create_index(op.f('ix_bookings_departure_id'), 'bookings', ['departure_id'], unique=False)
    op.create_index(op.f('ix_bookings_status'), 'bookings', ['status'], unique=False)

    # Create booking_rooms table
    op.create_table('booking_rooms',
        _id_column(),
        sa.Column('booking_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('room_type', sa.String(length=20), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price', sa.BigInteger(), nullable=False),
        sa.Column('subtotal', sa.BigInteger(), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_booking_room_quantity_positive'),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_booking_rooms_booking_id'), 'booking_rooms', ['booking_id'], unique=False)

    # Create booking_pilgrims table
    op.create_table('booking_pilgrims',
        _id_column(),
        sa.Column('booking_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('gender', sa.String(length=10), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('nik', sa.String(length=32), nullable=True),
        sa.Column('passport_number', sa.String(length=32), nullable=True),
        sa.Column('passport_expiry', sa.Date(), nullable=True),
        sa.Column('birth_date', sa.Date(), nullable=True),
        _created_at_column(),
        sa.CheckConstraint('length(name) > 0', name='ck_booking_pilgrim_name_not_empty'),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_booking_pilgrims_booking_id'), 'booking_pilgrims', ['booking_id'], unique=False)

    # Create payments table
    op.create_table('payments',
        _id_column(),
        sa.Column('booking_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('payment_type', sa.String(length=20), nullable=False),
        sa.Column('payment_method', sa.String(length=50), nullable=False),
        sa.Column('proof_url', sa.String(length=1024), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('verified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('verified_by', postgresql.UUID(as_uuid=True), nullable=True),
        _created_at_column(),
        sa.CheckConstraint('amount > 0', name='ck_payment_amount_positive'),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_payments_booking_id'), 'payments', ['booking_id'], unique=False)
    op.create_index(op.f('ix_payments_status'), 'payments', ['status'], unique=False)

    # Create notifications table
    op.create_table('notifications',
        _id_column(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('booking_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('type', sa.String(length=32), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False),
        _created_at_column(),
        sa.ForeignKeyConstraint(['user_id'], ['profiles.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_notifications_user_id'), 'notifications', ['user_id'], unique=False)
    op.create_index(op.f('ix_notifications_is_read'), 'notifications', ['is_read'], unique=False)

    # Create site_settings and navigation_items tables
    op.create_table('site_settings',
        _id_column(),
        sa.Column('category', sa.String(length=64), nullable=False),
        sa.Column('key', sa.String(length=64), nullable=False),
        sa.Column('value', sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('category', 'key', name='uq_site_setting_category_key')
    )
    op.create_table('navigation_items',
        _id_column(),
        sa.Column('parent_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('label', sa.String(length=100), nullable=False),
        sa.Column('url', sa.String(length=1024), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('open_in_new_tab', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['parent_id'], ['navigation_items.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_table('navigation_items')
    op.drop_table('site_settings')
    op.drop_table('notifications')
    op.drop_table('payments')
    op.drop_table('booking_pilgrims')
    op.drop_table('booking_rooms')
    op.drop_table('bookings')
    op.drop_table('agents')
    op.drop_table('branches')
    op.drop_table('departure_prices')
    op.drop_table('package_departures')
    op.drop_table('package_commissions')
    op.drop_table('packages')
    op.drop_table('user_roles')
    op.drop_table('profiles')
