"""Initial hotel schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    """Upgrade database schema."""
    # btree_gist lets the exclusion constraint mix = on integers with && on ranges
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")

    # Create room_types table
    op.create_table('room_types',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('base_price_amount', sa.Integer(), nullable=False),
        sa.Column('max_occupancy', sa.Integer(), nullable=False),
        sa.Column('amenities', sa.JSON(), nullable=False),
        sa.Column('image_url', sa.String(length=512), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('base_price_amount >= 0', name='ck_room_type_price_non_negative'),
        sa.CheckConstraint('max_occupancy >= 1', name='ck_room_type_occupancy_positive'),
        sa.CheckConstraint('length(name) > 0', name='ck_room_type_name_not_empty'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )
    op.create_index(op.f('ix_room_types_name'), 'room_types', ['name'], unique=False)

    # Create rooms table
    op.create_table('rooms',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('room_number', sa.String(length=20), nullable=False),
        sa.Column('room_type_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('length(room_number) > 0', name='ck_room_number_not_empty'),
        sa.ForeignKeyConstraint(['room_type_id'], ['room_types.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('room_number')
    )
    op.create_index(op.f('ix_rooms_room_number'), 'rooms', ['room_number'], unique=False)
    op.create_index(op.f('ix_rooms_room_type_id'), 'rooms', ['room_type_id'], unique=False)
    op.create_index(op.f('ix_rooms_status'), 'rooms', ['status'], unique=False)

    # Create reservations table
    op.create_table('reservations',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('room_id', sa.Integer(), nullable=False),
        sa.Column('check_in_date', sa.Date(), nullable=False),
        sa.Column('check_out_date', sa.Date(), nullable=False),
        sa.Column('guests_count', sa.Integer(), nullable=False),
        sa.Column('total_amount', sa.Integer(), nullable=False),
        sa.Column('special_requests', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('hold_expires_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('check_out_date > check_in_date', name='ck_reservation_dates_ordered'),
        sa.CheckConstraint('guests_count >= 1', name='ck_reservation_guests_positive'),
        sa.CheckConstraint('total_amount >= 0', name='ck_reservation_total_non_negative'),
        sa.CheckConstraint('length(user_id) > 0', name='ck_reservation_user_not_empty'),
        sa.ForeignKeyConstraint(['room_id'], ['rooms.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_reservations_user_id'), 'reservations', ['user_id'], unique=False)
    op.create_index(op.f('ix_reservations_room_id'), 'reservations', ['room_id'], unique=False)
    op.create_index(op.f('ix_reservations_status'), 'reservations', ['status'], unique=False)
    op.create_index('ix_reservations_room_dates', 'reservations', ['room_id', 'check_in_date', 'check_out_date'], unique=False)

    # No two occupying reservations may share a room night
    op.execute(
        "ALTER TABLE reservations ADD CONSTRAINT ex_reservations_room_no_overlap "
        "EXCLUDE USING gist (room_id WITH =, "
        "daterange(check_in_date, check_out_date, '[)') WITH &&) "
        "WHERE (status IN ('confirmed', 'checked_in'))"
    )

    # Create menu_categories table
    op.create_table('menu_categories',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('display_order', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )

    # Create menu_items table
    op.create_table('menu_items',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price_amount', sa.Integer(), nullable=False),
        sa.Column('is_available', sa.Boolean(), nullable=False),
        sa.Column('is_vegetarian', sa.Boolean(), nullable=False),
        sa.Column('is_vegan', sa.Boolean(), nullable=False),
        sa.Column('is_gluten_free', sa.Boolean(), nullable=False),
        sa.Column('image_url', sa.String(length=512), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('price_amount >= 0', name='ck_menu_item_price_non_negative'),
        sa.CheckConstraint('length(name) > 0', name='ck_menu_item_name_not_empty'),
        sa.ForeignKeyConstraint(['category_id'], ['menu_categories.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_menu_items_category_id'), 'menu_items', ['category_id'], unique=False)
    op.create_index(op.f('ix_menu_items_is_available'), 'menu_items', ['is_available'], unique=False)

    # Create food_orders table
    op.create_table('food_orders',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('room_number', sa.String(length=20), nullable=True),
        sa.Column('delivery_type', sa.String(length=20), nullable=False),
        sa.Column('special_instructions', sa.Text(), nullable=True),
        sa.Column('total_amount', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('total_amount >= 0', name='ck_food_order_total_non_negative'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_food_orders_user_id'), 'food_orders', ['user_id'], unique=False)
    op.create_index(op.f('ix_food_orders_status'), 'food_orders', ['status'], unique=False)

    # Create food_order_items table
    op.create_table('food_order_items',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('menu_item_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_amount', sa.Integer(), nullable=False),
        sa.Column('subtotal_amount', sa.Integer(), nullable=False),
        sa.Column('special_instructions', sa.Text(), nullable=True),
        sa.CheckConstraint('quantity >= 1', name='ck_food_order_item_quantity_positive'),
        sa.CheckConstraint('subtotal_amount = unit_price_amount * quantity', name='ck_food_order_item_subtotal'),
        sa.ForeignKeyConstraint(['order_id'], ['food_orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['menu_item_id'], ['menu_items.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_food_order_items_order_id'), 'food_order_items', ['order_id'], unique=False)

    # Create ratings table
    op.create_table('ratings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('reservation_id', sa.Integer(), nullable=True),
        sa.Column('rating_type', sa.String(length=20), nullable=False),
        sa.Column('rating', sa.Integer(), nullable=False),
        sa.Column('review', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('rating >= 1 AND rating <= 5', name='ck_rating_range'),
        sa.ForeignKeyConstraint(['reservation_id'], ['reservations.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'reservation_id', 'rating_type', name='uq_rating_user_reservation_type')
    )
    op.create_index(op.f('ix_ratings_user_id'), 'ratings', ['user_id'], unique=False)
    op.create_index(op.f('ix_ratings_reservation_id'), 'ratings', ['reservation_id'], unique=False)
    op.create_index(op.f('ix_ratings_rating_type'), 'ratings', ['rating_type'], unique=False)

    # Create feedback table
    op.create_table('feedback',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=True),
        sa.Column('name', sa.String(length=150), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('subject', sa.String(length=255), nullable=True),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('category', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('admin_response', sa.Text(), nullable=True),
        sa.Column('responded_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('length(message) > 0', name='ck_feedback_message_not_empty'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_feedback_user_id'), 'feedback', ['user_id'], unique=False)
    op.create_index(op.f('ix_feedback_category'), 'feedback', ['category'], unique=False)
    op.create_index(op.f('ix_feedback_status'), 'feedback', ['status'], unique=False)

    # Create idempotency_records table
    op.create_table('idempotency_records',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('idempotency_key', sa.String(length=255), nullable=False),
        sa.Column('method', sa.String(length=100), nullable=False),
        sa.Column('request_body_hash', sa.String(length=64), nullable=False),
        sa.Column('response_status_code', sa.Integer(), nullable=False),
        sa.Column('response_body', sa.Text(), nullable=False),
        sa.Column('response_headers', sa.Text(), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('length(idempotency_key) > 0', name='ck_idempotency_key_not_empty'),
        sa.CheckConstraint('length(method) > 0', name='ck_idempotency_method_not_empty'),
        sa.CheckConstraint('length(request_body_hash) = 64', name='ck_idempotency_hash_length'),
        sa.CheckConstraint('response_status_code >= 100', name='ck_idempotency_status_code_valid'),
        sa.CheckConstraint('response_status_code <= 599', name='ck_idempotency_status_code_max'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('idempotency_key', 'method', name='uq_idempotency_key_method')
    )
    op.create_index(op.f('ix_idempotency_records_idempotency_key'), 'idempotency_records', ['idempotency_key'], unique=False)
    op.create_index(op.f('ix_idempotency_records_method'), 'idempotency_records', ['method'], unique=False)
    op.create_index(op.f('ix_idempotency_records_expires_at'), 'idempotency_records', ['expires_at'], unique=False)


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_table('idempotency_records')
    op.drop_table('feedback')
    op.drop_table('ratings')
    op.drop_table('food_order_items')
    op.drop_table('food_orders')
    op.drop_table('menu_items')
    op.drop_table('menu_categories')
    op.drop_table('reservations')
    op.drop_table('rooms')
    op.drop_table('room_types')
