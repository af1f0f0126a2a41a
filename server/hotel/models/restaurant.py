"""Menu and food order model definitions."""

from datetime import datetime
from enum import Enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.clock import utcnow
from ..core.database import Base, enum_type


class OrderStatus(str, Enum):
    """Food order status enumeration."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class DeliveryType(str, Enum):
    """How a food order reaches the guest."""
    ROOM_SERVICE = "room_service"
    PICKUP = "pickup"
    DINE_IN = "dine_in"


class MenuCategory(Base):
    """Menu category entity."""

    __tablename__ = "menu_categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
        server_default=func.now()
    )

    items: Mapped[list["MenuItem"]] = relationship("MenuItem", back_populates="category")

    def __repr__(self) -> str:
        return f"<MenuCategory(id={self.id}, name='{self.name}')>"


class MenuItem(Base):
    """Menu item entity with its current price."""

    __tablename__ = "menu_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    category_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("menu_categories.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Price in minor currency units
    price_amount: Mapped[int] = mapped_column(Integer, nullable=False)

    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    is_vegetarian: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_vegan: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_gluten_free: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    image_url: Mapped[str | None] = mapped_column(String(512), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
        server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("price_amount >= 0", name="ck_menu_item_price_non_negative"),
        CheckConstraint("length(name) > 0", name="ck_menu_item_name_not_empty"),
    )

    category: Mapped["MenuCategory"] = relationship("MenuCategory", back_populates="items")

    def __repr__(self) -> str:
        return f"<MenuItem(id={self.id}, name='{self.name}', price_amount={self.price_amount})>"


class FoodOrder(Base):
    """Food order header."""

    __tablename__ = "food_orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    room_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    delivery_type: Mapped[DeliveryType] = mapped_column(
        enum_type(DeliveryType),
        nullable=False,
        default=DeliveryType.ROOM_SERVICE
    )
    special_instructions: Mapped[str | None] = mapped_column(Text, nullable=True)
    total_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[OrderStatus] = mapped_column(
        enum_type(OrderStatus),
        nullable=False,
        default=OrderStatus.PENDING,
        index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
        server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="ck_food_order_total_non_negative"),
    )

    items: Mapped[list["FoodOrderItem"]] = relationship(
        "FoodOrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="FoodOrderItem.id"
    )

    def __repr__(self) -> str:
        return (
            f"<FoodOrder(id={self.id}, user_id='{self.user_id}', "
            f"total_amount={self.total_amount}, status={self.status})>"
        )


class FoodOrderItem(Base):
    """Food order line item priced from the menu at order time."""

    __tablename__ = "food_order_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("food_orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    menu_item_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("menu_items.id", ondelete="RESTRICT"),
        nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    subtotal_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    special_instructions: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_food_order_item_quantity_positive"),
        CheckConstraint("subtotal_amount = unit_price_amount * quantity", name="ck_food_order_item_subtotal"),
    )

    order: Mapped["FoodOrder"] = relationship("FoodOrder", back_populates="items")
    menu_item: Mapped["MenuItem"] = relationship("MenuItem")

    def __repr__(self) -> str:
        return (
            f"<FoodOrderItem(order_id={self.order_id}, menu_item_id={self.menu_item_id}, "
            f"quantity={self.quantity})>"
        )
