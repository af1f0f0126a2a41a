"""Restaurant menu and food order Pydantic schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.restaurant import DeliveryType, OrderStatus
from .common import Money


class MenuCategoryResponse(BaseModel):
    """Menu category response schema."""

    id: int = Field(..., description="Category ID")
    name: str = Field(..., description="Category name")
    description: Optional[str] = Field(None, description="Category description")
    display_order: int = Field(..., description="Position on the menu")


class MenuCategoryListResponse(BaseModel):
    categories: List[MenuCategoryResponse] = Field(..., description="Active categories by display order")


class MenuItemResponse(BaseModel):
    """Menu item response schema."""

    id: int = Field(..., description="Menu item ID")
    category_id: int = Field(..., description="Category ID")
    name: str = Field(..., description="Item name")
    description: Optional[str] = Field(None, description="Item description")
    price: Money = Field(..., description="Current price")
    is_vegetarian: bool = Field(False, description="Vegetarian")
    is_vegan: bool = Field(False, description="Vegan")
    is_gluten_free: bool = Field(False, description="Gluten free")
    image_url: Optional[str] = Field(None, description="Image URL")


class MenuResponse(BaseModel):
    items: List[MenuItemResponse] = Field(..., description="Available items")


class OrderItemRequest(BaseModel):
    """One requested line of a food order."""

    menu_item_id: int = Field(..., description="Menu item to order")
    quantity: int = Field(1, description="Number of portions")
    special_instructions: Optional[str] = Field(None, max_length=500, description="Per-item instructions")


class CreateOrderRequest(BaseModel):
    """
    Request schema for placing a food order.

    Prices are taken from the menu; client-sent prices are ignored.
    """

    items: List[OrderItemRequest] = Field(default_factory=list, description="Ordered items")
    delivery_type: DeliveryType = Field(DeliveryType.ROOM_SERVICE, description="Delivery type")
    room_number: Optional[str] = Field(None, max_length=20, description="Room for room service")
    special_instructions: Optional[str] = Field(None, max_length=1000, description="Order instructions")


class OrderCreated(BaseModel):
    """Response schema for a newly created food order."""

    order_id: int = Field(..., description="Order ID")
    total_amount: Money = Field(..., description="Order total")
    status: OrderStatus = Field(..., description="Order status")
    estimated_minutes: int = Field(..., ge=1, description="Estimated preparation time in minutes")


class FoodOrderItemResponse(BaseModel):
    menu_item_id: int = Field(..., description="Menu item ID")
    name: Optional[str] = Field(None, description="Menu item name")
    quantity: int = Field(..., ge=1, description="Number of portions")
    unit_price: Money = Field(..., description="Unit price at order time")
    subtotal: Money = Field(..., description="Line subtotal")
    special_instructions: Optional[str] = Field(None, description="Per-item instructions")


class FoodOrderResponse(BaseModel):
    """Food order response schema."""

    id: int = Field(..., description="Order ID")
    user_id: str = Field(..., description="Ordering user")
    room_number: Optional[str] = Field(None, description="Delivery room")
    delivery_type: DeliveryType = Field(..., description="Delivery type")
    special_instructions: Optional[str] = Field(None, description="Order instructions")
    total_amount: Money = Field(..., description="Order total")
    status: OrderStatus = Field(..., description="Order status")
    created_at: datetime = Field(..., description="Creation time (ISO 8601)")
    items: List[FoodOrderItemResponse] = Field(default_factory=list, description="Line items")


class FoodOrderListResponse(BaseModel):
    orders: List[FoodOrderResponse] = Field(..., description="Orders, newest first")


class UpdateOrderStatusRequest(BaseModel):
    """Request schema for an admin order status update."""

    order_id: int = Field(..., description="Order to update")
    status: OrderStatus = Field(..., description="New status")
