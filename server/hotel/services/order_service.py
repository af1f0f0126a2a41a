"""Restaurant service for the menu and food orders."""

import asyncio
import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.config import settings
from ..core.exceptions import (
    AuthorizationError,
    AuthRequiredError,
    ConflictError,
    NotFoundError,
    ProblemDetailsException,
    StoreError,
    ValidationError,
)
from ..core.observability import metrics_collector
from ..core.security import ADMIN_ROLE, Caller
from ..models.restaurant import (
    DeliveryType,
    FoodOrder,
    FoodOrderItem,
    MenuCategory,
    MenuItem,
    OrderStatus,
)

logger = logging.getLogger(__name__)

DIETARY_FILTERS = {
    "vegetarian": MenuItem.is_vegetarian,
    "vegan": MenuItem.is_vegan,
    "gluten_free": MenuItem.is_gluten_free,
}


class MenuItemUnavailableError(ConflictError):
    """Exception when an ordered menu item does not exist or cannot be ordered."""

    def __init__(self, menu_item_id: int):
        super().__init__(
            detail=f"Menu item {menu_item_id} is not available",
            conflicting_resource={"menu_item_id": menu_item_id},
            code="ITEM_UNAVAILABLE",
            title="Menu Item Unavailable",
        )


@dataclass
class OrderLine:
    """One requested line of a food order."""

    menu_item_id: int
    quantity: int
    special_instructions: str | None = None


class OrderService:
    """Service for menu reads and food orders."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_categories(self) -> list[MenuCategory]:
        stmt = (
            select(MenuCategory)
            .where(MenuCategory.is_active.is_(True))
            .order_by(MenuCategory.display_order, MenuCategory.id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars())

    async def get_menu(self, category_id: int | None = None, dietary: str | None = None) -> list[MenuItem]:
        """
        Available items in active categories.

        Args:
            category_id: Restrict to one category
            dietary: One of 'vegetarian', 'vegan', 'gluten_free'

        Raises:
            ValidationError: If the dietary filter is unknown
        """
        stmt = (
            select(MenuItem)
            .join(MenuItem.category)
            .where(MenuItem.is_available.is_(True), MenuCategory.is_active.is_(True))
        )
        if category_id is not None:
            stmt = stmt.where(MenuItem.category_id == category_id)
        if dietary:
            column = DIETARY_FILTERS.get(dietary)
            if column is None:
                raise ValidationError(
                    detail=f"Unknown dietary filter '{dietary}'",
                    errors={"dietary": f"must be one of {sorted(DIETARY_FILTERS)}"},
                )
            stmt = stmt.where(column.is_(True))

        stmt = stmt.order_by(MenuCategory.display_order, MenuItem.name, MenuItem.id)
        result = await self.db.execute(stmt)
        return list(result.scalars())

    async def create_category(
        self, name: str, description: str | None = None, display_order: int = 0
    ) -> MenuCategory:
        category = MenuCategory(name=name, description=description, display_order=display_order)
        self.db.add(category)
        await self.db.commit()
        return category

    async def create_menu_item(
        self,
        category_id: int,
        name: str,
        price_amount: int,
        description: str | None = None,
        is_available: bool = True,
        is_vegetarian: bool = False,
        is_vegan: bool = False,
        is_gluten_free: bool = False,
    ) -> MenuItem:
        item = MenuItem(
            category_id=category_id,
            name=name,
            description=description,
            price_amount=price_amount,
            is_available=is_available,
            is_vegetarian=is_vegetarian,
            is_vegan=is_vegan,
            is_gluten_free=is_gluten_free,
        )
        self.db.add(item)
        await self.db.commit()
        return item

    async def create_order(
        self,
        caller: Caller | None,
        items: list[OrderLine],
        room_number: str | None = None,
        delivery_type: DeliveryType = DeliveryType.ROOM_SERVICE,
        special_instructions: str | None = None,
    ) -> FoodOrder:
        """
        Place a food order priced from the current menu.

        The header and every line item are written in one transaction.

        Raises:
            AuthRequiredError: If no caller is given
            ValidationError: If there are no items, a quantity is below 1, or
                room service has no room number
            MenuItemUnavailableError: If an item is missing or unavailable
            StoreError: On store failure; nothing is written
        """
        if caller is None:
            raise AuthRequiredError()
        if not items:
            raise ValidationError(detail="An order needs at least one item", errors={"items": "must not be empty"})
        for index, line in enumerate(items):
            if line.quantity is None or line.quantity < 1:
                raise ValidationError(
                    detail="Each item quantity must be at least 1",
                    errors={f"items.{index}.quantity": "must be at least 1"},
                )
        delivery_type = DeliveryType(delivery_type)
        if delivery_type == DeliveryType.ROOM_SERVICE and not (room_number or "").strip():
            raise ValidationError(
                detail="Room number is required for room service",
                errors={"room_number": "required for room_service"},
            )

        try:
            item_ids = {line.menu_item_id for line in items}
            result = await self.db.execute(select(MenuItem).where(MenuItem.id.in_(item_ids)))
            menu = {item.id: item for item in result.scalars()}

            order_items = []
            total = 0
            for line in items:
                menu_item = menu.get(line.menu_item_id)
                if menu_item is None or not menu_item.is_available:
                    raise MenuItemUnavailableError(line.menu_item_id)
                subtotal = menu_item.price_amount * line.quantity
                total += subtotal
                order_items.append(
                    FoodOrderItem(
                        menu_item_id=menu_item.id,
                        quantity=line.quantity,
                        unit_price_amount=menu_item.price_amount,
                        subtotal_amount=subtotal,
                        special_instructions=line.special_instructions,
                    )
                )

            order = FoodOrder(
                user_id=caller.user_id,
                room_number=room_number,
                delivery_type=delivery_type,
                special_instructions=special_instructions,
                total_amount=total,
                status=OrderStatus.PENDING,
                items=order_items,
            )
            self.db.add(order)
            await self.db.commit()

        except ProblemDetailsException:
            await self.db.rollback()
            raise
        except asyncio.CancelledError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            store_error = StoreError()
            logger.error(
                "Food order store failure",
                exc_info=e,
                extra={"user_id": caller.user_id, "error_id": store_error.error_id}
            )
            raise store_error from e

        metrics_collector.record_food_order_created(delivery_type.value)
        logger.info(
            "Food order created successfully",
            extra={
                "order_id": order.id,
                "user_id": caller.user_id,
                "item_count": len(order_items),
                "total_amount": total,
                "delivery_type": delivery_type.value,
            }
        )
        return order

    @staticmethod
    def estimated_minutes() -> int:
        return settings.order_estimated_minutes

    async def _get_order_with_items(self, order_id: int) -> FoodOrder | None:
        stmt = (
            select(FoodOrder)
            .options(selectinload(FoodOrder.items).selectinload(FoodOrderItem.menu_item))
            .where(FoodOrder.id == order_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_order(self, caller: Caller | None, order_id: int) -> FoodOrder:
        """
        Get an order with its line items; guests only see their own orders.

        Raises:
            AuthRequiredError: If no caller is given
            NotFoundError: If not found or not visible
        """
        if caller is None:
            raise AuthRequiredError()
        order = await self._get_order_with_items(order_id)
        if order is None or (order.user_id != caller.user_id and not caller.is_admin):
            raise NotFoundError(resource_type="food order", resource_id=order_id)
        return order

    async def list_orders_for_user(self, caller: Caller | None, limit: int = 20) -> list[FoodOrder]:
        if caller is None:
            raise AuthRequiredError()
        stmt = (
            select(FoodOrder)
            .options(selectinload(FoodOrder.items).selectinload(FoodOrderItem.menu_item))
            .where(FoodOrder.user_id == caller.user_id)
            .order_by(FoodOrder.created_at.desc(), FoodOrder.id.desc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars())

    async def update_order_status(self, caller: Caller | None, order_id: int, status: OrderStatus) -> FoodOrder:
        """
        Set a food order's status (admin only).

        Raises:
            AuthRequiredError / AuthorizationError: If the caller is not an admin
            NotFoundError: If the order does not exist
        """
        if caller is None:
            raise AuthRequiredError()
        if not caller.is_admin:
            raise AuthorizationError(detail="Administrator access required", required_roles=[ADMIN_ROLE])

        order = await self._get_order_with_items(order_id)
        if order is None:
            raise NotFoundError(resource_type="food order", resource_id=order_id)

        previous = order.status
        order.status = OrderStatus(status)
        await self.db.commit()

        logger.info(
            "Food order status updated",
            extra={"order_id": order_id, "from_status": previous.value, "to_status": order.status.value}
        )
        return order
