"""Restaurant router for the menu and food orders."""

import logging
from typing import Optional

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import AdminAuth, DatabaseSession, RequiredAuth
from ..core.exceptions import ProblemDetailsException
from ..core.security import Caller
from ..models.restaurant import FoodOrder
from ..schemas.common import Money
from ..schemas.restaurant import (
    CreateOrderRequest,
    FoodOrderItemResponse,
    FoodOrderListResponse,
    FoodOrderResponse,
    MenuCategoryListResponse,
    MenuCategoryResponse,
    MenuItemResponse,
    MenuResponse,
    OrderCreated,
    UpdateOrderStatusRequest,
)
from ..services.order_service import OrderLine, OrderService
from .common import IDEMPOTENCY_KEY_HEADER, run_idempotent, unexpected_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/restaurant", tags=["restaurant"])


def _convert_order_to_schema(order: FoodOrder) -> FoodOrderResponse:
    """Convert a food order with loaded line items to schema."""
    return FoodOrderResponse(
        id=order.id,
        user_id=order.user_id,
        room_number=order.room_number,
        delivery_type=order.delivery_type,
        special_instructions=order.special_instructions,
        total_amount=Money.of(order.total_amount),
        status=order.status,
        created_at=order.created_at,
        items=[
            FoodOrderItemResponse(
                menu_item_id=item.menu_item_id,
                name=item.menu_item.name if item.menu_item else None,
                quantity=item.quantity,
                unit_price=Money.of(item.unit_price_amount),
                subtotal=Money.of(item.subtotal_amount),
                special_instructions=item.special_instructions,
            )
            for item in order.items
        ],
    )


@router.get("/menu", response_model=MenuResponse)
async def get_menu(
    category_id: Optional[int] = Query(None, description="Restrict to one category"),
    dietary: Optional[str] = Query(None, description="vegetarian, vegan or gluten_free"),
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """List available menu items in active categories."""
    order_service = OrderService(db)
    items = await order_service.get_menu(category_id=category_id, dietary=dietary)

    response_data = MenuResponse(
        items=[
            MenuItemResponse(
                id=item.id,
                category_id=item.category_id,
                name=item.name,
                description=item.description,
                price=Money.of(item.price_amount),
                is_vegetarian=item.is_vegetarian,
                is_vegan=item.is_vegan,
                is_gluten_free=item.is_gluten_free,
                image_url=item.image_url,
            )
            for item in items
        ]
    )
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.get("/categories", response_model=MenuCategoryListResponse)
async def list_categories(db: AsyncSession = DatabaseSession) -> JSONResponse:
    """List active menu categories in display order."""
    order_service = OrderService(db)
    categories = await order_service.list_categories()

    response_data = MenuCategoryListResponse(
        categories=[
            MenuCategoryResponse(
                id=category.id,
                name=category.name,
                description=category.description,
                display_order=category.display_order,
            )
            for category in categories
        ]
    )
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.post("/order", response_model=OrderCreated, status_code=201)
async def create_order(
    request: CreateOrderRequest,
    caller: Caller = RequiredAuth,
    db: AsyncSession = DatabaseSession,
    idempotency_key: Optional[str] = IDEMPOTENCY_KEY_HEADER,
) -> JSONResponse:
    """
    Place a food order.

    Prices come from the menu. Repeating the request with the same
    Idempotency-Key returns the original outcome.
    """
    order_service = OrderService(db)

    async def operation():
        order = await order_service.create_order(
            caller,
            items=[
                OrderLine(
                    menu_item_id=line.menu_item_id,
                    quantity=line.quantity,
                    special_instructions=line.special_instructions,
                )
                for line in request.items
            ],
            room_number=request.room_number,
            delivery_type=request.delivery_type,
            special_instructions=request.special_instructions,
        )
        response_data = OrderCreated(
            order_id=order.id,
            total_amount=Money.of(order.total_amount),
            status=order.status,
            estimated_minutes=order_service.estimated_minutes(),
        )
        return response_data.model_dump(mode="json")

    try:
        return await run_idempotent(
            operation_name="restaurant.order",
            caller=caller,
            idempotency_key=idempotency_key,
            request_body=request.model_dump(mode="json"),
            operation=operation,
            db=db,
            status_code=201,
        )
    except ProblemDetailsException:
        raise
    except Exception as e:
        raise unexpected_error("food order creation", e, user_id=caller.user_id)


@router.get("/orders", response_model=FoodOrderListResponse)
async def list_my_orders(
    limit: int = Query(20, ge=1, le=100),
    caller: Caller = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """List the caller's food orders, newest first."""
    order_service = OrderService(db)
    orders = await order_service.list_orders_for_user(caller, limit=limit)

    response_data = FoodOrderListResponse(orders=[_convert_order_to_schema(o) for o in orders])
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.get("/orders/{order_id}", response_model=FoodOrderResponse)
async def get_order(
    order_id: int,
    caller: Caller = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """Get one of the caller's food orders (any order for admins)."""
    order_service = OrderService(db)
    order = await order_service.get_order(caller, order_id)

    response_data = _convert_order_to_schema(order)
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.post("/order/status", response_model=FoodOrderResponse)
async def update_order_status(
    request: UpdateOrderStatusRequest,
    caller: Caller = AdminAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """Set a food order's status (admin only)."""
    order_service = OrderService(db)

    try:
        order = await order_service.update_order_status(caller, request.order_id, request.status)
    except ProblemDetailsException:
        raise
    except Exception as e:
        raise unexpected_error("food order status update", e, order_id=request.order_id)

    response_data = _convert_order_to_schema(order)
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))
