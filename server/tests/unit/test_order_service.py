"""Unit tests for the restaurant service."""

import pytest
from sqlalchemy import func, select

from hotel.core.exceptions import AuthorizationError, AuthRequiredError, NotFoundError, ValidationError
from hotel.models.restaurant import DeliveryType, FoodOrder, FoodOrderItem, OrderStatus
from hotel.services.order_service import MenuItemUnavailableError, OrderLine, OrderService


async def _row_counts(session) -> tuple[int, int]:
    orders = await session.scalar(select(func.count()).select_from(FoodOrder))
    items = await session.scalar(select(func.count()).select_from(FoodOrderItem))
    return orders, items


@pytest.mark.asyncio
async def test_menu_lists_available_items_in_active_categories(test_session, sample_menu):
    service = OrderService(test_session)

    items = await service.get_menu()

    # Ordered by category display order, then name
    assert [item.name for item in items] == ["Chickpea Curry", "Grilled Salmon"]


@pytest.mark.asyncio
async def test_menu_dietary_filters(test_session, sample_menu):
    service = OrderService(test_session)

    vegan = await service.get_menu(dietary="vegan")
    gluten_free = await service.get_menu(dietary="gluten_free")

    assert [item.id for item in vegan] == [sample_menu["curry_id"]]
    assert [item.id for item in gluten_free] == [sample_menu["salmon_id"]]

    with pytest.raises(ValidationError):
        await service.get_menu(dietary="carnivore")


@pytest.mark.asyncio
async def test_list_categories_skips_inactive(test_session, sample_menu):
    service = OrderService(test_session)

    categories = await service.list_categories()

    assert [category.name for category in categories] == ["Mains"]


@pytest.mark.asyncio
async def test_create_order_prices_from_menu(test_session, sample_menu, guest):
    service = OrderService(test_session)

    order = await service.create_order(
        guest,
        items=[
            OrderLine(menu_item_id=sample_menu["salmon_id"], quantity=2),
            OrderLine(menu_item_id=sample_menu["curry_id"], quantity=1, special_instructions="extra spicy"),
        ],
        room_number="101",
    )

    assert order.status == OrderStatus.PENDING
    assert order.delivery_type == DeliveryType.ROOM_SERVICE
    assert order.total_amount == 2 * 3200 + 2100
    assert [(item.unit_price_amount, item.subtotal_amount) for item in order.items] == [
        (3200, 6400),
        (2100, 2100),
    ]
    assert await _row_counts(test_session) == (1, 2)


@pytest.mark.asyncio
async def test_unavailable_item_rolls_back_whole_order(test_session, sample_menu, guest):
    service = OrderService(test_session)

    with pytest.raises(MenuItemUnavailableError) as exc_info:
        await service.create_order(
            guest,
            items=[
                OrderLine(menu_item_id=sample_menu["salmon_id"], quantity=1),
                OrderLine(menu_item_id=sample_menu["soup_id"], quantity=1),
            ],
            delivery_type=DeliveryType.PICKUP,
        )

    assert exc_info.value.code == "ITEM_UNAVAILABLE"
    assert await _row_counts(test_session) == (0, 0)


@pytest.mark.asyncio
async def test_unknown_item_rejected(test_session, sample_menu, guest):
    service = OrderService(test_session)

    with pytest.raises(MenuItemUnavailableError):
        await service.create_order(
            guest, items=[OrderLine(menu_item_id=9999, quantity=1)], delivery_type=DeliveryType.DINE_IN
        )


@pytest.mark.asyncio
async def test_order_validation(test_session, sample_menu, guest):
    service = OrderService(test_session)

    with pytest.raises(AuthRequiredError):
        await service.create_order(None, items=[OrderLine(sample_menu["salmon_id"], 1)], room_number="101")
    with pytest.raises(ValidationError):
        await service.create_order(guest, items=[], room_number="101")
    with pytest.raises(ValidationError):
        await service.create_order(guest, items=[OrderLine(sample_menu["salmon_id"], 0)], room_number="101")
    with pytest.raises(ValidationError):
        await service.create_order(guest, items=[OrderLine(sample_menu["salmon_id"], 1)])

    assert await _row_counts(test_session) == (0, 0)


@pytest.mark.asyncio
async def test_order_visibility(test_session, sample_menu, guest, other_guest, admin):
    service = OrderService(test_session)
    order = await service.create_order(
        guest, items=[OrderLine(sample_menu["curry_id"], 1)], delivery_type=DeliveryType.PICKUP
    )
    order_id = order.id

    mine = await service.get_order(guest, order_id)
    assert mine.items[0].menu_item.name == "Chickpea Curry"
    assert (await service.get_order(admin, order_id)).id == order_id
    with pytest.raises(NotFoundError):
        await service.get_order(other_guest, order_id)

    assert [o.id for o in await service.list_orders_for_user(guest)] == [order_id]
    assert await service.list_orders_for_user(other_guest) == []


@pytest.mark.asyncio
async def test_update_order_status(test_session, sample_menu, guest, admin):
    service = OrderService(test_session)
    order = await service.create_order(
        guest, items=[OrderLine(sample_menu["curry_id"], 1)], delivery_type=DeliveryType.PICKUP
    )
    order_id = order.id

    updated = await service.update_order_status(admin, order_id, OrderStatus.PREPARING)
    assert updated.status == OrderStatus.PREPARING

    with pytest.raises(AuthorizationError):
        await service.update_order_status(guest, order_id, OrderStatus.READY)
    with pytest.raises(NotFoundError):
        await service.update_order_status(admin, 9999, OrderStatus.READY)


def test_estimated_minutes_from_settings():
    from hotel.core.config import settings

    assert OrderService.estimated_minutes() == settings.order_estimated_minutes
