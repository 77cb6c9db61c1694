import asyncio
import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from pizzacraft.core.exceptions import (
    InsufficientStockError,
    InvalidStatusTransitionError,
    NotFoundError,
    ValidationError,
)
from pizzacraft.models.catalog import CatalogItem
from pizzacraft.models.order import Order, OrderStatus, PaymentMethod, PaymentStatus
from pizzacraft.schemas.order import CustomerInfoInput
from pizzacraft.services import order_service

NOON = datetime(2024, 12, 1, 12, 0, tzinfo=timezone.utc)


async def stock_of(item):
    return (await CatalogItem.get(id=item.id)).stock


async def place(customer, checkout, selections, now=NOON, **kwargs):
    return await order_service.create_order(customer, selections, checkout, now=now, **kwargs)


class TestCreateOrder:
    @pytest.mark.asyncio
    async def test_prices_from_catalog_and_reserves_stock(self, customer, catalog, checkout, make_pizza):
        order = await place(customer, checkout, [make_pizza()])

        assert order.order_number == "PZ-20241201-001"
        assert order.status == OrderStatus.PENDING
        assert order.payment_status == PaymentStatus.PENDING
        assert order.subtotal == Decimal("899.00")
        assert order.tax == Decimal("71.92")
        assert order.delivery_fee == Decimal("199.00")
        assert order.total == Decimal("1169.92")
        assert order.estimated_delivery_time == NOON + timedelta(minutes=30)
        assert await stock_of(catalog["base"]) == 49
        assert await stock_of(catalog["cheese"]) == 199

    @pytest.mark.asyncio
    async def test_customer_info_falls_back_to_profile(self, customer, catalog, checkout, make_pizza):
        order = await place(customer, checkout, [make_pizza()])

        assert order.customer_info["name"] == "Asha Rao"
        assert order.customer_info["email"] == "asha@example.com"
        assert order.customer_phone == "9876543210"

    @pytest.mark.asyncio
    async def test_address_is_required(self, customer, catalog, make_pizza):
        with pytest.raises(ValidationError):
            await place(customer, CustomerInfoInput(name="Asha"), [make_pizza()])

    @pytest.mark.asyncio
    async def test_empty_cart_rejected(self, customer, catalog, checkout):
        with pytest.raises(ValidationError):
            await place(customer, checkout, [])

    @pytest.mark.asyncio
    async def test_order_numbers_increase_within_a_day(self, customer, catalog, checkout, make_pizza):
        first = await place(customer, checkout, [make_pizza()])
        second = await place(customer, checkout, [make_pizza()], now=NOON + timedelta(hours=3))

        assert first.order_number == "PZ-20241201-001"
        assert second.order_number == "PZ-20241201-002"

    @pytest.mark.asyncio
    async def test_order_numbers_reset_on_new_day(self, customer, catalog, checkout, make_pizza):
        await place(customer, checkout, [make_pizza()])
        await place(customer, checkout, [make_pizza()])
        next_day = await place(customer, checkout, [make_pizza()], now=NOON + timedelta(days=1))

        assert next_day.order_number == "PZ-20241202-001"

    @pytest.mark.asyncio
    async def test_items_snapshot_survives_catalog_changes(self, customer, catalog, checkout, make_pizza):
        order = await place(customer, checkout, [make_pizza(size="large", toppings=["pepperoni"])])

        pepperoni = catalog["pepperoni"]
        pepperoni.price = Decimal("999")
        pepperoni.name = "Spicy Pepperoni"
        await pepperoni.save()

        stored = await order_service.get_order(order.id)
        item = stored.items[0]
        assert item.unit_price == Decimal("1363.7")
        assert item.size_multiplier == Decimal("1.3")
        names = [ingredient["name"] for ingredient in item.ingredients]
        assert "Pepperoni" in names
        assert stored.total == order.total

    @pytest.mark.asyncio
    async def test_topping_cannot_fill_base_slot(self, customer, catalog, checkout, make_pizza):
        with pytest.raises(ValidationError):
            await place(customer, checkout, [make_pizza(base="mushroom")])

    @pytest.mark.asyncio
    async def test_inactive_ingredient_rejected(self, customer, catalog, checkout, make_pizza):
        mushroom = catalog["mushroom"]
        mushroom.is_active = False
        await mushroom.save()

        with pytest.raises(ValidationError):
            await place(customer, checkout, [make_pizza(toppings=["mushroom"])])

    @pytest.mark.asyncio
    async def test_unknown_ingredient_rejected(self, customer, catalog, checkout, make_pizza):
        selection = make_pizza()
        selection.topping_ids = [uuid4()]

        with pytest.raises(ValidationError):
            await place(customer, checkout, [selection])

    @pytest.mark.asyncio
    async def test_shortfall_changes_nothing(self, customer, catalog, checkout, make_pizza):
        await CatalogItem.filter(id=catalog["pepperoni"].id).update(stock=1)

        with pytest.raises(InsufficientStockError) as exc:
            await place(customer, checkout, [make_pizza(), make_pizza(quantity=2, toppings=["pepperoni"])])

        assert exc.value.available == 1
        assert exc.value.required == 2
        assert await stock_of(catalog["base"]) == 50
        assert await stock_of(catalog["sauce"]) == 100
        assert await stock_of(catalog["pepperoni"]) == 1
        assert await Order.all().count() == 0

        # The failed attempt does not consume a number
        order = await place(customer, checkout, [make_pizza()])
        assert order.order_number == "PZ-20241201-001"

    @pytest.mark.asyncio
    async def test_concurrent_orders_never_oversell(self, customer, catalog, checkout, make_pizza):
        await CatalogItem.filter(id=catalog["base"].id).update(stock=2)

        results = await asyncio.gather(
            place(customer, checkout, [make_pizza(quantity=2)]),
            place(customer, checkout, [make_pizza(quantity=2)]),
            return_exceptions=True,
        )

        placed = [r for r in results if isinstance(r, Order)]
        failed = [r for r in results if isinstance(r, InsufficientStockError)]
        assert len(placed) == 1
        assert len(failed) == 1
        assert await stock_of(catalog["base"]) == 0


class TestCancelOrder:
    @pytest.mark.asyncio
    async def test_cancel_pending_restores_stock(self, customer, catalog, checkout, make_pizza):
        order = await place(customer, checkout, [make_pizza(quantity=2)])
        assert await stock_of(catalog["base"]) == 48

        cancelled = await order_service.cancel_order(customer, order.id, "Changed my mind")

        assert cancelled.status == OrderStatus.CANCELLED
        assert "Changed my mind" in cancelled.admin_notes
        assert await stock_of(catalog["base"]) == 50

    @pytest.mark.asyncio
    async def test_cancel_confirmed_allowed(self, customer, catalog, checkout, make_pizza):
        order = await place(customer, checkout, [make_pizza()], status=OrderStatus.CONFIRMED)

        cancelled = await order_service.cancel_order(customer, order.id)
        assert cancelled.status == OrderStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_cancel_delivered_conflicts(self, customer, catalog, checkout, make_pizza):
        order = await place(customer, checkout, [make_pizza()])
        await Order.filter(id=order.id).update(status=OrderStatus.DELIVERED)

        with pytest.raises(InvalidStatusTransitionError):
            await order_service.cancel_order(customer, order.id)

        stored = await Order.get(id=order.id)
        assert stored.status == OrderStatus.DELIVERED
        assert await stock_of(catalog["base"]) == 49

    @pytest.mark.asyncio
    async def test_cannot_cancel_someone_elses_order(self, customer, admin, catalog, checkout, make_pizza):
        order = await place(customer, checkout, [make_pizza()])

        with pytest.raises(NotFoundError):
            await order_service.cancel_order(admin, order.id)


class TestUpdateStatus:
    @pytest.mark.asyncio
    async def test_forward_transition_returns_previous_status(self, customer, catalog, checkout, make_pizza):
        order = await place(customer, checkout, [make_pizza()])

        updated, previous = await order_service.update_order_status(order.id, OrderStatus.CONFIRMED, "Called customer")

        assert previous == OrderStatus.PENDING
        assert updated.status == OrderStatus.CONFIRMED
        assert updated.admin_notes == "Called customer"

    @pytest.mark.asyncio
    async def test_skipping_stages_rejected(self, customer, catalog, checkout, make_pizza):
        order = await place(customer, checkout, [make_pizza()])

        with pytest.raises(InvalidStatusTransitionError):
            await order_service.update_order_status(order.id, OrderStatus.DELIVERED)

    @pytest.mark.asyncio
    async def test_backwards_transition_rejected(self, customer, catalog, checkout, make_pizza):
        order = await place(customer, checkout, [make_pizza()], status=OrderStatus.CONFIRMED)
        await order_service.update_order_status(order.id, OrderStatus.PREPARING)

        with pytest.raises(InvalidStatusTransitionError):
            await order_service.update_order_status(order.id, OrderStatus.CONFIRMED)

    @pytest.mark.asyncio
    async def test_delivery_records_actual_time(self, customer, catalog, checkout, make_pizza):
        order = await place(customer, checkout, [make_pizza()], status=OrderStatus.CONFIRMED)
        for status in (OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.OUT_FOR_DELIVERY):
            await order_service.update_order_status(order.id, status)

        delivered_at = NOON + timedelta(minutes=25)
        updated, _ = await order_service.update_order_status(order.id, OrderStatus.DELIVERED, now=delivered_at)

        assert updated.status == OrderStatus.DELIVERED
        assert updated.actual_delivery_time == delivered_at

    @pytest.mark.asyncio
    async def test_admin_cancellation_restores_stock(self, customer, catalog, checkout, make_pizza):
        order = await place(customer, checkout, [make_pizza(toppings=["mushroom"])])

        await order_service.update_order_status(order.id, OrderStatus.CANCELLED)

        assert await stock_of(catalog["mushroom"]) == 120

    @pytest.mark.asyncio
    async def test_unknown_order(self, db):
        with pytest.raises(NotFoundError):
            await order_service.update_order_status(uuid4(), OrderStatus.CONFIRMED)


class TestTracking:
    @pytest.mark.asyncio
    async def test_unknown_order_number(self, db):
        with pytest.raises(NotFoundError):
            await order_service.track_order("PZ-20241201-999")

    @pytest.mark.asyncio
    async def test_progress_follows_status(self, customer, catalog, checkout, make_pizza):
        order = await place(customer, checkout, [make_pizza(quantity=2)], status=OrderStatus.CONFIRMED)
        await order_service.update_order_status(order.id, OrderStatus.PREPARING)

        tracking = await order_service.track_order(order.order_number)

        assert tracking["status"] == OrderStatus.PREPARING
        assert tracking["progress"] == 50
        assert tracking["customer_name"] == "Asha Rao"
        assert tracking["items"] == [{"name": "Custom Pizza", "quantity": 2, "size": "medium"}]

    def test_progress_map(self):
        assert order_service.STATUS_PROGRESS[OrderStatus.PENDING] == 10
        assert order_service.STATUS_PROGRESS[OrderStatus.DELIVERED] == 100
        assert order_service.STATUS_PROGRESS[OrderStatus.CANCELLED] == 0


class TestListingAndStats:
    @pytest.mark.asyncio
    async def test_user_orders_are_paginated_newest_first(self, customer, catalog, checkout, make_pizza):
        for hour in range(3):
            await place(customer, checkout, [make_pizza()], now=NOON + timedelta(hours=hour))

        orders, pagination = await order_service.list_user_orders(customer, page=1, limit=2)

        assert [o.order_number for o in orders] == ["PZ-20241201-003", "PZ-20241201-002"]
        assert pagination == {"current_page": 1, "total_pages": 2, "total_items": 3, "items_per_page": 2}

    @pytest.mark.asyncio
    async def test_admin_search_by_phone_and_number(self, customer, catalog, checkout, make_pizza):
        first = await place(customer, checkout, [make_pizza()])
        await place(customer, CustomerInfoInput(phone="5550001111", address=checkout.address), [make_pizza()])

        by_phone, _ = await order_service.list_orders(search="555000")
        by_number, _ = await order_service.list_orders(search=first.order_number)

        assert [o.customer_phone for o in by_phone] == ["5550001111"]
        assert [o.id for o in by_number] == [first.id]

    @pytest.mark.asyncio
    async def test_admin_filter_by_day(self, customer, catalog, checkout, make_pizza):
        await place(customer, checkout, [make_pizza()])
        await place(customer, checkout, [make_pizza()], now=NOON + timedelta(days=1))

        orders, pagination = await order_service.list_orders(day=NOON.date())

        assert pagination["total_items"] == 1
        assert orders[0].order_number == "PZ-20241201-001"

    @pytest.mark.asyncio
    async def test_stats_count_only_paid_revenue(self, customer, catalog, checkout, make_pizza):
        paid = await place(customer, checkout, [make_pizza()], status=OrderStatus.CONFIRMED,
                           payment_method=PaymentMethod.RAZORPAY, payment_status=PaymentStatus.PAID)
        await place(customer, checkout, [make_pizza()])
        await place(customer, checkout, [make_pizza()], now=NOON - timedelta(days=31),
                    payment_status=PaymentStatus.PAID)

        stats = await order_service.get_order_stats(now=NOON)

        assert stats["today_orders"] == 2
        assert stats["today_revenue"] == paid.total
        assert stats["monthly_revenue"] == paid.total
        assert stats["status_breakdown"]["pending"] == 2
        assert stats["status_breakdown"]["confirmed"] == 1
        assert stats["status_breakdown"]["delivered"] == 0
