import logging
import math
from collections import defaultdict
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from tortoise.expressions import F, Q
from tortoise.functions import Count
from tortoise.transactions import in_transaction

from pizzacraft.core import clock
from pizzacraft.core.config import ESTIMATED_DELIVERY_MINUTES, RESTOCK_ON_CANCEL
from pizzacraft.core.exceptions import (
    InvalidStatusTransitionError,
    NotFoundError,
    PaymentVerificationError,
    ValidationError,
)
from pizzacraft.models.catalog import CatalogItem, IngredientCategory, TOPPING_CATEGORIES
from pizzacraft.models.order import (
    Order,
    OrderItem,
    OrderSequence,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from pizzacraft.models.user import User
from pizzacraft.schemas.order import CustomerInfo, CustomerInfoInput, PizzaSelection
from pizzacraft.services import inventory_service, pricing

log = logging.getLogger(__name__)

# Forward-only pipeline; cancellation only before preparation starts
ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PREPARING, OrderStatus.CANCELLED},
    OrderStatus.PREPARING: {OrderStatus.READY},
    OrderStatus.READY: {OrderStatus.OUT_FOR_DELIVERY},
    OrderStatus.OUT_FOR_DELIVERY: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}

CANCELLABLE_STATUSES = {OrderStatus.PENDING, OrderStatus.CONFIRMED}

STATUS_PROGRESS = {
    OrderStatus.PENDING: 10,
    OrderStatus.CONFIRMED: 25,
    OrderStatus.PREPARING: 50,
    OrderStatus.READY: 75,
    OrderStatus.OUT_FOR_DELIVERY: 90,
    OrderStatus.DELIVERED: 100,
    OrderStatus.CANCELLED: 0,
}


def format_order_number(day: date, sequence: int) -> str:
    return f"PZ-{day:%Y%m%d}-{sequence:03d}"


def can_transition(current: OrderStatus, new: OrderStatus) -> bool:
    return new in ALLOWED_TRANSITIONS[OrderStatus(current)]


def build_customer_info(user: User, info: Optional[CustomerInfoInput]) -> CustomerInfo:
    """Checkout contact details, falling back to the profile. The address is always required."""
    info = info or CustomerInfoInput()
    if info.address is None:
        raise ValidationError("A complete delivery address is required")
    return CustomerInfo(
        name=info.name or user.full_name,
        email=info.email or user.email,
        phone=info.phone or user.phone,
        address=info.address,
    )


async def _next_order_number(day: date, conn) -> str:
    """
    Allocates the next per-day sequence inside the caller's transaction. The
    row lock taken by the increment serialises concurrent orders for the day.
    """
    await OrderSequence.filter(day=day).using_db(conn).update(last_value=F("last_value") + 1)
    sequence = await OrderSequence.get(day=day).using_db(conn)
    return format_order_number(day, sequence.last_value)


def _selected_ids(selection: PizzaSelection) -> List[UUID]:
    return [selection.base_id, selection.sauce_id, selection.cheese_id, *selection.topping_ids]


def _check_ingredient(catalog: Dict[UUID, CatalogItem], item_id: UUID, allowed) -> CatalogItem:
    item = catalog.get(item_id)
    if item is None:
        raise ValidationError(f"Ingredient {item_id} not found")
    if not item.is_active:
        raise ValidationError(f"{item.name} is currently unavailable")
    if item.category not in allowed:
        raise ValidationError(f"{item.name} cannot be used as {' or '.join(c.value for c in allowed)}")
    return item


def _price_line(selection: PizzaSelection, catalog: Dict[UUID, CatalogItem]) -> dict:
    """Validates one pizza against the catalog and freezes its ingredients and prices."""
    chosen = [
        _check_ingredient(catalog, selection.base_id, (IngredientCategory.BASE,)),
        _check_ingredient(catalog, selection.sauce_id, (IngredientCategory.SAUCE,)),
        _check_ingredient(catalog, selection.cheese_id, (IngredientCategory.CHEESE,)),
    ]
    chosen += [_check_ingredient(catalog, tid, TOPPING_CATEGORIES) for tid in selection.topping_ids]

    unit_price = pricing.unit_price([item.price for item in chosen], selection.size)
    return {
        "name": selection.name,
        "size": selection.size,
        "size_multiplier": pricing.SIZE_MULTIPLIERS[selection.size],
        "quantity": selection.quantity,
        "unit_price": unit_price,
        "line_total": pricing.line_total(unit_price, selection.quantity),
        "ingredients": [
            {"id": str(item.id), "name": item.name, "category": item.category.value, "price": str(item.price)}
            for item in chosen
        ],
    }


def stock_requirements(selections: List[PizzaSelection]) -> Dict[UUID, int]:
    """Units needed per ingredient: one per pizza per occurrence, summed over all lines."""
    requirements: Dict[UUID, int] = defaultdict(int)
    for selection in selections:
        for item_id in _selected_ids(selection):
            requirements[item_id] += selection.quantity
    return dict(requirements)


def _snapshot_requirements(items: List[OrderItem]) -> Dict[UUID, int]:
    requirements: Dict[UUID, int] = defaultdict(int)
    for item in items:
        for ingredient in item.ingredients:
            requirements[UUID(ingredient["id"])] += item.quantity
    return dict(requirements)


async def create_order(
    user: User,
    items: List[PizzaSelection],
    customer_info: Optional[CustomerInfoInput] = None,
    payment_method: PaymentMethod = PaymentMethod.COD,
    notes: Optional[str] = None,
    *,
    status: OrderStatus = OrderStatus.PENDING,
    payment_status: PaymentStatus = PaymentStatus.PENDING,
    gateway_order_id: Optional[str] = None,
    gateway_payment_id: Optional[str] = None,
    gateway_signature: Optional[str] = None,
    paid_amount: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Order:
    """
    Prices the cart from live catalog records, reserves stock and stores the
    order in one transaction. Any shortfall rolls back every decrement and
    the sequence allocation, so no partial order or stock change survives.

    ``paid_amount`` is the captured amount in minor units; when given it must
    match the server-side total or nothing is stored.
    """
    if not items:
        raise ValidationError("Order must contain at least one item")
    contact = build_customer_info(user, customer_info)
    now = now or clock.now()
    # Created outside the order transaction; a rolled back order leaves it untouched
    await OrderSequence.get_or_create(day=now.date())

    async with in_transaction() as conn:
        ids = {item_id for selection in items for item_id in _selected_ids(selection)}
        catalog = {item.id: item for item in await CatalogItem.filter(id__in=list(ids)).using_db(conn)}

        lines = [_price_line(selection, catalog) for selection in items]
        breakdown = pricing.price_order(line["line_total"] for line in lines)
        if paid_amount is not None and pricing.to_minor_units(breakdown.total) != paid_amount:
            raise PaymentVerificationError(
                f"Paid amount {paid_amount} does not match order total {pricing.to_minor_units(breakdown.total)}"
            )

        await inventory_service.decrement_stock(stock_requirements(items), conn)
        order_number = await _next_order_number(now.date(), conn)

        created_at = clock.to_utc(now)
        order = await Order.create(
            order_number=order_number,
            user=user,
            customer_info=contact.model_dump(),
            customer_name=contact.name,
            customer_phone=contact.phone,
            **breakdown.as_dict(),
            payment_method=payment_method,
            payment_status=payment_status,
            gateway_order_id=gateway_order_id,
            gateway_payment_id=gateway_payment_id,
            gateway_signature=gateway_signature,
            transaction_id=gateway_payment_id,
            status=status,
            estimated_delivery_time=created_at + timedelta(minutes=ESTIMATED_DELIVERY_MINUTES),
            notes=notes,
            created_at=created_at,
            using_db=conn,
        )
        for line in lines:
            await OrderItem.create(order=order, **line, using_db=conn)

    await order.fetch_related("items")
    log.info(f"Order {order.order_number} created for user {user.id}: total {order.total}, status {order.status.value}")
    return order


async def get_order(order_id: UUID) -> Order:
    order = await Order.get_or_none(id=order_id).prefetch_related("items")
    if not order:
        raise NotFoundError("Order not found")
    return order


async def get_user_order(user: User, order_id: UUID) -> Order:
    order = await Order.get_or_none(id=order_id, user_id=user.id).prefetch_related("items")
    if not order:
        raise NotFoundError("Order not found")
    return order


def _pagination(total: int, page: int, limit: int) -> dict:
    return {
        "current_page": page,
        "total_pages": math.ceil(total / limit) if limit else 0,
        "total_items": total,
        "items_per_page": limit,
    }


async def _paginate(query, page: int, limit: int) -> Tuple[List[Order], dict]:
    if page < 1 or limit < 1:
        raise ValidationError("page and limit must be positive")
    total = await query.count()
    orders = await query.order_by("-created_at").offset((page - 1) * limit).limit(limit).prefetch_related("items")
    return orders, _pagination(total, page, limit)


async def list_user_orders(user: User, status: Optional[OrderStatus] = None,
                           page: int = 1, limit: int = 10) -> Tuple[List[Order], dict]:
    query = Order.filter(user_id=user.id)
    if status is not None:
        query = query.filter(status=status)
    return await _paginate(query, page, limit)


async def list_orders(status: Optional[OrderStatus] = None, day: Optional[date] = None,
                      search: Optional[str] = None, page: int = 1, limit: int = 20) -> Tuple[List[Order], dict]:
    """Admin listing with status, calendar day and free-text filters."""
    query = Order.all()
    if status is not None:
        query = query.filter(status=status)
    if day is not None:
        start, end = clock.day_range(datetime.combine(day, datetime.min.time(), tzinfo=clock.store_tz()))
        query = query.filter(created_at__gte=clock.to_utc(start), created_at__lt=clock.to_utc(end))
    if search:
        query = query.filter(
            Q(order_number__icontains=search)
            | Q(customer_name__icontains=search)
            | Q(customer_phone__icontains=search)
        )
    return await _paginate(query, page, limit)


async def cancel_order(user: User, order_id: UUID, reason: Optional[str] = None) -> Order:
    """Customer cancellation, allowed only before the kitchen starts preparing."""
    async with in_transaction() as conn:
        order = await (
            Order.filter(id=order_id, user_id=user.id)
            .using_db(conn)
            .select_for_update()
            .prefetch_related("items")
            .first()
        )
        if not order:
            raise NotFoundError("Order not found")

        if order.status not in CANCELLABLE_STATUSES:
            raise InvalidStatusTransitionError(
                f"Order cannot be cancelled at this stage (status: {order.status.value})"
            )

        order.status = OrderStatus.CANCELLED
        order.admin_notes = f"Cancelled by customer. Reason: {reason or 'No reason provided'}"
        await order.save(using_db=conn)

        if RESTOCK_ON_CANCEL:
            await inventory_service.restore_stock(_snapshot_requirements(order.items), conn)

    log.info(f"Order {order.order_number} cancelled by customer {user.id}")
    return order


async def update_order_status(order_id: UUID, new_status: OrderStatus,
                              admin_notes: Optional[str] = None,
                              now: Optional[datetime] = None) -> Tuple[Order, OrderStatus]:
    """
    Admin status change along the forward-only pipeline.
    Returns the order and its previous status.
    """
    async with in_transaction() as conn:
        order = await (
            Order.filter(id=order_id)
            .using_db(conn)
            .select_for_update()
            .prefetch_related("items")
            .first()
        )
        if not order:
            raise NotFoundError("Order not found")

        old_status = order.status
        if not can_transition(old_status, new_status):
            raise InvalidStatusTransitionError(
                f"Cannot change order status from {old_status.value} to {OrderStatus(new_status).value}"
            )

        order.status = new_status
        if admin_notes:
            order.admin_notes = admin_notes
        if new_status == OrderStatus.DELIVERED:
            order.actual_delivery_time = clock.to_utc(now or clock.now())
        await order.save(using_db=conn)

        if new_status == OrderStatus.CANCELLED and RESTOCK_ON_CANCEL:
            await inventory_service.restore_stock(_snapshot_requirements(order.items), conn)

    log.info(f"Order {order.order_number} status: {old_status.value} -> {order.status.value}")
    return order, old_status


async def track_order(order_number: str) -> dict:
    """Public tracking view keyed by order number."""
    order = await Order.get_or_none(order_number=order_number).prefetch_related("items")
    if not order:
        raise NotFoundError("Order not found")

    return {
        "order_number": order.order_number,
        "status": order.status,
        "progress": STATUS_PROGRESS[order.status],
        "estimated_delivery_time": order.estimated_delivery_time,
        "actual_delivery_time": order.actual_delivery_time,
        "created_at": order.created_at,
        "items": [
            {"name": item.name, "quantity": item.quantity, "size": item.size}
            for item in order.items
        ],
        "customer_name": order.customer_name,
    }


async def _paid_revenue(since: datetime, until: Optional[datetime] = None) -> Decimal:
    query = Order.filter(payment_status=PaymentStatus.PAID, created_at__gte=clock.to_utc(since))
    if until is not None:
        query = query.filter(created_at__lt=clock.to_utc(until))
    totals = await query.values_list("total", flat=True)
    return sum((Decimal(t) for t in totals), Decimal("0"))


async def get_order_stats(now: Optional[datetime] = None) -> dict:
    now = now or clock.now()
    start, end = clock.day_range(now)

    today_orders = await Order.filter(
        created_at__gte=clock.to_utc(start), created_at__lt=clock.to_utc(end)
    ).count()

    rows = await Order.annotate(count=Count("id")).group_by("status").values("status", "count")
    breakdown = {status.value: 0 for status in OrderStatus}
    for row in rows:
        breakdown[OrderStatus(row["status"]).value] = row["count"]

    return {
        "today_orders": today_orders,
        "today_revenue": await _paid_revenue(start, end),
        "monthly_revenue": await _paid_revenue(clock.start_of_month(now)),
        "status_breakdown": breakdown,
    }
