import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status

from pizzacraft.api.deps import get_current_user, get_notifier, get_stock_monitor
from pizzacraft.models.order import OrderStatus
from pizzacraft.models.user import User
from pizzacraft.schemas.order import (
    OrderCancelRequest,
    OrderCreateRequest,
    OrderPlacementResponse,
    OrderResponse,
    OrderTracking,
)
from pizzacraft.schemas.response import SuccessResponse
from pizzacraft.services import order_service
from pizzacraft.services.notifications import EmailNotifier
from pizzacraft.services.stock_monitor import StockMonitor

router = APIRouter()
log = logging.getLogger(__name__)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_order_endpoint(
    payload: OrderCreateRequest,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    notifier: EmailNotifier = Depends(get_notifier),
    monitor: StockMonitor = Depends(get_stock_monitor),
):
    """
    Places an order. Prices are taken from the live catalog and stock is
    reserved atomically; emails and the low-stock sweep run after the response.
    """
    order = await order_service.create_order(
        user, payload.items, payload.customer_info, payload.payment_method, payload.notes
    )
    background_tasks.add_task(notifier.send_order_confirmation, order)
    background_tasks.add_task(notifier.send_new_order_notification, order)
    background_tasks.add_task(monitor.check_low_stock)

    data = OrderPlacementResponse(
        order_id=order.id,
        order_number=order.order_number,
        status=order.status,
        total=order.total,
        estimated_delivery_time=order.estimated_delivery_time,
    ).model_dump()
    return SuccessResponse(message="Order placed successfully", data=data)


@router.get("", response_model=SuccessResponse)
async def list_my_orders(
    status: Optional[OrderStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: User = Depends(get_current_user),
):
    orders, pagination = await order_service.list_user_orders(user, status, page, limit)
    return SuccessResponse(data={
        "orders": [OrderResponse.from_order(order).model_dump() for order in orders],
        "pagination": pagination,
    })


@router.get("/track/{order_number}", response_model=SuccessResponse)
async def track_order_endpoint(order_number: str):
    """Public tracking by order number."""
    tracking = await order_service.track_order(order_number)
    return SuccessResponse(data=OrderTracking(**tracking).model_dump())


@router.get("/{order_id}", response_model=SuccessResponse)
async def get_order_endpoint(order_id: UUID, user: User = Depends(get_current_user)):
    order = await order_service.get_user_order(user, order_id)
    return SuccessResponse(data=OrderResponse.from_order(order).model_dump())


@router.put("/{order_id}/cancel", response_model=SuccessResponse)
async def cancel_order_endpoint(
    order_id: UUID,
    background_tasks: BackgroundTasks,
    payload: Optional[OrderCancelRequest] = None,
    user: User = Depends(get_current_user),
    notifier: EmailNotifier = Depends(get_notifier),
):
    """Cancels a pending or confirmed order; later stages return 409."""
    order = await order_service.cancel_order(user, order_id, payload.reason if payload else None)
    background_tasks.add_task(notifier.send_status_update, order)
    return SuccessResponse(message="Order cancelled successfully",
                           data=OrderResponse.from_order(order).model_dump())
