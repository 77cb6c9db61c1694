import logging
from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from pizzacraft.api.deps import get_notifier, require_admin
from pizzacraft.models.order import OrderStatus
from pizzacraft.schemas.order import OrderResponse, OrderStats, OrderStatusUpdate
from pizzacraft.schemas.response import SuccessResponse
from pizzacraft.services import order_service
from pizzacraft.services.notifications import EmailNotifier

router = APIRouter(dependencies=[Depends(require_admin)])
log = logging.getLogger(__name__)


@router.get("", response_model=SuccessResponse)
async def list_orders_endpoint(
    status: Optional[OrderStatus] = None,
    day: Optional[date] = Query(None, alias="date"),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    orders, pagination = await order_service.list_orders(status, day, search, page, limit)
    return SuccessResponse(data={
        "orders": [OrderResponse.from_order(order).model_dump() for order in orders],
        "pagination": pagination,
    })


@router.get("/stats", response_model=SuccessResponse)
async def order_stats_endpoint():
    stats = await order_service.get_order_stats()
    return SuccessResponse(data=OrderStats(**stats).model_dump())


@router.put("/{order_id}/status", response_model=SuccessResponse)
async def update_status_endpoint(order_id: UUID, payload: OrderStatusUpdate, background_tasks: BackgroundTasks,
                                 notifier: EmailNotifier = Depends(get_notifier)):
    """Moves an order forward through the kitchen pipeline and emails the customer."""
    order, previous = await order_service.update_order_status(order_id, payload.status, payload.admin_notes)
    log.info(f"Order {order.order_number} moved from {previous.value} to {order.status.value} by admin")
    background_tasks.add_task(notifier.send_status_update, order, previous)
    return SuccessResponse(message=f"Order status updated to {order.status.value}",
                           data=OrderResponse.from_order(order).model_dump())
