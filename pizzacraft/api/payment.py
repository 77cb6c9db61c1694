import logging
from fastapi import APIRouter, BackgroundTasks, Depends

from pizzacraft.api.deps import get_current_user, get_notifier, get_stock_monitor, require_admin
from pizzacraft.models.user import User
from pizzacraft.schemas.payment import (
    CreatePaymentOrderRequest,
    PaymentFailureRequest,
    RefundRequest,
    VerifyPaymentRequest,
)
from pizzacraft.schemas.response import SuccessResponse
from pizzacraft.services import payment_service
from pizzacraft.services.notifications import EmailNotifier
from pizzacraft.services.stock_monitor import StockMonitor

router = APIRouter()
log = logging.getLogger(__name__)


@router.get("/config", response_model=SuccessResponse)
async def payment_config_endpoint():
    return SuccessResponse(data=payment_service.payment_config())


@router.post("/create-order", response_model=SuccessResponse, dependencies=[Depends(get_current_user)])
async def create_payment_order(payload: CreatePaymentOrderRequest):
    data = await payment_service.create_gateway_order(payload.amount, payload.currency)
    return SuccessResponse(data=data)


@router.post("/verify", response_model=SuccessResponse)
async def verify_payment_endpoint(
    payload: VerifyPaymentRequest,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    notifier: EmailNotifier = Depends(get_notifier),
    monitor: StockMonitor = Depends(get_stock_monitor),
):
    """Confirms a paid checkout. Retries with the same payment id return the existing order."""
    order, created = await payment_service.verify_payment(
        user,
        payload.razorpay_order_id,
        payload.razorpay_payment_id,
        payload.razorpay_signature,
        payload.order_data,
    )
    if created:
        background_tasks.add_task(notifier.send_order_confirmation, order)
        background_tasks.add_task(notifier.send_new_order_notification, order)
        background_tasks.add_task(monitor.check_low_stock)

    return SuccessResponse(
        message="Payment verified and order created successfully",
        data={"order_id": order.id, "order_number": order.order_number},
    )


@router.post("/failure", response_model=SuccessResponse)
async def payment_failure_endpoint(payload: PaymentFailureRequest):
    await payment_service.record_payment_failure(payload.razorpay_order_id, payload.error)
    return SuccessResponse(message="Payment failure recorded")


@router.get("/status/{payment_id}", response_model=SuccessResponse, dependencies=[Depends(get_current_user)])
async def payment_status_endpoint(payment_id: str):
    return SuccessResponse(data=await payment_service.get_payment_status(payment_id))


@router.post("/refund", response_model=SuccessResponse, dependencies=[Depends(require_admin)])
async def refund_endpoint(payload: RefundRequest):
    data = await payment_service.refund_payment(payload.payment_id, payload.amount, payload.reason)
    log.info(f"Admin refund for payment {payload.payment_id}: {data['amount']} minor units, order {data['order_number']}")
    return SuccessResponse(message="Refund processed successfully", data=data)
