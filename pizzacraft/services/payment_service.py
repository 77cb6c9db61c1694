import logging
import time
from decimal import Decimal
from typing import Optional, Tuple

from tortoise.exceptions import IntegrityError
from tortoise.transactions import in_transaction

from pizzacraft.core.config import CURRENCY, RAZORPAY_KEY_ID
from pizzacraft.core.exceptions import PaymentVerificationError, PizzaCraftError, ValidationError
from pizzacraft.models.order import Order, OrderStatus, PaymentMethod, PaymentStatus
from pizzacraft.models.user import User
from pizzacraft.schemas.order import OrderCreateRequest
from pizzacraft.services import order_service
from pizzacraft.services.payment_gateway import RazorpayClient, verify_signature
from pizzacraft.services.pricing import round_money, to_minor_units

log = logging.getLogger(__name__)

gateway = RazorpayClient()


def payment_config() -> dict:
    """Public checkout settings for the frontend widget."""
    return {
        "key": RAZORPAY_KEY_ID,
        "currency": CURRENCY,
        "name": "PizzaCraft",
        "description": "Fresh pizza delivered hot to your door",
        "image": "/pizza-logo.png",
        "theme": {"color": "#E85A4F"},
    }


async def create_gateway_order(amount: Decimal, currency: Optional[str] = None) -> dict:
    """Opens a gateway order for checkout. Nothing is stored locally yet."""
    currency = currency or CURRENCY
    gateway_order = await gateway.create_order(
        amount=to_minor_units(amount),
        currency=currency,
        receipt=f"receipt_{int(time.time() * 1000)}",
    )
    log.info(f"Gateway order {gateway_order.get('id')} created for {amount} {currency}")
    return {
        "order_id": gateway_order["id"],
        "amount": gateway_order.get("amount"),
        "currency": gateway_order.get("currency", currency),
        "key": RAZORPAY_KEY_ID,
    }


async def _order_for_payment(payment_id: str) -> Optional[Order]:
    return await Order.get_or_none(gateway_payment_id=payment_id).prefetch_related("items")


def _check_same_checkout(order: Order, user: User, gateway_order_id: str):
    if order.user_id != user.id or order.gateway_order_id != gateway_order_id:
        log.warning(
            f"Payment {order.gateway_payment_id} is already attached to order {order.order_number}; "
            f"rejecting replay by user {user.id} for gateway order {gateway_order_id}"
        )
        raise PaymentVerificationError("Payment verification failed")


async def _captured_amount(gateway_order_id: str, payment_id: str) -> int:
    """Amount the gateway actually holds for this payment, in minor units."""
    payment = await gateway.fetch_payment(payment_id)
    if payment.get("order_id") != gateway_order_id:
        log.warning(f"Payment {payment_id} belongs to gateway order {payment.get('order_id')}, not {gateway_order_id}")
        raise PaymentVerificationError("Payment verification failed")
    return int(payment.get("amount") or 0)


async def verify_payment(user: User, gateway_order_id: str, payment_id: str, signature: str,
                         order_data: OrderCreateRequest) -> Tuple[Order, bool]:
    """
    Checks the gateway signature and turns the paid cart into a confirmed order.

    The amount captured by the gateway must equal the server-priced total.
    Idempotent on ``payment_id``: a retried callback from the same user and
    gateway order returns the order created the first time. Returns
    ``(order, created)``.
    """
    if not verify_signature(gateway_order_id, payment_id, signature):
        log.warning(f"Signature mismatch for gateway order {gateway_order_id}, payment {payment_id}")
        raise PaymentVerificationError("Payment verification failed")

    existing = await _order_for_payment(payment_id)
    if existing:
        _check_same_checkout(existing, user, gateway_order_id)
        log.info(f"Payment {payment_id} already recorded on order {existing.order_number}")
        return existing, False

    paid_amount = await _captured_amount(gateway_order_id, payment_id)
    try:
        order = await order_service.create_order(
            user,
            order_data.items,
            order_data.customer_info,
            PaymentMethod.RAZORPAY,
            order_data.notes,
            status=OrderStatus.CONFIRMED,
            payment_status=PaymentStatus.PAID,
            gateway_order_id=gateway_order_id,
            gateway_payment_id=payment_id,
            gateway_signature=signature,
            paid_amount=paid_amount,
        )
    except IntegrityError:
        # A concurrent retry stored the same payment first
        existing = await _order_for_payment(payment_id)
        if existing is None:
            raise
        _check_same_checkout(existing, user, gateway_order_id)
        return existing, False
    except PizzaCraftError as e:
        log.error(
            f"Payment {payment_id} (gateway order {gateway_order_id}) was captured but no order "
            f"was created, refund required: {e.message}"
        )
        raise

    log.info(f"Payment {payment_id} verified, order {order.order_number} confirmed")
    return order, True


async def record_payment_failure(gateway_order_id: str, error: Optional[dict] = None) -> bool:
    """Logs a failed checkout. Returns True when a local order was marked failed."""
    log.error(f"Payment failed for gateway order {gateway_order_id}: {error}")
    updated = await Order.filter(
        gateway_order_id=gateway_order_id, payment_status=PaymentStatus.PENDING
    ).update(payment_status=PaymentStatus.FAILED)
    return bool(updated)


async def get_payment_status(payment_id: str) -> dict:
    payment = await gateway.fetch_payment(payment_id)
    return {
        "id": payment.get("id"),
        "status": payment.get("status"),
        "amount": payment.get("amount"),
        "currency": payment.get("currency"),
        "method": payment.get("method"),
        "captured": payment.get("captured"),
        "created_at": payment.get("created_at"),
    }


async def refund_payment(payment_id: str, amount: Optional[Decimal] = None,
                         reason: Optional[str] = None) -> dict:
    """
    Refunds through the gateway, then reconciles the local order.

    Refunds accumulate in ``refunded_amount``; a request above the remaining
    balance is rejected before the gateway is called. The order is marked
    refunded once the running total reaches the order total, otherwise it
    stays paid with an admin note.
    """
    reason = reason or "Customer request"
    async with in_transaction() as conn:
        order = await Order.filter(gateway_payment_id=payment_id).using_db(conn).select_for_update().first()
        if order is None:
            refund = await gateway.refund(
                payment_id,
                amount=to_minor_units(amount) if amount is not None else None,
                notes={"reason": reason},
            )
            log.warning(f"Refund {refund.get('id')} issued for payment {payment_id}, which has no local order")
            return _refund_result(refund, None)

        if order.payment_status == PaymentStatus.REFUNDED:
            raise ValidationError("Payment has already been refunded")
        remaining = order.total - order.refunded_amount
        refund_amount = remaining if amount is None else round_money(amount)
        if refund_amount <= 0:
            raise ValidationError("Refund amount must be positive")
        if refund_amount > remaining:
            raise ValidationError(f"Refund of {refund_amount} exceeds the refundable balance of {remaining}")

        # No amount asks the gateway for the whole capture
        refund = await gateway.refund(
            payment_id,
            amount=None if refund_amount == order.total else to_minor_units(refund_amount),
            notes={"reason": reason},
        )
        log.info(f"Refund {refund.get('id')} of {refund_amount} issued for payment {payment_id}")

        order.refunded_amount += refund_amount
        if order.refunded_amount >= order.total:
            order.payment_status = PaymentStatus.REFUNDED
            note = f"Refunded {refund_amount}, order refunded in full ({order.total}). Reason: {reason}"
        else:
            note = f"Partial refund of {refund_amount}. Reason: {reason}"
        order.admin_notes = f"{order.admin_notes}\n{note}" if order.admin_notes else note
        await order.save(using_db=conn)

    return _refund_result(refund, order)


def _refund_result(refund: dict, order: Optional[Order]) -> dict:
    return {
        "refund_id": refund.get("id"),
        "amount": refund.get("amount"),
        "status": refund.get("status"),
        "order_number": order.order_number if order else None,
        "refunded_amount": order.refunded_amount if order else None,
    }
