from decimal import Decimal
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field

from pizzacraft.schemas.order import OrderCreateRequest


class CreatePaymentOrderRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, description="Amount in major currency units.")
    currency: Optional[str] = None


class VerifyPaymentRequest(BaseModel):
    """Callback data returned by the gateway checkout, plus the cart to turn into an order."""
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str
    order_data: OrderCreateRequest


class PaymentFailureRequest(BaseModel):
    razorpay_order_id: str
    error: Optional[Dict[str, Any]] = None


class RefundRequest(BaseModel):
    payment_id: str
    amount: Optional[Decimal] = Field(None, gt=0, description="Partial refund amount; full refund when omitted.")
    reason: Optional[str] = None
