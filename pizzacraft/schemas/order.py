from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal
import uuid

from pizzacraft.models.order import OrderStatus, PaymentMethod, PaymentStatus, PizzaSize


class Address(BaseModel):
    street: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    zip_code: str = Field(..., min_length=1)
    lat: Optional[float] = None
    lng: Optional[float] = None


class CustomerInfo(BaseModel):
    """Contact and delivery snapshot stored on the order."""
    name: str
    email: str
    phone: str
    address: Address


class CustomerInfoInput(BaseModel):
    """Checkout form; missing contact fields fall back to the user's profile."""
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[Address] = None


class PizzaSelection(BaseModel):
    """Schema for a single pizza configuration in the order request."""
    name: str = "Custom Pizza"
    base_id: uuid.UUID
    sauce_id: uuid.UUID
    cheese_id: uuid.UUID
    topping_ids: List[uuid.UUID] = Field(default_factory=list)
    size: PizzaSize = PizzaSize.MEDIUM
    quantity: int = Field(1, ge=1)


class OrderCreateRequest(BaseModel):
    """Schema for the checkout request body."""
    items: List[PizzaSelection]
    customer_info: CustomerInfoInput = Field(default_factory=CustomerInfoInput)
    payment_method: PaymentMethod = PaymentMethod.COD
    notes: Optional[str] = None


class OrderCancelRequest(BaseModel):
    reason: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    """Schema for updating an order status."""
    status: OrderStatus
    admin_notes: Optional[str] = None


class IngredientSnapshot(BaseModel):
    id: uuid.UUID
    name: str
    category: str
    price: Decimal


class OrderItemResponse(BaseModel):
    """Schema for an item inside the detailed order response."""
    name: str
    size: PizzaSize
    size_multiplier: Decimal
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    ingredients: List[IngredientSnapshot]


class PricingResponse(BaseModel):
    subtotal: Decimal
    tax: Decimal
    delivery_fee: Decimal
    discount: Decimal
    total: Decimal


class PaymentResponse(BaseModel):
    method: PaymentMethod
    status: PaymentStatus
    transaction_id: Optional[str] = None
    gateway_order_id: Optional[str] = None
    gateway_payment_id: Optional[str] = None
    refunded_amount: Decimal = Decimal("0")


class OrderResponse(BaseModel):
    """Full order view. The gateway signature is never exposed."""
    id: uuid.UUID
    order_number: str
    status: OrderStatus
    customer_info: CustomerInfo
    items: List[OrderItemResponse]
    pricing: PricingResponse
    payment: PaymentResponse
    estimated_delivery_time: datetime
    actual_delivery_time: Optional[datetime] = None
    notes: Optional[str] = None
    admin_notes: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_order(cls, order) -> "OrderResponse":
        return cls(
            id=order.id,
            order_number=order.order_number,
            status=order.status,
            customer_info=order.customer_info,
            items=[
                OrderItemResponse(
                    name=item.name,
                    size=item.size,
                    size_multiplier=item.size_multiplier,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    line_total=item.line_total,
                    ingredients=item.ingredients,
                )
                for item in order.items
            ],
            pricing=PricingResponse(
                subtotal=order.subtotal,
                tax=order.tax,
                delivery_fee=order.delivery_fee,
                discount=order.discount,
                total=order.total,
            ),
            payment=PaymentResponse(
                method=order.payment_method,
                status=order.payment_status,
                transaction_id=order.transaction_id,
                gateway_order_id=order.gateway_order_id,
                gateway_payment_id=order.gateway_payment_id,
                refunded_amount=order.refunded_amount,
            ),
            estimated_delivery_time=order.estimated_delivery_time,
            actual_delivery_time=order.actual_delivery_time,
            notes=order.notes,
            admin_notes=order.admin_notes,
            created_at=order.created_at,
        )


class OrderPlacementResponse(BaseModel):
    """Response schema for a newly placed or updated order."""
    order_id: uuid.UUID
    order_number: str
    status: OrderStatus
    total: Decimal
    estimated_delivery_time: datetime


class TrackedItem(BaseModel):
    name: str
    quantity: int
    size: PizzaSize


class OrderTracking(BaseModel):
    order_number: str
    status: OrderStatus
    progress: int
    estimated_delivery_time: datetime
    actual_delivery_time: Optional[datetime] = None
    created_at: datetime
    items: List[TrackedItem]
    customer_name: str


class OrderStats(BaseModel):
    today_orders: int
    today_revenue: Decimal
    monthly_revenue: Decimal
    status_breakdown: dict


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
