from enum import Enum
from tortoise import fields, models
import uuid


class OrderStatus(str, Enum):
    PENDING = "pending"                   # Created at checkout (cash on delivery)
    CONFIRMED = "confirmed"               # Accepted by the store or paid online
    PREPARING = "preparing"
    READY = "ready"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"               # Terminal
    CANCELLED = "cancelled"               # Terminal


class PaymentMethod(str, Enum):
    RAZORPAY = "razorpay"
    COD = "cod"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PizzaSize(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class OrderSequence(models.Model):
    """Last order number issued per calendar day."""
    id = fields.IntField(primary_key=True)
    day = fields.DateField(unique=True)
    last_value = fields.IntField(default=0)

    class Meta:
        table = "order_sequences"


class Order(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    order_number = fields.CharField(max_length=32, unique=True)
    user = fields.ForeignKeyField("models.User", related_name="orders")
    customer_info = fields.JSONField()
    # Copied out of customer_info for admin search
    customer_name = fields.CharField(max_length=255)
    customer_phone = fields.CharField(max_length=32)

    # Pricing breakdown: total == subtotal + tax + delivery_fee - discount
    subtotal = fields.DecimalField(max_digits=14, decimal_places=2)
    tax = fields.DecimalField(max_digits=14, decimal_places=2)
    delivery_fee = fields.DecimalField(max_digits=14, decimal_places=2)
    discount = fields.DecimalField(max_digits=14, decimal_places=2, default=0)
    total = fields.DecimalField(max_digits=14, decimal_places=2)
    # Running sum of gateway refunds; never exceeds total
    refunded_amount = fields.DecimalField(max_digits=14, decimal_places=2, default=0)

    payment_method = fields.CharEnumField(PaymentMethod, default=PaymentMethod.COD)
    payment_status = fields.CharEnumField(PaymentStatus, default=PaymentStatus.PENDING)
    transaction_id = fields.CharField(max_length=128, null=True)
    gateway_order_id = fields.CharField(max_length=128, null=True)
    gateway_payment_id = fields.CharField(max_length=128, null=True, unique=True)
    gateway_signature = fields.CharField(max_length=256, null=True)

    status = fields.CharEnumField(OrderStatus, default=OrderStatus.PENDING)
    estimated_delivery_time = fields.DatetimeField()
    actual_delivery_time = fields.DatetimeField(null=True)
    notes = fields.TextField(null=True)
    admin_notes = fields.TextField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "orders"
        indexes = [
            ("user_id", "created_at"),   # Customer order history
            ("status", "created_at"),    # Composite: status with time
            ("payment_status",),         # Revenue stats
            ("gateway_order_id",),       # Payment failure callbacks
        ]


class OrderItem(models.Model):
    """One pizza configuration, priced from a frozen ingredient snapshot."""
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    order = fields.ForeignKeyField("models.Order", related_name="items")
    name = fields.CharField(max_length=255)
    size = fields.CharEnumField(PizzaSize)
    size_multiplier = fields.DecimalField(max_digits=4, decimal_places=2)
    quantity = fields.IntField()
    # Exact values: 2dp prices times 1dp multipliers never need more than 3dp
    unit_price = fields.DecimalField(max_digits=14, decimal_places=3)
    line_total = fields.DecimalField(max_digits=16, decimal_places=3)
    # [{"id", "name", "category", "price"}] as they were at order time
    ingredients = fields.JSONField()

    class Meta:
        table = "order_items"
        indexes = [
            ("order_id",),  # Order line items
        ]
