"""Outgoing email.

Builders render plain-text messages; ``EmailNotifier`` delivers them through
the configured SMTP relay. Delivery problems are logged and reported as
``False`` so a failed email never fails the request that triggered it.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from email.message import EmailMessage
from typing import List, Optional

import aiosmtplib

from pizzacraft.core import clock
from pizzacraft.core.config import (
    ADMIN_DASHBOARD_URL,
    ADMIN_EMAIL,
    CRITICAL_STOCK_LEVEL,
    FROM_EMAIL,
    FRONTEND_URL,
    SMTP_HOST,
    SMTP_PASSWORD,
    SMTP_PORT,
    SMTP_STARTTLS,
    SMTP_USER,
)
from pizzacraft.models.catalog import CatalogItem
from pizzacraft.models.order import Order, OrderStatus
from pizzacraft.models.user import User

log = logging.getLogger(__name__)

STATUS_MESSAGES = {
    OrderStatus.CONFIRMED: "Your order has been confirmed and is being prepared!",
    OrderStatus.PREPARING: "Our chefs are now preparing your delicious pizza!",
    OrderStatus.READY: "Your pizza is ready and will be out for delivery soon!",
    OrderStatus.OUT_FOR_DELIVERY: "Your pizza is on its way to you!",
    OrderStatus.DELIVERED: "Your pizza has been delivered! Enjoy!",
    OrderStatus.CANCELLED: "Your order has been cancelled.",
}


@dataclass
class Email:
    to: str
    subject: str
    body: str


def _status_label(status) -> str:
    return OrderStatus(status).value.replace("_", " ").upper()


def _item_lines(order: Order) -> str:
    return "\n".join(
        f"{item.quantity}x {item.name} ({item.size.value}) - {item.line_total:.2f}"
        for item in order.items
    )


def _address_line(order: Order) -> str:
    address = order.customer_info["address"]
    return f"{address['street']}, {address['city']}, {address['state']} {address['zip_code']}"


def _track_url(order: Order) -> str:
    return f"{FRONTEND_URL}/orders/track/{order.order_number}"


def low_stock_alert(items: List[CatalogItem], generated_at: Optional[datetime] = None,
                    critical_level: int = CRITICAL_STOCK_LEVEL) -> Email:
    generated_at = generated_at or clock.now()
    critical = [item for item in items if item.stock <= critical_level]
    lines = "\n".join(
        f"- {item.name} ({item.category.value}): {item.stock} {item.unit} remaining (Threshold: {item.threshold})"
        for item in items
    )
    warning = (
        f"\nURGENT: {len(critical)} items are critically low (<={critical_level} units)!\n"
        if critical else ""
    )
    body = (
        "PizzaCraft Inventory Alert - Low Stock Warning\n\n"
        "The following items are running low and need to be restocked:\n\n"
        f"{lines}\n{warning}\n"
        "Summary:\n"
        f"- Total items below threshold: {len(items)}\n"
        f"- Critical items (<={critical_level} units): {len(critical)}\n\n"
        "Please restock these items as soon as possible to avoid order fulfillment issues.\n\n"
        f"Admin Dashboard: {ADMIN_DASHBOARD_URL}\n\n"
        f"Generated on: {generated_at:%Y-%m-%d %H:%M %Z}\n"
    )
    return Email(ADMIN_EMAIL, f"PizzaCraft: {len(items)} Items Below Stock Threshold", body)


def order_confirmation(order: Order) -> Email:
    info = order.customer_info
    body = (
        f"Thank you for your order, {info['name']}!\n\n"
        f"Order Number: {order.order_number}\n"
        f"Status: {_status_label(order.status)}\n"
        f"Estimated Delivery: {order.estimated_delivery_time.astimezone(clock.store_tz()):%H:%M}\n\n"
        f"Your Items:\n{_item_lines(order)}\n\n"
        f"Total: {order.total:.2f}\n\n"
        f"Delivery Address: {_address_line(order)}\n\n"
        f"Track your order: {_track_url(order)}\n"
    )
    return Email(info["email"], f"Order Confirmed - {order.order_number}", body)


def new_order_notification(order: Order) -> Email:
    info = order.customer_info
    body = (
        f"Order {order.order_number}\n\n"
        "Customer Information:\n"
        f"Name: {info['name']}\n"
        f"Phone: {info['phone']}\n"
        f"Email: {info['email']}\n"
        f"Address: {_address_line(order)}\n\n"
        f"Order Items:\n{_item_lines(order)}\n\n"
        f"Payment Method: {order.payment_method.value.upper()}\n"
        f"Payment Status: {order.payment_status.value.upper()}\n"
        f"Total: {order.total:.2f}\n\n"
        f"View in Admin Dashboard: {ADMIN_DASHBOARD_URL}\n"
    )
    return Email(ADMIN_EMAIL, f"New Order: {order.order_number} - {order.total:.2f}", body)


def status_update(order: Order, previous_status: Optional[OrderStatus] = None) -> Email:
    info = order.customer_info
    message = STATUS_MESSAGES.get(OrderStatus(order.status), "Your order status has been updated.")
    previous = f" (was {_status_label(previous_status)})" if previous_status else ""
    body = (
        f"Hi {info['name']}!\n\n"
        f"{message}\n\n"
        f"Order {order.order_number}\n"
        f"Status: {_status_label(order.status)}{previous}\n"
        f"Estimated Delivery: {order.estimated_delivery_time.astimezone(clock.store_tz()):%H:%M}\n\n"
        f"Track your order: {_track_url(order)}\n"
    )
    return Email(info["email"], f"Order {order.order_number} - {_status_label(order.status)}", body)


def email_verification(user: User) -> Email:
    link = f"{FRONTEND_URL}/verify-email/{user.email_verification_token}"
    body = (
        f"Hi {user.first_name},\n\n"
        "Welcome to PizzaCraft! Please confirm your email address:\n\n"
        f"{link}\n"
    )
    return Email(user.email, "Verify your PizzaCraft account", body)


def password_reset(user: User) -> Email:
    link = f"{FRONTEND_URL}/reset-password/{user.password_reset_token}"
    body = (
        f"Hi {user.first_name},\n\n"
        "We received a request to reset your password. The link below is valid "
        f"until {user.password_reset_expires:%H:%M %Z}:\n\n"
        f"{link}\n\n"
        "If you did not request this, you can ignore this email.\n"
    )
    return Email(user.email, "Reset your PizzaCraft password", body)


class EmailNotifier:
    def __init__(self, host: str = SMTP_HOST, port: int = SMTP_PORT, username: str = SMTP_USER,
                 password: str = SMTP_PASSWORD, start_tls: bool = SMTP_STARTTLS,
                 sender: str = FROM_EMAIL):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.start_tls = start_tls
        self.sender = sender

    @property
    def enabled(self) -> bool:
        return bool(self.host)

    async def send(self, email: Email) -> bool:
        if not self.enabled:
            log.info(f"Email disabled, not sending '{email.subject}' to {email.to}")
            return False

        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = email.to
        message["Subject"] = email.subject
        message.set_content(email.body)

        try:
            await aiosmtplib.send(
                message,
                hostname=self.host,
                port=self.port,
                username=self.username or None,
                password=self.password or None,
                start_tls=self.start_tls,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            log.error(f"Failed to send '{email.subject}' to {email.to}: {e}")
            return False

        log.info(f"Email '{email.subject}' sent to {email.to}")
        return True

    async def send_low_stock_alert(self, items: List[CatalogItem], generated_at: Optional[datetime] = None) -> bool:
        if not items:
            return True
        return await self.send(low_stock_alert(items, generated_at))

    async def send_order_confirmation(self, order: Order) -> bool:
        return await self.send(order_confirmation(order))

    async def send_new_order_notification(self, order: Order) -> bool:
        return await self.send(new_order_notification(order))

    async def send_status_update(self, order: Order, previous_status: Optional[OrderStatus] = None) -> bool:
        return await self.send(status_update(order, previous_status))

    async def send_email_verification(self, user: User) -> bool:
        return await self.send(email_verification(user))

    async def send_password_reset(self, user: User) -> bool:
        return await self.send(password_reset(user))
