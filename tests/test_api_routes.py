import pytest
from datetime import datetime, timezone
from decimal import Decimal
from fastapi.testclient import TestClient
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

from pizzacraft.api.deps import get_current_user, get_notifier, get_stock_monitor
from pizzacraft.core.exceptions import (
    InvalidStatusTransitionError,
    NotFoundError,
    PaymentGatewayError,
    PaymentVerificationError,
)
from pizzacraft.main import app
from pizzacraft.models.order import OrderStatus


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def notifier():
    return AsyncMock()


@pytest.fixture
def monitor():
    return AsyncMock()


def as_user(is_admin=False):
    user = SimpleNamespace(id=uuid4(), is_admin=is_admin)
    app.dependency_overrides[get_current_user] = lambda: user
    return user


@pytest.fixture(autouse=True)
def overrides(notifier, monitor):
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_stock_monitor] = lambda: monitor
    yield
    app.dependency_overrides.clear()


def order_payload():
    return {
        "items": [{
            "base_id": str(uuid4()),
            "sauce_id": str(uuid4()),
            "cheese_id": str(uuid4()),
            "size": "large",
            "quantity": 2,
        }],
        "customer_info": {"address": {"street": "1 Main St", "city": "Pune", "state": "MH", "zip_code": "411001"}},
    }


class TestPublicRoutes:
    def test_ping_uses_envelope(self, client):
        response = client.get("/api/ping")

        body = response.json()
        assert response.status_code == 200
        assert body["success"] is True
        assert body["message"] == "pong"
        assert body["request_id"]

    def test_unknown_route_uses_error_envelope(self, client):
        response = client.get("/api/does-not-exist")

        assert response.status_code == 404
        assert response.json()["success"] is False

    def test_track_unknown_order(self, client):
        with patch("pizzacraft.services.order_service.track_order", new_callable=AsyncMock) as mock_track:
            mock_track.side_effect = NotFoundError("Order not found")
            response = client.get("/api/orders/track/PZ-20241201-999")

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Order not found",
                                   "request_id": response.json()["request_id"]}

    def test_track_order(self, client):
        tracking = {
            "order_number": "PZ-20241201-001",
            "status": OrderStatus.PREPARING,
            "progress": 50,
            "estimated_delivery_time": datetime(2024, 12, 1, 12, 30, tzinfo=timezone.utc),
            "actual_delivery_time": None,
            "created_at": datetime(2024, 12, 1, 12, 0, tzinfo=timezone.utc),
            "items": [{"name": "Custom Pizza", "quantity": 1, "size": "medium"}],
            "customer_name": "Asha Rao",
        }
        with patch("pizzacraft.services.order_service.track_order", new_callable=AsyncMock, return_value=tracking):
            response = client.get("/api/orders/track/PZ-20241201-001")

        data = response.json()["data"]
        assert response.status_code == 200
        assert data["status"] == "preparing"
        assert data["progress"] == 50

    def test_payment_config(self, client):
        response = client.get("/api/payment/config")

        assert response.status_code == 200
        assert response.json()["data"]["currency"] == "INR"


class TestAuthentication:
    def test_missing_token(self, client):
        response = client.get("/api/orders")
        assert response.status_code == 401

    def test_invalid_token(self, client):
        response = client.get("/api/orders", headers={"Authorization": "Bearer not-a-real-token"})
        assert response.status_code == 403

    def test_customer_cannot_use_admin_routes(self, client):
        as_user(is_admin=False)
        response = client.get("/api/admin/orders/stats")
        assert response.status_code == 403

    def test_customer_cannot_seed_inventory(self, client):
        as_user(is_admin=False)
        response = client.post("/api/inventory/seed")
        assert response.status_code == 403

    def test_register_queues_verification_email(self, client, notifier):
        user = SimpleNamespace(
            id=uuid4(), first_name="Asha", last_name="Rao", email="asha@example.com", phone="9876543210",
            role="customer", is_email_verified=False, created_at=datetime(2024, 12, 1, tzinfo=timezone.utc),
        )
        payload = {"first_name": "Asha", "last_name": "Rao", "email": "asha@example.com",
                   "phone": "9876543210", "password": "secret123"}
        with patch("pizzacraft.services.auth_service.register", new_callable=AsyncMock,
                   return_value=(user, "token-1")):
            response = client.post("/api/auth/register", json=payload)

        assert response.status_code == 201
        assert response.json()["data"]["token"] == "token-1"
        notifier.send_email_verification.assert_awaited_once_with(user)


class TestOrderRoutes:
    def test_create_order(self, client, notifier, monitor):
        user = as_user()
        order = SimpleNamespace(
            id=uuid4(),
            order_number="PZ-20241201-001",
            status=OrderStatus.PENDING,
            total=Decimal("2832.32"),
            estimated_delivery_time=datetime(2024, 12, 1, 12, 30, tzinfo=timezone.utc),
        )
        with patch("pizzacraft.services.order_service.create_order", new_callable=AsyncMock,
                   return_value=order) as mock_create:
            response = client.post("/api/orders", json=order_payload())

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["order_number"] == "PZ-20241201-001"
        assert data["status"] == "pending"
        assert mock_create.await_args.args[0] is user
        notifier.send_order_confirmation.assert_awaited_once_with(order)
        notifier.send_new_order_notification.assert_awaited_once_with(order)
        monitor.check_low_stock.assert_awaited_once()

    def test_create_order_without_items_is_invalid(self, client):
        as_user()
        payload = order_payload()
        del payload["items"]

        response = client.post("/api/orders", json=payload)

        assert response.status_code == 400
        assert response.json()["success"] is False
        assert response.json()["details"]

    def test_invalid_size_is_invalid(self, client):
        as_user()
        payload = order_payload()
        payload["items"][0]["size"] = "family"

        response = client.post("/api/orders", json=payload)
        assert response.status_code == 400

    def test_cancel_after_preparation_conflicts(self, client):
        as_user()
        with patch("pizzacraft.services.order_service.cancel_order", new_callable=AsyncMock) as mock_cancel:
            mock_cancel.side_effect = InvalidStatusTransitionError(
                "Order cannot be cancelled at this stage (status: delivered)"
            )
            response = client.put(f"/api/orders/{uuid4()}/cancel", json={"reason": "late"})

        assert response.status_code == 409
        assert "cannot be cancelled" in response.json()["message"]

    def test_get_order_of_another_user(self, client):
        as_user()
        with patch("pizzacraft.services.order_service.get_user_order", new_callable=AsyncMock) as mock_get:
            mock_get.side_effect = NotFoundError("Order not found")
            response = client.get(f"/api/orders/{uuid4()}")

        assert response.status_code == 404


class TestAdminRoutes:
    def test_stats(self, client):
        as_user(is_admin=True)
        stats = {
            "today_orders": 3,
            "today_revenue": Decimal("2339.84"),
            "monthly_revenue": Decimal("10000.00"),
            "status_breakdown": {"pending": 1, "confirmed": 2},
        }
        with patch("pizzacraft.services.order_service.get_order_stats", new_callable=AsyncMock, return_value=stats):
            response = client.get("/api/admin/orders/stats")

        assert response.status_code == 200
        assert response.json()["data"]["today_orders"] == 3

    def test_invalid_transition(self, client):
        as_user(is_admin=True)
        with patch("pizzacraft.services.order_service.update_order_status", new_callable=AsyncMock) as mock_update:
            mock_update.side_effect = InvalidStatusTransitionError("Cannot change order status from pending to delivered")
            response = client.put(f"/api/admin/orders/{uuid4()}/status", json={"status": "delivered"})

        assert response.status_code == 409

    def test_inventory_summary(self, client, monitor):
        as_user(is_admin=True)
        monitor.stock_summary.return_value = {"total_items": 29, "low_stock_items": 0}

        response = client.get("/api/inventory/summary")

        assert response.status_code == 200
        assert response.json()["data"]["total_items"] == 29


class TestPaymentRoutes:
    def verify_payload(self):
        return {
            "razorpay_order_id": "order_1",
            "razorpay_payment_id": "pay_1",
            "razorpay_signature": "forged",
            "order_data": order_payload(),
        }

    def test_bad_signature(self, client, notifier):
        as_user()
        with patch("pizzacraft.services.payment_service.verify_payment", new_callable=AsyncMock) as mock_verify:
            mock_verify.side_effect = PaymentVerificationError("Payment verification failed")
            response = client.post("/api/payment/verify", json=self.verify_payload())

        assert response.status_code == 400
        assert response.json()["message"] == "Payment verification failed"
        notifier.send_order_confirmation.assert_not_awaited()

    def test_retry_does_not_notify_again(self, client, notifier):
        as_user()
        order = SimpleNamespace(id=uuid4(), order_number="PZ-20241201-004")
        with patch("pizzacraft.services.payment_service.verify_payment", new_callable=AsyncMock,
                   return_value=(order, False)):
            response = client.post("/api/payment/verify", json=self.verify_payload())

        assert response.status_code == 200
        assert response.json()["data"]["order_number"] == "PZ-20241201-004"
        notifier.send_order_confirmation.assert_not_awaited()

    def test_gateway_failure_is_generic(self, client):
        as_user()
        with patch("pizzacraft.services.payment_service.create_gateway_order", new_callable=AsyncMock) as mock_create:
            mock_create.side_effect = PaymentGatewayError("Payment gateway returned 502")
            response = client.post("/api/payment/create-order", json={"amount": 1169.92})

        assert response.status_code == 500
        assert response.json()["message"] == "Payment service is currently unavailable"

    def test_refund_requires_admin(self, client):
        as_user(is_admin=False)
        response = client.post("/api/payment/refund", json={"payment_id": "pay_1"})
        assert response.status_code == 403

    def test_admin_refund_is_logged(self, client, caplog):
        as_user(is_admin=True)
        result = {"refund_id": "rfnd_1", "amount": 10000, "status": "processed",
                  "order_number": "PZ-20241201-004", "refunded_amount": Decimal("100.00")}
        with patch("pizzacraft.services.payment_service.refund_payment", new_callable=AsyncMock,
                   return_value=result) as mock_refund:
            with caplog.at_level("INFO", logger="pizzacraft.api.payment"):
                response = client.post("/api/payment/refund", json={"payment_id": "pay_1", "amount": 100})

        assert response.status_code == 200
        assert response.json()["data"]["refund_id"] == "rfnd_1"
        assert mock_refund.await_args.args[1] == Decimal("100")
        assert "Admin refund for payment pay_1" in caplog.text
