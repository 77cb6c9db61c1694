import hashlib
import hmac
import logging
from typing import Any, Dict, Optional

import httpx

from pizzacraft.core.config import (
    GATEWAY_TIMEOUT,
    RAZORPAY_BASE_URL,
    RAZORPAY_KEY_ID,
    RAZORPAY_KEY_SECRET,
)
from pizzacraft.core.exceptions import PaymentGatewayError

log = logging.getLogger(__name__)


def verify_signature(order_id: str, payment_id: str, signature: str,
                     secret: str = RAZORPAY_KEY_SECRET) -> bool:
    """HMAC-SHA256 over ``"{order_id}|{payment_id}"``, compared in constant time."""
    if not (order_id and payment_id and signature):
        return False
    expected = hmac.new(
        secret.encode("utf-8"),
        f"{order_id}|{payment_id}".encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return hmac.compare_digest(expected, signature)


class RazorpayClient:
    """Thin client for the gateway REST API."""

    def __init__(self, key_id: str = RAZORPAY_KEY_ID, key_secret: str = RAZORPAY_KEY_SECRET,
                 base_url: str = RAZORPAY_BASE_URL, timeout: float = GATEWAY_TIMEOUT,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.key_id = key_id
        self.key_secret = key_secret
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def _request(self, method: str, path: str, payload: Optional[dict] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(
                auth=(self.key_id, self.key_secret),
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(method, url, json=payload)
        except httpx.HTTPError as e:
            log.error(f"Payment gateway unreachable ({method} {path}): {e}")
            raise PaymentGatewayError(f"Payment gateway request failed: {e}") from e

        if response.is_success:
            return response.json()

        log.error(f"Payment gateway error {response.status_code} on {method} {path}: {response.text}")
        raise PaymentGatewayError(f"Payment gateway returned {response.status_code}")

    async def create_order(self, amount: int, currency: str, receipt: str) -> Dict[str, Any]:
        """``amount`` is in the smallest currency unit."""
        return await self._request("POST", "/orders", {
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
        })

    async def fetch_payment(self, payment_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/payments/{payment_id}")

    async def refund(self, payment_id: str, amount: Optional[int] = None,
                     notes: Optional[dict] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        if amount is not None:
            payload["amount"] = amount
        if notes:
            payload["notes"] = notes
        return await self._request("POST", f"/payments/{payment_id}/refund", payload)
