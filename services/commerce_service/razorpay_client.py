"""
Razorpay gateway adapter.

Provides:
- Creating remote payment orders (intents) over the REST API
- Checkout signature verification (HMAC-SHA256 over ``order_id|payment_id``)
- Webhook verification and parsing into typed events

The adapter never retries. Callers own retry policy for outbound calls and the
gateway owns redelivery of webhooks.
"""

import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from typing import Optional, Union

import httpx
from libs.common.config import get_settings
from libs.common.currency import DEFAULT_CURRENCY
from services.commerce_service.errors import (
    GatewayUnavailable,
    SignatureInvalid,
    ValidationFailed,
    WebhookSignatureInvalid,
)

logger = logging.getLogger(__name__)

settings = get_settings()


@dataclass
class GatewayOrder:
    """Remote payment order created on Razorpay."""

    id: str
    amount: int  # in paise
    currency: str
    receipt: Optional[str]
    status: str


@dataclass(frozen=True)
class PaymentCaptured:
    payment_id: str
    order_id: Optional[str]
    amount: int  # in paise
    method: Optional[str] = None


@dataclass(frozen=True)
class PaymentFailed:
    payment_id: str
    order_id: Optional[str]
    amount: int  # in paise
    reason: Optional[str] = None


@dataclass(frozen=True)
class OrderPaid:
    order_id: str
    amount: int  # in paise
    payment_id: Optional[str] = None


WebhookEvent = Union[PaymentCaptured, PaymentFailed, OrderPaid]


class RazorpayClient:
    """Async client for the Razorpay Orders API."""

    def __init__(
        self,
        key_id: str = None,
        key_secret: str = None,
        base_url: str = None,
        timeout: float = None,
        transport: httpx.AsyncBaseTransport = None,
    ):
        self.key_id = key_id if key_id is not None else settings.RAZORPAY_KEY_ID
        self.key_secret = (
            key_secret if key_secret is not None else settings.RAZORPAY_KEY_SECRET
        )
        self.base_url = (base_url or settings.RAZORPAY_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.RAZORPAY_TIMEOUT_SECONDS
        self._transport = transport

    async def _request(self, method: str, endpoint: str, json_data: dict = None) -> dict:
        """Make an authenticated request to the Razorpay API."""
        if not self.key_id or not self.key_secret:
            raise GatewayUnavailable("Payment gateway is not configured")

        url = f"{self.base_url}{endpoint}"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                auth=(self.key_id, self.key_secret),
                transport=self._transport,
            ) as client:
                response = await client.request(method=method, url=url, json=json_data)
        except httpx.HTTPError as e:
            logger.error(f"Razorpay request failed: {type(e).__name__}")
            raise GatewayUnavailable("Payment gateway unreachable") from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if not response.is_success:
            error = data.get("error") or {}
            logger.error(
                f"Razorpay API error: {response.status_code} - {error.get('code')}"
            )
            raise GatewayUnavailable(
                error.get("description") or "Payment gateway request failed",
                upstream_status=response.status_code,
            )

        return data

    async def create_intent(
        self, amount: int, currency: str = DEFAULT_CURRENCY, receipt: str = None
    ) -> GatewayOrder:
        """
        Create a remote payment order.

        Args:
            amount: Amount in paise (smallest currency unit)
            currency: ISO currency code
            receipt: Our reference for the order

        Returns:
            GatewayOrder with the gateway-assigned id
        """
        if amount <= 0:
            raise ValidationFailed("Amount must be positive")

        payload = {"amount": amount, "currency": currency}
        if receipt:
            payload["receipt"] = receipt

        data = await self._request("POST", "/orders", json_data=payload)

        logger.info(f"Created Razorpay order {data.get('id')} for {amount} paise")

        return GatewayOrder(
            id=data["id"],
            amount=data.get("amount", amount),
            currency=data.get("currency", currency),
            receipt=data.get("receipt", receipt),
            status=data.get("status", "created"),
        )


def get_razorpay_client() -> RazorpayClient:
    """FastAPI dependency returning a client bound to the configured credentials."""
    return RazorpayClient()


# =========================================================================
# Signatures
# =========================================================================


def _hmac_hex(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_signature(
    remote_order_id: Optional[str],
    remote_payment_id: Optional[str],
    signature: Optional[str],
    secret: Optional[str] = None,
) -> None:
    """
    Check the checkout callback signature. Raises SignatureInvalid on any
    mismatch or missing field.
    """
    secret = secret if secret is not None else settings.RAZORPAY_KEY_SECRET
    if not (remote_order_id and remote_payment_id and signature and secret):
        raise SignatureInvalid()

    expected = _hmac_hex(secret, f"{remote_order_id}|{remote_payment_id}".encode())
    if not hmac.compare_digest(expected, signature):
        raise SignatureInvalid()


def verify_webhook_signature(
    raw_body: bytes, signature_header: Optional[str], webhook_secret: Optional[str]
) -> None:
    """Check the webhook HMAC over the exact raw body bytes."""
    if not signature_header or not webhook_secret:
        raise WebhookSignatureInvalid()

    expected = _hmac_hex(webhook_secret, raw_body)
    if not hmac.compare_digest(expected, signature_header):
        raise WebhookSignatureInvalid()


# =========================================================================
# Webhooks
# =========================================================================


def parse_webhook(
    raw_body: bytes,
    signature_header: Optional[str],
    webhook_secret: Optional[str] = None,
) -> Optional[WebhookEvent]:
    """
    Verify and classify a webhook delivery.

    Returns None for event types this service does not act on.
    """
    webhook_secret = (
        webhook_secret if webhook_secret is not None else settings.RAZORPAY_WEBHOOK_SECRET
    )
    verify_webhook_signature(raw_body, signature_header, webhook_secret)

    try:
        body = json.loads(raw_body)
        event_type = body.get("event")
        payload = body.get("payload") or {}
    except (ValueError, AttributeError) as e:
        raise ValidationFailed("Malformed webhook payload") from e

    try:
        if event_type == "payment.captured":
            payment = payload["payment"]["entity"]
            return PaymentCaptured(
                payment_id=payment["id"],
                order_id=payment.get("order_id"),
                amount=int(payment.get("amount") or 0),
                method=payment.get("method"),
            )

        if event_type == "payment.failed":
            payment = payload["payment"]["entity"]
            return PaymentFailed(
                payment_id=payment["id"],
                order_id=payment.get("order_id"),
                amount=int(payment.get("amount") or 0),
                reason=payment.get("error_description"),
            )

        if event_type == "order.paid":
            order = payload["order"]["entity"]
            payment = (payload.get("payment") or {}).get("entity") or {}
            return OrderPaid(
                order_id=order["id"],
                amount=int(order.get("amount_paid") or order.get("amount") or 0),
                payment_id=payment.get("id"),
            )
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationFailed(f"Malformed {event_type} payload") from e

    logger.info(f"Ignoring unhandled Razorpay event: {event_type}")
    return None
