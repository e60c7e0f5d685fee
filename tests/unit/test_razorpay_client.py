"""Unit tests for the Razorpay adapter: signatures, webhook parsing, intents."""

import hashlib
import hmac
import json

import httpx
import pytest
from services.commerce_service.errors import (
    GatewayUnavailable,
    SignatureInvalid,
    ValidationFailed,
    WebhookSignatureInvalid,
)
from services.commerce_service.razorpay_client import (
    OrderPaid,
    PaymentCaptured,
    PaymentFailed,
    RazorpayClient,
    parse_webhook,
    verify_signature,
)

KEY_SECRET = "unit-key-secret"
WEBHOOK_SECRET = "unit-webhook-secret"


def _sign(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def _webhook(event: str, payload: dict) -> tuple[bytes, str]:
    raw = json.dumps({"event": event, "payload": payload}).encode()
    return raw, _sign(WEBHOOK_SECRET, raw)


def _client(handler) -> RazorpayClient:
    return RazorpayClient(
        key_id="rzp_unit",
        key_secret=KEY_SECRET,
        base_url="https://gateway.test/v1",
        transport=httpx.MockTransport(handler),
    )


# ---------------------------------------------------------------------------
# Checkout signature
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_verify_signature_accepts_valid_hmac():
    signature = _sign(KEY_SECRET, b"order_A|pay_B")
    verify_signature("order_A", "pay_B", signature, secret=KEY_SECRET)


@pytest.mark.unit
@pytest.mark.parametrize(
    "order_id, payment_id, signature",
    [
        ("order_A", "pay_B", "0" * 64),
        ("order_A", "pay_C", None),
        (None, "pay_B", "abc"),
        ("order_A", "", "abc"),
    ],
)
def test_verify_signature_rejects_bad_input(order_id, payment_id, signature):
    with pytest.raises(SignatureInvalid):
        verify_signature(order_id, payment_id, signature, secret=KEY_SECRET)


@pytest.mark.unit
def test_verify_signature_fails_closed_without_secret():
    signature = _sign("", b"order_A|pay_B")
    with pytest.raises(SignatureInvalid):
        verify_signature("order_A", "pay_B", signature, secret="")


@pytest.mark.unit
def test_signature_for_other_payment_is_rejected():
    """A valid signature is bound to its own order/payment pair."""
    signature = _sign(KEY_SECRET, b"order_A|pay_B")
    with pytest.raises(SignatureInvalid):
        verify_signature("order_A", "pay_X", signature, secret=KEY_SECRET)


# ---------------------------------------------------------------------------
# Webhook parsing
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_parse_payment_captured():
    raw, signature = _webhook(
        "payment.captured",
        {
            "payment": {
                "entity": {
                    "id": "pay_1",
                    "order_id": "order_1",
                    "amount": 108000,
                    "method": "upi",
                }
            }
        },
    )

    event = parse_webhook(raw, signature, WEBHOOK_SECRET)

    assert event == PaymentCaptured(
        payment_id="pay_1", order_id="order_1", amount=108000, method="upi"
    )


@pytest.mark.unit
def test_parse_payment_failed_keeps_reason():
    raw, signature = _webhook(
        "payment.failed",
        {
            "payment": {
                "entity": {
                    "id": "pay_2",
                    "order_id": "order_2",
                    "amount": 5000,
                    "error_description": "Card declined",
                }
            }
        },
    )

    event = parse_webhook(raw, signature, WEBHOOK_SECRET)

    assert isinstance(event, PaymentFailed)
    assert event.reason == "Card declined"


@pytest.mark.unit
def test_parse_order_paid_uses_amount_paid():
    raw, signature = _webhook(
        "order.paid",
        {
            "order": {"entity": {"id": "order_3", "amount": 9000, "amount_paid": 9000}},
            "payment": {"entity": {"id": "pay_3"}},
        },
    )

    event = parse_webhook(raw, signature, WEBHOOK_SECRET)

    assert event == OrderPaid(order_id="order_3", amount=9000, payment_id="pay_3")


@pytest.mark.unit
def test_unhandled_event_returns_none():
    raw, signature = _webhook("refund.processed", {})
    assert parse_webhook(raw, signature, WEBHOOK_SECRET) is None


@pytest.mark.unit
def test_tampered_body_is_rejected():
    raw, signature = _webhook(
        "payment.captured",
        {"payment": {"entity": {"id": "pay_1", "amount": 100}}},
    )
    tampered = raw.replace(b"100", b"1")

    with pytest.raises(WebhookSignatureInvalid):
        parse_webhook(tampered, signature, WEBHOOK_SECRET)


@pytest.mark.unit
def test_missing_signature_header_is_rejected():
    raw, _ = _webhook("payment.captured", {})
    with pytest.raises(WebhookSignatureInvalid):
        parse_webhook(raw, None, WEBHOOK_SECRET)


@pytest.mark.unit
def test_malformed_payload_after_valid_signature():
    raw, signature = _webhook("payment.captured", {"payment": {}})
    with pytest.raises(ValidationFailed):
        parse_webhook(raw, signature, WEBHOOK_SECRET)


# ---------------------------------------------------------------------------
# create_intent
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_intent_posts_paise_with_basic_auth():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["auth"] = request.headers.get("authorization")
        captured["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "id": "order_R1",
                "amount": 108000,
                "currency": "INR",
                "receipt": "rcpt_1",
                "status": "created",
            },
        )

    gateway_order = await _client(handler).create_intent(108000, "INR", "rcpt_1")

    assert gateway_order.id == "order_R1"
    assert gateway_order.amount == 108000
    assert gateway_order.status == "created"
    assert captured["url"] == "https://gateway.test/v1/orders"
    assert captured["auth"].startswith("Basic ")
    assert captured["body"] == {"amount": 108000, "currency": "INR", "receipt": "rcpt_1"}


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_intent_gateway_error_is_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400,
            json={"error": {"code": "BAD_REQUEST_ERROR", "description": "Bad amount"}},
        )

    with pytest.raises(GatewayUnavailable) as exc_info:
        await _client(handler).create_intent(100)

    assert exc_info.value.status_code == 502
    assert exc_info.value.message == "Bad amount"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_intent_transport_failure_is_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(GatewayUnavailable):
        await _client(handler).create_intent(100)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_intent_rejects_non_positive_amount():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    with pytest.raises(ValidationFailed):
        await _client(handler).create_intent(0)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unconfigured_client_is_unavailable():
    client = RazorpayClient(key_id="", key_secret="")
    with pytest.raises(GatewayUnavailable):
        await client.create_intent(100)
