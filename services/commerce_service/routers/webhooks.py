"""Razorpay webhook receiver."""

from fastapi import APIRouter, Depends, Request
from libs.common.config import get_settings
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.commerce_service.errors import WebhookSignatureInvalid
from services.commerce_service.razorpay_client import parse_webhook
from services.commerce_service.services import order_lifecycle
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/orders", tags=["webhooks"])
settings = get_settings()
logger = get_logger(__name__)


@router.post("/razorpay-webhook")
async def razorpay_webhook(
    request: Request,
    db: AsyncSession = Depends(get_async_db),
):
    """
    Razorpay webhook endpoint (no auth; verified by x-razorpay-signature).

    Signature is checked against the raw body bytes before anything is parsed.
    Deliveries for unknown orders or unhandled events are acknowledged so the
    gateway stops redelivering them.
    """
    raw = await request.body()
    signature = request.headers.get("x-razorpay-signature")
    try:
        event = parse_webhook(raw, signature, settings.RAZORPAY_WEBHOOK_SECRET)
    except WebhookSignatureInvalid:
        logger.warning("Rejected Razorpay webhook with invalid signature")
        raise

    if event is not None:
        await order_lifecycle.apply_webhook_event(db, event)
    return {"status": "ok"}
