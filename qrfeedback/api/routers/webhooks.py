"""
Webhooks router for Razorpay subscription events.

Verifies the HMAC signature over the raw request body before parsing, then
dispatches the event to its idempotent handler. Razorpay retries on any
non-2xx response, so only signature failures, malformed payloads and
internal errors produce one; unhandled event types are acknowledged.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse
from sqlmodel import Session
import structlog

from qrfeedback.api.services.webhook_events import (
    WebhookDispatcher,
    event_name,
    parse_event,
    verify_signature,
)
from qrfeedback.core.config import BillingConfig, utcnow
from qrfeedback.core.exceptions import ValidationError
from qrfeedback.core.metrics import increment_signature_failures, increment_webhook_events
from qrfeedback.db.payment_store import PaymentStore
from qrfeedback.db.session import get_session
from qrfeedback.gateway import get_billing_config

router = APIRouter(tags=["webhooks"])
logger = structlog.get_logger(__name__)


@router.post("/subscription-webhook")
async def subscription_webhook(
    request: Request,
    x_razorpay_signature: Optional[str] = Header(None),
    session: Session = Depends(get_session),
    config: BillingConfig = Depends(get_billing_config),
):
    """
    Handle Razorpay subscription webhooks.

    Expected Razorpay event format:
    {
        "event": "subscription.activated",
        "payload": {
            "subscription": {"entity": {"id": "sub_...", "current_start": 1700000000, ...}},
            "payment": {"entity": {"id": "pay_...", "subscription_id": "sub_..."}}
        }
    }
    """
    # Raw payload, signature is computed over these exact bytes
    payload = await request.body()

    if not verify_signature(payload, x_razorpay_signature, config.webhook_secret):
        logger.warning("Invalid Razorpay signature", has_signature=bool(x_razorpay_signature))
        increment_signature_failures()
        return JSONResponse(status_code=400, content={"success": False})

    try:
        event = parse_event(payload)
    except ValidationError as e:
        logger.error("Failed to parse Razorpay webhook", error=e.message)
        increment_webhook_events("invalid", "error")
        return JSONResponse(status_code=500, content={"success": False})

    event_type = event_name(event)
    logger.info("Razorpay webhook verified", event_type=event_type)

    try:
        result = WebhookDispatcher(PaymentStore(session)).dispatch(event)
    except Exception as e:
        logger.error("Failed to process Razorpay webhook", event_type=event_type, error=str(e))
        increment_webhook_events(event_type, "error")
        return JSONResponse(status_code=500, content={"success": False})

    increment_webhook_events(event_type, result["action"])
    logger.info("Processed Razorpay webhook", event_type=event_type, result=result)
    return {"success": True}


# Health check endpoint for webhook monitoring
@router.get("/subscription-webhook/health")
async def webhook_health(config: BillingConfig = Depends(get_billing_config)):
    """Health check for webhook endpoints."""
    return {
        "status": "healthy",
        "timestamp": utcnow().isoformat(),
        "signature_verification": "enabled" if config.webhook_secret else "misconfigured"
    }
