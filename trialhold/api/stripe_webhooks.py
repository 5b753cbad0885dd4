# trialhold/api/stripe_webhooks.py
from __future__ import annotations

from typing import Any, Dict

import structlog
from fastapi import APIRouter, Request, Header, Depends
from fastapi.responses import JSONResponse

from trialhold.core.deps import get_event_handlers, get_stripe_provider
from trialhold.core.errors import WebhookSignatureError
from trialhold.engine.events import dispatch_event

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/webhook", tags=["Stripe"])


# -------------------- webhook --------------------

@router.post("/stripe")
async def webhook(
    request: Request,
    stripe_signature: str = Header(None, alias="Stripe-Signature"),
    provider = Depends(get_stripe_provider),
    handlers = Depends(get_event_handlers),
):
    """
    Verifies the Stripe signature over the raw body, then dispatches by event type.
    No dedupe: every delivery attempt is handled.
    """
    payload = await request.body()

    # Signature is required whenever the provider has a secret to check it against
    if getattr(provider, "webhook_secret", None) and not stripe_signature:
        raise WebhookSignatureError("Missing Stripe-Signature header")

    try:
        event: Dict[str, Any] = provider.verify_signature(payload, stripe_signature or "")
    except WebhookSignatureError as e:
        log.warning("webhook_signature_invalid", error=str(e))
        raise

    try:
        await dispatch_event(event, handlers)
    except Exception as e:
        # 5xx makes Stripe redeliver the event later
        log.error("webhook_handler_failed", event_type=event.get("type"), event_id=event.get("id"), exc_info=e)
        return JSONResponse({"error": "Webhook processing failed"}, status_code=500)

    return {"received": True}
