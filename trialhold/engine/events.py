# trialhold/engine/events.py
from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

import structlog

log = structlog.get_logger(__name__)

# Returned by handlers that only log; persistence, customer notifications and
# reconciliation of failed holds are not wired up yet.
HANDLER_NOT_IMPLEMENTED = "not_implemented"

EventHandler = Callable[[Dict[str, Any]], Awaitable[str]]


def _iso(ts: Optional[int]) -> Optional[str]:
    if ts is None:
        return None
    return datetime.fromtimestamp(int(ts), tz=timezone.utc).isoformat()


def _major_units(amount: Optional[int]) -> Optional[float]:
    return amount / 100 if amount is not None else None


def _currency(obj: Dict[str, Any]) -> Optional[str]:
    cur = obj.get("currency")
    return cur.upper() if isinstance(cur, str) else None


# -------------------- payment intents --------------------

async def handle_payment_intent_succeeded(payment_intent: Dict[str, Any]) -> str:
    log.info(
        "payment_intent_succeeded",
        payment_intent_id=payment_intent.get("id"),
        amount=_major_units(payment_intent.get("amount")),
        currency=_currency(payment_intent),
        customer=payment_intent.get("customer"),
        status=payment_intent.get("status"),
    )
    return HANDLER_NOT_IMPLEMENTED


async def handle_payment_intent_failed(payment_intent: Dict[str, Any]) -> str:
    last_error = payment_intent.get("last_payment_error") or {}
    log.warning(
        "payment_intent_failed",
        payment_intent_id=payment_intent.get("id"),
        error=last_error.get("message"),
        customer=payment_intent.get("customer"),
    )
    return HANDLER_NOT_IMPLEMENTED


async def handle_payment_intent_canceled(payment_intent: Dict[str, Any]) -> str:
    log.info(
        "payment_intent_canceled",
        payment_intent_id=payment_intent.get("id"),
        amount=_major_units(payment_intent.get("amount")),
        currency=_currency(payment_intent),
        customer=payment_intent.get("customer"),
    )
    return HANDLER_NOT_IMPLEMENTED


# -------------------- subscriptions --------------------

async def handle_subscription_created(subscription: Dict[str, Any]) -> str:
    items = (subscription.get("items") or {}).get("data") or []
    log.info(
        "subscription_created",
        subscription_id=subscription.get("id"),
        customer=subscription.get("customer"),
        trial_start=_iso(subscription.get("trial_start")),
        trial_end=_iso(subscription.get("trial_end")),
        items=len(items),
    )
    return HANDLER_NOT_IMPLEMENTED


async def handle_subscription_updated(subscription: Dict[str, Any]) -> str:
    log.info(
        "subscription_updated",
        subscription_id=subscription.get("id"),
        status=subscription.get("status"),
        current_period_end=_iso(subscription.get("current_period_end")),
    )
    return HANDLER_NOT_IMPLEMENTED


async def handle_subscription_deleted(subscription: Dict[str, Any]) -> str:
    log.info(
        "subscription_deleted",
        subscription_id=subscription.get("id"),
        customer=subscription.get("customer"),
    )
    return HANDLER_NOT_IMPLEMENTED


async def handle_trial_will_end(subscription: Dict[str, Any]) -> str:
    # Stripe sends this three days before trial_end
    log.warning(
        "subscription_trial_will_end",
        subscription_id=subscription.get("id"),
        trial_end=_iso(subscription.get("trial_end")),
        customer=subscription.get("customer"),
    )
    return HANDLER_NOT_IMPLEMENTED


EVENT_HANDLERS: Dict[str, EventHandler] = {
    "payment_intent.succeeded": handle_payment_intent_succeeded,
    "payment_intent.payment_failed": handle_payment_intent_failed,
    "payment_intent.canceled": handle_payment_intent_canceled,
    "customer.subscription.created": handle_subscription_created,
    "customer.subscription.updated": handle_subscription_updated,
    "customer.subscription.deleted": handle_subscription_deleted,
    "customer.subscription.trial_will_end": handle_trial_will_end,
}


async def dispatch_event(
    event: Dict[str, Any], handlers: Mapping[str, EventHandler] = EVENT_HANDLERS
) -> Optional[str]:
    """
    Route a verified event to its handler by exact `type` match.
    Returns the handler's marker, or None when the type is not handled.
    """
    event_type = event.get("type")
    data = event.get("data")
    obj = data.get("object") if isinstance(data, dict) else None
    if not isinstance(obj, dict):
        obj = {}

    handler = handlers.get(event_type) if isinstance(event_type, str) else None
    if handler is None:
        log.info("webhook_event_unhandled", event_type=event_type, event_id=event.get("id"))
        return None
    return await handler(obj)
