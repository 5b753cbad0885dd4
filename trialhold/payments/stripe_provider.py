from __future__ import annotations
from typing import Optional, Dict, Any, List
import json
import stripe
import structlog

from trialhold.core.errors import WebhookSignatureError

log = structlog.get_logger(__name__)


def to_dict(obj: Any) -> Dict[str, Any]:
    """
    Normalize Stripe SDK objects and plain dicts to a plain dict.
    """
    if obj is None:
        return {}
    if isinstance(obj, dict) and not hasattr(obj, "to_dict"):
        return obj
    # Older SDKs only recurse via to_dict_recursive(); newer ones via to_dict()
    to_dict_recursive = getattr(obj, "to_dict_recursive", None)
    if callable(to_dict_recursive):
        return to_dict_recursive()
    return obj.to_dict()


def parse_event(payload: Any, sig_header: Optional[str], secret: Optional[str]) -> Dict[str, Any]:
    """
    Verify the Stripe-Signature header (when a secret is set) and parse the event body.
    Anything that is not a JSON object is rejected like a bad signature.
    """
    if isinstance(payload, (bytes, bytearray)):
        payload = payload.decode("utf-8")
    try:
        if secret:
            stripe.WebhookSignature.verify_header(
                payload, sig_header or "", secret, stripe.Webhook.DEFAULT_TOLERANCE
            )
        event = json.loads(payload)
    except stripe.SignatureVerificationError as e:
        raise WebhookSignatureError(str(e)) from e
    except ValueError as e:
        raise WebhookSignatureError(f"Invalid payload: {e}") from e
    if not isinstance(event, dict):
        raise WebhookSignatureError("Malformed event payload")
    return event


def _epoch(value: Any) -> Optional[int]:
    return int(value) if value else None


def _payment_intent(pi: Any) -> Dict[str, Any]:
    d = to_dict(pi)
    return {
        "id": d["id"],
        "status": d.get("status"),
        "amount": d.get("amount"),
        "currency": d.get("currency"),
        "client_secret": d.get("client_secret"),
        "customer": d.get("customer"),
        "payment_method": d.get("payment_method"),
        "metadata": dict(d.get("metadata") or {}),
    }


def _subscription(sub: Any) -> Dict[str, Any]:
    d = to_dict(sub)
    items: List[Dict[str, Any]] = []
    for item in (d.get("items") or {}).get("data") or []:
        price = item.get("price") or {}
        product = price.get("product")
        # product is an id unless the request expanded it
        if isinstance(product, dict):
            product = product.get("id")
        items.append({"price_id": price.get("id"), "product_id": product})
    return {
        "id": d["id"],
        "customer": d.get("customer"),
        "status": d.get("status"),
        "trial_start": _epoch(d.get("trial_start")),
        "trial_end": _epoch(d.get("trial_end")),
        "canceled_at": _epoch(d.get("canceled_at")),
        "items": items,
        "metadata": dict(d.get("metadata") or {}),
    }


def _checkout_session(session: Any) -> Dict[str, Any]:
    d = to_dict(session)
    return {
        "id": d["id"],
        "url": d.get("url"),
        "status": d.get("status"),
        "customer": d.get("customer"),
        "subscription": d.get("subscription"),
        "total_details": d.get("total_details"),
        "payment_status": d.get("payment_status"),
        "amount_total": d.get("amount_total"),
        "currency": d.get("currency"),
    }


class StripePaymentProvider:
    def __init__(self, api_key: str, webhook_secret: str):
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        stripe.api_key = api_key
        log.info("stripe_provider_initialized", test_mode=api_key.startswith("sk_test_"))

    # --- webhooks/signature ---
    def verify_signature(self, payload: bytes, sig_header: str) -> Dict[str, Any]:
        return parse_event(payload, sig_header, self.webhook_secret)

    # --- customers ---
    def create_customer(
        self,
        *,
        email: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        metadata: Dict[str, Any] = {},
    ) -> Dict[str, Any]:
        customer = stripe.Customer.create(
            email=email,
            name=name,
            description=description,
            metadata=metadata or {},
        )
        d = to_dict(customer)
        return {"id": d["id"], "email": d.get("email"), "name": d.get("name")}

    # --- payment intents ---
    def create_payment_intent(
        self,
        *,
        amount: int,
        currency: str,
        customer_id: str,
        payment_method_id: str,
        capture_method: str = "manual",
        confirm: bool = True,
        off_session: bool = True,
        statement_descriptor: Optional[str] = None,
        metadata: Dict[str, Any] = {},
        return_url: Optional[str] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = dict(
            amount=amount,
            currency=currency,
            customer=customer_id,
            payment_method=payment_method_id,
            confirm=confirm,
            off_session=off_session,
            capture_method=capture_method,
            metadata=metadata or {},
        )
        if statement_descriptor:
            params["statement_descriptor"] = statement_descriptor
        if return_url:
            params["return_url"] = return_url
        return _payment_intent(stripe.PaymentIntent.create(**params))

    def cancel_payment_intent(self, payment_intent_id: str) -> Dict[str, Any]:
        return _payment_intent(stripe.PaymentIntent.cancel(payment_intent_id))

    def capture_payment_intent(self, payment_intent_id: str) -> Dict[str, Any]:
        return _payment_intent(stripe.PaymentIntent.capture(payment_intent_id))

    def retrieve_payment_intent(self, payment_intent_id: str) -> Dict[str, Any]:
        return _payment_intent(stripe.PaymentIntent.retrieve(payment_intent_id))

    # --- subscriptions ---
    def create_subscription(
        self,
        *,
        customer_id: str,
        price_id: str,
        trial_days: Optional[int] = None,
        payment_settings: Optional[Dict[str, Any]] = None,
        metadata: Dict[str, Any] = {},
    ) -> Dict[str, Any]:
        sub_params: Dict[str, Any] = dict(
            customer=customer_id,
            items=[{"price": price_id}],
            metadata=metadata or {},
        )
        if trial_days and trial_days > 0:
            sub_params["trial_period_days"] = trial_days
        if payment_settings:
            sub_params["payment_settings"] = payment_settings
        return _subscription(stripe.Subscription.create(**sub_params))

    def retrieve_subscription(self, subscription_id: str) -> Dict[str, Any]:
        return _subscription(stripe.Subscription.retrieve(subscription_id))

    def cancel_subscription(self, subscription_id: str) -> Dict[str, Any]:
        return _subscription(stripe.Subscription.cancel(subscription_id))

    # --- checkout ---
    def create_checkout_session(
        self,
        *,
        price_id: str,
        customer_email: str,
        success_url: str,
        cancel_url: str,
        payment_method_types: List[str] = ["card"],
        trial_days: Optional[int] = None,
        subscription_description: Optional[str] = None,
        subscription_metadata: Dict[str, Any] = {},
        metadata: Dict[str, Any] = {},
    ) -> Dict[str, Any]:
        subscription_data: Dict[str, Any] = {"metadata": subscription_metadata or {}}
        if trial_days and trial_days > 0:
            subscription_data["trial_period_days"] = trial_days
        if subscription_description:
            subscription_data["description"] = subscription_description
        session = stripe.checkout.Session.create(
            mode="subscription",
            payment_method_types=list(payment_method_types),
            line_items=[{"price": price_id, "quantity": 1}],
            customer_email=customer_email,
            success_url=success_url,
            cancel_url=cancel_url,
            subscription_data=subscription_data,
            metadata=metadata or {},
        )
        return _checkout_session(session)

    def retrieve_checkout_session(self, session_id: str) -> Dict[str, Any]:
        return _checkout_session(stripe.checkout.Session.retrieve(session_id))
