# trialhold/payments/fake_provider.py
from __future__ import annotations
from typing import Optional, Dict, Any, List, Tuple
from datetime import datetime, timezone

import stripe

from trialhold.payments.stripe_provider import parse_event

# Stripe test-mode payment method that always declines
DECLINED_PAYMENT_METHOD = "pm_card_chargeDeclined"


class FakeStripeProvider:
    """
    In-memory, protocol-compliant fake for tests/local runs.
    Mirrors the signatures in trialhold.payments.types.PaymentProvider.

    - Customers, payment intents, subscriptions and checkout sessions live in dicts
      keyed by their Stripe-like ids (cus_test_1, pi_test_1, ...).
    - Unknown ids raise stripe.InvalidRequestError, like the real API does.
    - Every call is appended to `calls` as (method, kwargs).
    - `failures[method] = exc` makes the next call to `method` raise `exc`.
    - Webhooks: with a webhook_secret the Stripe-Signature header is verified for real
      (pure HMAC, no network); without one the payload is just parsed as JSON.
    """

    def __init__(self, webhook_secret: Optional[str] = None):
        self.webhook_secret = webhook_secret
        self.customers: Dict[str, Dict[str, Any]] = {}
        self.payment_intents: Dict[str, Dict[str, Any]] = {}
        self.subscriptions: Dict[str, Dict[str, Any]] = {}
        self.sessions: Dict[str, Dict[str, Any]] = {}
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.failures: Dict[str, Exception] = {}
        # simple counters
        self._counters: Dict[str, int] = {}

    # ----------------------- helpers -----------------------

    @staticmethod
    def _now_ts() -> int:
        # wall-clock now in UTC (epoch seconds)
        return int(datetime.now(tz=timezone.utc).timestamp())

    def _next_id(self, prefix: str) -> str:
        self._counters[prefix] = self._counters.get(prefix, 0) + 1
        return f"{prefix}_test_{self._counters[prefix]}"

    def _record(self, method: str, **kwargs: Any) -> None:
        self.calls.append((method, kwargs))
        exc = self.failures.pop(method, None)
        if exc is not None:
            raise exc

    @staticmethod
    def _no_such(kind: str, obj_id: str) -> stripe.InvalidRequestError:
        return stripe.InvalidRequestError(
            f"No such {kind}: '{obj_id}'", "id", code="resource_missing", http_status=404
        )

    def _get(self, store: Dict[str, Dict[str, Any]], kind: str, obj_id: str) -> Dict[str, Any]:
        obj = store.get(obj_id)
        if obj is None:
            raise self._no_such(kind, obj_id)
        return obj

    def called(self, method: str) -> bool:
        return any(name == method for name, _ in self.calls)

    # ---------------- webhooks / signature -----------------

    def verify_signature(self, payload: bytes, sig_header: str) -> Dict[str, Any]:
        return parse_event(payload, sig_header, self.webhook_secret)

    # --------------------- customers -----------------------

    def create_customer(
        self, *, email: str, name: Optional[str] = None, description: Optional[str] = None, metadata: Dict[str, Any] = {}
    ) -> Dict[str, Any]:
        self._record("create_customer", email=email, name=name, description=description, metadata=metadata)
        cid = self._next_id("cus")
        self.customers[cid] = {
            "id": cid,
            "email": email,
            "name": name,
            "description": description,
            "metadata": dict(metadata or {}),
        }
        return {"id": cid, "email": email, "name": name}

    # ------------------- payment intents -------------------

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
        self._record(
            "create_payment_intent",
            amount=amount,
            currency=currency,
            customer_id=customer_id,
            payment_method_id=payment_method_id,
            capture_method=capture_method,
            confirm=confirm,
            off_session=off_session,
            statement_descriptor=statement_descriptor,
            metadata=metadata,
            return_url=return_url,
        )
        if customer_id not in self.customers:
            raise self._no_such("customer", customer_id)
        if payment_method_id == DECLINED_PAYMENT_METHOD:
            raise stripe.CardError("Your card was declined.", None, "card_declined", http_status=402)

        pid = self._next_id("pi")
        if not confirm:
            status = "requires_confirmation"
        elif capture_method == "manual":
            status = "requires_capture"
        else:
            status = "succeeded"
        self.payment_intents[pid] = {
            "id": pid,
            "status": status,
            "amount": amount,
            "currency": currency,
            "client_secret": f"{pid}_secret_fake",
            "customer": customer_id,
            "payment_method": payment_method_id,
            "metadata": dict(metadata or {}),
        }
        return dict(self.payment_intents[pid])

    def cancel_payment_intent(self, payment_intent_id: str) -> Dict[str, Any]:
        self._record("cancel_payment_intent", payment_intent_id=payment_intent_id)
        pi = self._get(self.payment_intents, "payment_intent", payment_intent_id)
        if pi["status"] in ("succeeded", "canceled"):
            raise stripe.InvalidRequestError(
                f"You cannot cancel this PaymentIntent because it has a status of {pi['status']}.",
                None,
                code="payment_intent_unexpected_state",
                http_status=400,
            )
        pi["status"] = "canceled"
        return dict(pi)

    def capture_payment_intent(self, payment_intent_id: str) -> Dict[str, Any]:
        self._record("capture_payment_intent", payment_intent_id=payment_intent_id)
        pi = self._get(self.payment_intents, "payment_intent", payment_intent_id)
        if pi["status"] != "requires_capture":
            raise stripe.InvalidRequestError(
                f"This PaymentIntent could not be captured because it has a status of {pi['status']}.",
                None,
                code="payment_intent_unexpected_state",
                http_status=400,
            )
        pi["status"] = "succeeded"
        return dict(pi)

    def retrieve_payment_intent(self, payment_intent_id: str) -> Dict[str, Any]:
        self._record("retrieve_payment_intent", payment_intent_id=payment_intent_id)
        return dict(self._get(self.payment_intents, "payment_intent", payment_intent_id))

    # ------------------- subscriptions ---------------------

    def create_subscription(
        self,
        *,
        customer_id: str,
        price_id: str,
        trial_days: Optional[int] = None,
        payment_settings: Optional[Dict[str, Any]] = None,
        metadata: Dict[str, Any] = {},
    ) -> Dict[str, Any]:
        self._record(
            "create_subscription",
            customer_id=customer_id,
            price_id=price_id,
            trial_days=trial_days,
            payment_settings=payment_settings,
            metadata=metadata,
        )
        if customer_id not in self.customers:
            raise self._no_such("customer", customer_id)

        sid = self._next_id("sub")
        now = self._now_ts()
        has_trial = bool(trial_days and int(trial_days) > 0)
        self.subscriptions[sid] = {
            "id": sid,
            "customer": customer_id,
            "status": "trialing" if has_trial else "active",
            "trial_start": now if has_trial else None,
            "trial_end": now + int(trial_days) * 24 * 3600 if has_trial else None,
            "canceled_at": None,
            "items": [{"price_id": price_id, "product_id": "prod_fake"}],
            "metadata": dict(metadata or {}),
        }
        return dict(self.subscriptions[sid])

    def retrieve_subscription(self, subscription_id: str) -> Dict[str, Any]:
        self._record("retrieve_subscription", subscription_id=subscription_id)
        return dict(self._get(self.subscriptions, "subscription", subscription_id))

    def cancel_subscription(self, subscription_id: str) -> Dict[str, Any]:
        self._record("cancel_subscription", subscription_id=subscription_id)
        sub = self._get(self.subscriptions, "subscription", subscription_id)
        if sub["status"] == "canceled":
            raise stripe.InvalidRequestError(
                f"No such subscription: '{subscription_id}'", "id", code="resource_missing", http_status=404
            )
        sub["status"] = "canceled"
        sub["canceled_at"] = self._now_ts()
        return dict(sub)

    # --------------------- checkout ------------------------

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
        self._record(
            "create_checkout_session",
            price_id=price_id,
            customer_email=customer_email,
            success_url=success_url,
            cancel_url=cancel_url,
            payment_method_types=payment_method_types,
            trial_days=trial_days,
            subscription_description=subscription_description,
            subscription_metadata=subscription_metadata,
            metadata=metadata,
        )
        sid = self._next_id("cs")
        self.sessions[sid] = {
            "id": sid,
            "url": f"https://checkout.local/pay/{sid}",
            "status": "open",
            "customer": None,
            "subscription": None,
            "total_details": {"amount_discount": 0, "amount_shipping": 0, "amount_tax": 0},
            "payment_status": "unpaid",
            "amount_total": 0,
            "currency": "usd",
        }
        return dict(self.sessions[sid])

    def retrieve_checkout_session(self, session_id: str) -> Dict[str, Any]:
        self._record("retrieve_checkout_session", session_id=session_id)
        return dict(self._get(self.sessions, "checkout.session", session_id))
