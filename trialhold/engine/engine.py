from __future__ import annotations
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

import structlog

from trialhold.engine import policy
from trialhold.payments.types import PaymentProvider  # interface for stripe/fake

log = structlog.get_logger(__name__)

# Called with (failed_step, completed_results, error) when a signup step fails
CompensationHook = Callable[[str, Dict[str, Any], Exception], None]


def _now_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat()


@contextmanager
def _provider_call(event: str, **fields: Any) -> Iterator[None]:
    """Log provider failures under `event` and re-raise them unchanged."""
    try:
        yield
    except Exception as e:
        log.error(event, error=str(e), error_type=type(e).__name__, **fields)
        raise


class AuthorizationEngine:
    """
    Authorization-hold lifecycle on top of manual-capture PaymentIntents.

    A hold is always placed for policy.AUTH_HOLD_AMOUNT; callers cannot choose
    the amount.
    """

    def __init__(self, stripe: PaymentProvider, return_url: Optional[str] = None):
        self.stripe = stripe
        self.return_url = return_url

    def create_hold(self, customer_id: str, payment_method_id: str) -> Dict[str, Any]:
        with _provider_call("authorization_hold_create_failed", customer_id=customer_id):
            pi = self.stripe.create_payment_intent(
                amount=policy.AUTH_HOLD_AMOUNT,
                currency=policy.AUTH_HOLD_CURRENCY,
                customer_id=customer_id,
                payment_method_id=payment_method_id,
                capture_method="manual",
                confirm=True,
                off_session=True,
                statement_descriptor=policy.HOLD_STATEMENT_DESCRIPTOR,
                metadata={"type": policy.HOLD_METADATA_TYPE, "timestamp": _now_iso()},
                return_url=self.return_url,
            )
        log.info("authorization_hold_created", payment_intent_id=pi["id"], status=pi["status"])
        return {
            "success": True,
            "paymentIntentId": pi["id"],
            "status": pi["status"],
            "amount": pi["amount"],
            "currency": pi["currency"],
            "clientSecret": pi.get("client_secret"),
        }

    def release_hold(self, payment_intent_id: str) -> Dict[str, Any]:
        with _provider_call("authorization_hold_release_failed", payment_intent_id=payment_intent_id):
            pi = self.stripe.cancel_payment_intent(payment_intent_id)
        return {
            "success": True,
            "paymentIntentId": pi["id"],
            "status": pi["status"],
            "message": "Authorization hold released successfully",
        }

    def capture_hold(self, payment_intent_id: str) -> Dict[str, Any]:
        with _provider_call("authorization_hold_capture_failed", payment_intent_id=payment_intent_id):
            pi = self.stripe.capture_payment_intent(payment_intent_id)
        return {
            "success": True,
            "paymentIntentId": pi["id"],
            "status": pi["status"],
            "amount": pi["amount"],
            "message": "Authorization hold captured successfully",
        }

    def get_status(self, payment_intent_id: str) -> Dict[str, Any]:
        with _provider_call("authorization_status_failed", payment_intent_id=payment_intent_id):
            pi = self.stripe.retrieve_payment_intent(payment_intent_id)
        return {
            "paymentIntentId": pi["id"],
            "status": pi["status"],
            "amount": pi["amount"],
            "currency": pi["currency"],
            "customer": pi.get("customer"),
            "paymentMethod": pi.get("payment_method"),
            "metadata": pi.get("metadata") or {},
        }


class SubscriptionEngine:
    """Customers and fixed-length trial subscriptions."""

    def __init__(self, stripe: PaymentProvider):
        self.stripe = stripe

    def create_customer(
        self, *, email: str, name: Optional[str] = None, description: Optional[str] = None
    ) -> Dict[str, Any]:
        with _provider_call("customer_create_failed"):
            customer = self.stripe.create_customer(
                email=email,
                name=name,
                description=description or policy.DEFAULT_CUSTOMER_DESCRIPTION,
                metadata={"signup_date": _now_iso(), "source": policy.CUSTOMER_SOURCE},
            )
        log.info("customer_created", customer_id=customer["id"])
        return {
            "customerId": customer["id"],
            "email": customer["email"],
            "name": customer.get("name"),
        }

    def create_free_trial(self, customer_id: str, price_id: str) -> Dict[str, Any]:
        with _provider_call("subscription_create_failed", customer_id=customer_id, price_id=price_id):
            sub = self.stripe.create_subscription(
                customer_id=customer_id,
                price_id=price_id,
                trial_days=policy.TRIAL_PERIOD_DAYS,
                payment_settings={"save_default_payment_method": "on_subscription"},
                metadata={
                    "trial_type": policy.SUBSCRIPTION_TRIAL_TYPE,
                    "auth_hold_amount": policy.AUTH_HOLD_AMOUNT,
                },
            )
        log.info("trial_subscription_created", subscription_id=sub["id"], status=sub["status"])
        return {
            "subscriptionId": sub["id"],
            "customerId": sub["customer"],
            "status": sub["status"],
            "trialStart": sub.get("trial_start"),
            "trialEnd": sub.get("trial_end"),
        }

    def get_details(self, subscription_id: str) -> Dict[str, Any]:
        with _provider_call("subscription_retrieve_failed", subscription_id=subscription_id):
            sub = self.stripe.retrieve_subscription(subscription_id)
        return {
            "subscriptionId": sub["id"],
            "customerId": sub["customer"],
            "status": sub["status"],
            "trialEnd": sub.get("trial_end"),
            "items": [
                {"priceId": item["price_id"], "productId": item.get("product_id")}
                for item in sub.get("items") or []
            ],
        }

    def cancel(self, subscription_id: str) -> Dict[str, Any]:
        with _provider_call("subscription_cancel_failed", subscription_id=subscription_id):
            sub = self.stripe.cancel_subscription(subscription_id)
        return {
            "success": True,
            "subscriptionId": sub["id"],
            "status": sub["status"],
            "cancelledAt": sub.get("canceled_at"),
        }


class CheckoutEngine:
    """Hosted Checkout for the trial offer."""

    def __init__(self, stripe: PaymentProvider):
        self.stripe = stripe

    def create_session(
        self, *, price_id: str, customer_email: str, success_url: str, cancel_url: str
    ) -> Dict[str, Any]:
        with _provider_call("checkout_session_create_failed", price_id=price_id):
            session = self.stripe.create_checkout_session(
                price_id=price_id,
                customer_email=customer_email,
                success_url=success_url,
                cancel_url=cancel_url,
                payment_method_types=["card"],
                trial_days=policy.TRIAL_PERIOD_DAYS,
                subscription_description=policy.checkout_trial_description(),
                subscription_metadata={
                    "auth_hold_amount": policy.AUTH_HOLD_AMOUNT,
                    "type": policy.CHECKOUT_SUBSCRIPTION_TYPE,
                },
                metadata={
                    "auth_hold_amount": policy.AUTH_HOLD_AMOUNT,
                    "type": policy.CHECKOUT_METADATA_TYPE,
                },
            )
        return {"sessionId": session["id"], "url": session["url"]}

    def get_session(self, session_id: str) -> Dict[str, Any]:
        with _provider_call("checkout_session_retrieve_failed", session_id=session_id):
            session = self.stripe.retrieve_checkout_session(session_id)
        return {
            "sessionId": session["id"],
            "status": session.get("status") or "open",
            "customerId": session.get("customer"),
            "subscriptionId": session.get("subscription"),
            "totalDetails": session.get("total_details"),
            "paymentStatus": session.get("payment_status"),
            "amountTotal": session.get("amount_total"),
            "currency": session.get("currency"),
        }


class SignupEngine:
    """
    Customer -> authorization hold -> trial subscription, in that order.

    Steps run sequentially and stop at the first failure. Nothing already created
    at the provider is rolled back; `compensations` are called with the failed
    step name, the results gathered so far and the error, and the error is then
    re-raised unchanged. No compensation is installed by default.
    """

    def __init__(
        self,
        stripe: PaymentProvider,
        return_url: Optional[str] = None,
        compensations: Sequence[CompensationHook] = (),
    ):
        self.subscriptions = SubscriptionEngine(stripe)
        self.authorizations = AuthorizationEngine(stripe, return_url=return_url)
        self.compensations: List[CompensationHook] = list(compensations)

    def _compensate(self, step: str, completed: Dict[str, Any], error: Exception) -> None:
        log.warning(
            "signup_step_failed",
            step=step,
            completed=sorted(completed),
            customer_id=(completed.get("customer") or {}).get("customerId"),
        )
        for hook in self.compensations:
            hook(step, dict(completed), error)

    def create_customer_with_auth_hold_and_trial(
        self, *, name: str, email: str, payment_method_id: str, price_id: str
    ) -> Dict[str, Any]:
        completed: Dict[str, Any] = {}

        customer = self.subscriptions.create_customer(
            name=name,
            email=email,
            description=f"{policy.DEFAULT_CUSTOMER_DESCRIPTION} - {_now_iso()}",
        )
        completed["customer"] = customer

        try:
            hold = self.authorizations.create_hold(customer["customerId"], payment_method_id)
        except Exception as e:
            self._compensate("authorization_hold", completed, e)
            raise
        completed["authorizationHold"] = hold

        try:
            subscription = self.subscriptions.create_free_trial(customer["customerId"], price_id)
        except Exception as e:
            self._compensate("subscription", completed, e)
            raise

        return {
            "customer": {
                "customerId": customer["customerId"],
                "email": customer["email"],
                "name": customer["name"],
            },
            "authorizationHold": {
                "paymentIntentId": hold["paymentIntentId"],
                "status": hold["status"],
                "amount": hold["amount"],
            },
            "subscription": {
                "subscriptionId": subscription["subscriptionId"],
                "status": subscription["status"],
                "trialEnd": subscription["trialEnd"],
            },
        }
