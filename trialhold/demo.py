# trialhold/demo.py
"""
Walkthrough client for a running service: signup with hold and trial, status,
subscription details, then optionally release, checkout and cancel.

    trialhold-demo --base-url http://localhost:5000/api --price-id price_...

Uses Stripe test-mode payment methods; pass a real test price id.
"""
from __future__ import annotations

import argparse
from typing import Any, Dict, Optional

import httpx
import structlog

from trialhold.core.logger import setup_logging

log = structlog.get_logger(__name__)

DEFAULT_BASE_URL = "http://localhost:5000/api"


def _data(resp: httpx.Response) -> Dict[str, Any]:
    resp.raise_for_status()
    return resp.json()["data"]


def signup_flow(client: httpx.Client, *, name: str, email: str, payment_method_id: str, price_id: str) -> Dict[str, str]:
    data = _data(
        client.post(
            "/subscription/create-with-auth-hold",
            json={"name": name, "email": email, "paymentMethodId": payment_method_id, "priceId": price_id},
        )
    )
    ids = {
        "customerId": data["customer"]["customerId"],
        "paymentIntentId": data["authorizationHold"]["paymentIntentId"],
        "subscriptionId": data["subscription"]["subscriptionId"],
    }
    log.info("demo_signup_complete", hold_status=data["authorizationHold"]["status"],
             trial_end=data["subscription"]["trialEnd"], **ids)
    return ids


def checkout_flow(client: httpx.Client, *, price_id: str, email: str, success_url: str, cancel_url: str) -> Dict[str, Any]:
    data = _data(
        client.post(
            "/checkout/create-session",
            json={"priceId": price_id, "customerEmail": email, "successUrl": success_url, "cancelUrl": cancel_url},
        )
    )
    log.info("demo_checkout_session", session_id=data["sessionId"], url=data["url"])
    return data


def authorization_status(client: httpx.Client, payment_intent_id: str) -> Dict[str, Any]:
    data = _data(client.get(f"/authorization/status/{payment_intent_id}"))
    log.info(
        "demo_authorization_status",
        payment_intent_id=data["paymentIntentId"],
        status=data["status"],
        amount=f"{data['amount'] / 100:.2f} {data['currency'].upper()}",
    )
    return data


def release_flow(client: httpx.Client, payment_intent_id: str) -> Dict[str, Any]:
    data = _data(client.post("/authorization/release", json={"paymentIntentId": payment_intent_id}))
    log.info("demo_hold_released", payment_intent_id=payment_intent_id, status=data["status"])
    return data


def subscription_details(client: httpx.Client, subscription_id: str) -> Dict[str, Any]:
    data = _data(client.get(f"/subscription/details/{subscription_id}"))
    log.info("demo_subscription_details", **data)
    return data


def cancel_flow(client: httpx.Client, subscription_id: str) -> Dict[str, Any]:
    data = _data(client.delete(f"/subscription/cancel/{subscription_id}"))
    log.info("demo_subscription_cancelled", subscription_id=subscription_id, status=data["status"])
    return data


def run_demo(
    client: httpx.Client,
    *,
    price_id: str,
    name: str = "Jane Smith",
    email: str = "jane.smith@example.com",
    payment_method_id: str = "pm_card_visa",
    release: bool = False,
    cancel: bool = False,
    success_url: Optional[str] = None,
    cancel_url: Optional[str] = None,
) -> Dict[str, str]:
    ids = signup_flow(client, name=name, email=email, payment_method_id=payment_method_id, price_id=price_id)
    authorization_status(client, ids["paymentIntentId"])
    subscription_details(client, ids["subscriptionId"])
    # Holds normally stay until the card is verified; release only on request
    if release:
        release_flow(client, ids["paymentIntentId"])
    if success_url and cancel_url:
        checkout_flow(client, price_id=price_id, email=email, success_url=success_url, cancel_url=cancel_url)
    if cancel:
        cancel_flow(client, ids["subscriptionId"])
    return ids


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="trialhold-demo", description="Walk through the trial signup flow against a running service.")
    parser.add_argument("--base-url", default=DEFAULT_BASE_URL)
    parser.add_argument("--price-id", required=True)
    parser.add_argument("--payment-method-id", default="pm_card_visa")
    parser.add_argument("--email", default="jane.smith@example.com")
    parser.add_argument("--success-url")
    parser.add_argument("--cancel-url")
    parser.add_argument("--release", action="store_true", help="release the hold after the checks")
    parser.add_argument("--cancel", action="store_true", help="cancel the trial at the end")
    args = parser.parse_args(argv)

    setup_logging()
    with httpx.Client(base_url=args.base_url, timeout=30.0) as client:
        try:
            run_demo(
                client,
                price_id=args.price_id,
                email=args.email,
                payment_method_id=args.payment_method_id,
                release=args.release,
                cancel=args.cancel,
                success_url=args.success_url,
                cancel_url=args.cancel_url,
            )
        except httpx.HTTPStatusError as e:
            log.error("demo_request_failed", url=str(e.request.url), status=e.response.status_code, body=e.response.text)
            return 1
        except httpx.TransportError as e:
            log.error("demo_service_unreachable", base_url=args.base_url, error=str(e))
            return 1
    log.info("demo_complete")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
