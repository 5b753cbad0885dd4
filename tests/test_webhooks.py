from __future__ import annotations

import pytest

from trialhold.core.deps import get_event_handlers, get_stripe_provider
from trialhold.engine.events import EVENT_HANDLERS, HANDLER_NOT_IMPLEMENTED
from trialhold.main import app
from trialhold.payments.fake_provider import FakeStripeProvider

from conftest import event_payload, sign_payload

PAYMENT_INTENT = {
    "id": "pi_123",
    "object": "payment_intent",
    "amount": 2900,
    "currency": "usd",
    "customer": "cus_123",
    "status": "requires_capture",
}

SUBSCRIPTION = {
    "id": "sub_123",
    "object": "subscription",
    "customer": "cus_123",
    "status": "trialing",
    "trial_start": 1700000000,
    "trial_end": 1701209600,
    "current_period_end": 1701209600,
    "items": {"object": "list", "data": [{"id": "si_1"}]},
}


@pytest.fixture
def invoked():
    """Swap in recording handlers for every known event type."""
    seen = []

    def _recorder(event_type):
        async def _handler(obj):
            seen.append((event_type, obj.get("id")))
            return HANDLER_NOT_IMPLEMENTED
        return _handler

    app.dependency_overrides[get_event_handlers] = lambda: {t: _recorder(t) for t in EVENT_HANDLERS}
    yield seen
    app.dependency_overrides.pop(get_event_handlers, None)


def _post(client, payload: bytes, signature: str = None):
    headers = {"Content-Type": "application/json"}
    if signature is not None:
        headers["Stripe-Signature"] = signature
    return client.post("/api/webhook/stripe", content=payload, headers=headers)


def test_signed_event_is_dispatched_and_acknowledged(client, invoked):
    payload = event_payload("payment_intent.succeeded", PAYMENT_INTENT)

    resp = _post(client, payload, sign_payload(payload))

    assert resp.status_code == 200
    assert resp.json() == {"received": True}
    assert invoked == [("payment_intent.succeeded", "pi_123")]


def test_invalid_signature_is_rejected_before_dispatch(client, invoked):
    payload = event_payload("payment_intent.succeeded", PAYMENT_INTENT)

    resp = _post(client, payload, sign_payload(payload, secret="whsec_wrong"))

    assert resp.status_code == 400
    assert resp.json()["error"].startswith("Webhook Error:")
    assert invoked == []


def test_tampered_body_is_rejected(client, invoked):
    payload = event_payload("payment_intent.succeeded", PAYMENT_INTENT)
    signature = sign_payload(payload)
    tampered = payload.replace(b"2900", b"1")

    resp = _post(client, tampered, signature)

    assert resp.status_code == 400
    assert invoked == []


def test_missing_signature_header_is_rejected(client, invoked):
    resp = _post(client, event_payload("payment_intent.succeeded", PAYMENT_INTENT))

    assert resp.status_code == 400
    assert resp.json() == {"error": "Webhook Error: Missing Stripe-Signature header"}
    assert invoked == []


def test_unknown_event_type_is_acknowledged_without_handling(client, invoked):
    payload = event_payload("invoice.paid", {"id": "in_123", "object": "invoice"})

    resp = _post(client, payload, sign_payload(payload))

    assert resp.status_code == 200
    assert resp.json() == {"received": True}
    assert invoked == []


def test_handler_failure_returns_server_error(client):
    async def _boom(obj):
        raise RuntimeError("database unavailable")

    app.dependency_overrides[get_event_handlers] = lambda: {"customer.subscription.deleted": _boom}
    try:
        payload = event_payload("customer.subscription.deleted", SUBSCRIPTION)
        resp = _post(client, payload, sign_payload(payload))
    finally:
        app.dependency_overrides.pop(get_event_handlers, None)

    assert resp.status_code == 500
    assert resp.json() == {"error": "Webhook processing failed"}


@pytest.mark.parametrize(
    "event_type, obj",
    [
        ("payment_intent.succeeded", PAYMENT_INTENT),
        ("payment_intent.payment_failed", {**PAYMENT_INTENT, "last_payment_error": {"message": "declined"}}),
        ("payment_intent.canceled", {**PAYMENT_INTENT, "status": "canceled"}),
        ("customer.subscription.created", SUBSCRIPTION),
        ("customer.subscription.updated", SUBSCRIPTION),
        ("customer.subscription.deleted", SUBSCRIPTION),
        ("customer.subscription.trial_will_end", SUBSCRIPTION),
    ],
)
def test_default_handlers_accept_real_event_shapes(client, event_type, obj):
    payload = event_payload(event_type, obj)

    resp = _post(client, payload, sign_payload(payload))

    assert resp.status_code == 200
    assert resp.json() == {"received": True}


@pytest.fixture
def unsigned_client(client):
    """Local-run setup: fake provider without a webhook secret."""
    app.dependency_overrides[get_stripe_provider] = lambda: FakeStripeProvider()
    return client


@pytest.mark.parametrize("body", [b"[]", b'"payment_intent.succeeded"', b"42", b"null"])
def test_non_object_event_is_rejected(unsigned_client, invoked, body):
    resp = _post(unsigned_client, body)

    assert resp.status_code == 400
    assert resp.json() == {"error": "Webhook Error: Malformed event payload"}
    assert invoked == []


def test_unsigned_event_is_accepted_without_secret(unsigned_client, invoked):
    resp = _post(unsigned_client, event_payload("payment_intent.succeeded", PAYMENT_INTENT))

    assert resp.status_code == 200
    assert invoked == [("payment_intent.succeeded", "pi_123")]


def test_event_with_odd_data_reaches_handler_with_empty_object(unsigned_client, invoked):
    resp = _post(unsigned_client, b'{"type": "payment_intent.succeeded", "data": []}')

    assert resp.status_code == 200
    assert invoked == [("payment_intent.succeeded", None)]
