from __future__ import annotations

from trialhold.engine import policy
from trialhold.payments.fake_provider import DECLINED_PAYMENT_METHOD

SIGNUP = {
    "name": "Jane",
    "email": "jane@x.com",
    "paymentMethodId": "pm_card_visa",
    "priceId": "price_basic",
}


def test_create_customer(client, provider):
    resp = client.post("/api/subscription/create-customer", json={"name": "Jane", "email": "jane@x.com"})

    assert resp.status_code == 201
    body = resp.json()
    assert body["message"] == "Customer created successfully"
    assert body["data"]["customerId"].startswith("cus_")
    assert body["data"]["email"] == "jane@x.com"
    assert body["data"]["name"] == "Jane"

    _, kwargs = provider.calls[-1]
    assert kwargs["description"] == "Free trial signup"
    assert kwargs["metadata"]["source"] == "free_trial"
    assert "signup_date" in kwargs["metadata"]


def test_create_customer_passes_description(client, provider):
    client.post(
        "/api/subscription/create-customer",
        json={"name": "Jane", "email": "jane@x.com", "description": "VIP"},
    )

    _, kwargs = provider.calls[-1]
    assert kwargs["description"] == "VIP"


def test_create_customer_does_not_check_email_format(client):
    resp = client.post("/api/subscription/create-customer", json={"name": "Jane", "email": "not-an-email"})

    assert resp.status_code == 201


def test_create_customer_missing_fields(client, provider):
    resp = client.post("/api/subscription/create-customer", json={"email": "jane@x.com"})

    assert resp.status_code == 400
    assert resp.json()["missing"] == ["name"]
    assert provider.calls == []


def test_create_trial(client, provider, customer_id):
    resp = client.post("/api/subscription/create-trial", json={"customerId": customer_id, "priceId": "price_basic"})

    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["customerId"] == customer_id
    assert data["status"] == "trialing"
    assert data["trialEnd"] - data["trialStart"] == policy.TRIAL_PERIOD_DAYS * 24 * 3600

    _, kwargs = provider.calls[-1]
    assert kwargs["trial_days"] == 14
    assert kwargs["payment_settings"] == {"save_default_payment_method": "on_subscription"}
    assert kwargs["metadata"] == {
        "trial_type": "free_trial_with_authorization",
        "auth_hold_amount": policy.AUTH_HOLD_AMOUNT,
    }


def test_create_trial_missing_fields(client, provider):
    resp = client.post("/api/subscription/create-trial", json={"priceId": "price_basic"})

    assert resp.status_code == 400
    assert resp.json()["missing"] == ["customerId"]
    assert provider.calls == []


def test_details_and_cancel(client, customer_id):
    created = client.post(
        "/api/subscription/create-trial", json={"customerId": customer_id, "priceId": "price_basic"}
    ).json()["data"]
    sub_id = created["subscriptionId"]

    details = client.get(f"/api/subscription/details/{sub_id}")
    assert details.status_code == 200
    assert details.json()["data"]["items"] == [{"priceId": "price_basic", "productId": "prod_fake"}]
    assert details.json()["data"]["trialEnd"] == created["trialEnd"]

    canceled = client.delete(f"/api/subscription/cancel/{sub_id}")
    assert canceled.status_code == 200
    assert canceled.json()["message"] == "Subscription cancelled successfully"
    assert canceled.json()["data"]["success"] is True
    assert canceled.json()["data"]["status"] == "canceled"
    assert canceled.json()["data"]["cancelledAt"] is not None


def test_details_for_unknown_subscription(client):
    resp = client.get("/api/subscription/details/sub_missing")

    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid request to Stripe"


def test_signup_creates_customer_hold_and_trial(client, provider):
    resp = client.post("/api/subscription/create-with-auth-hold", json=SIGNUP)

    assert resp.status_code == 201
    body = resp.json()
    assert body["message"] == "Customer created with authorization hold and trial subscription"
    assert body["data"]["customer"]["email"] == "jane@x.com"
    assert body["data"]["authorizationHold"]["amount"] == policy.AUTH_HOLD_AMOUNT
    assert body["data"]["authorizationHold"]["status"] == "requires_capture"
    assert body["data"]["subscription"]["status"] == "trialing"
    assert [name for name, _ in provider.calls] == [
        "create_customer",
        "create_payment_intent",
        "create_subscription",
    ]


def test_signup_missing_fields(client, provider):
    resp = client.post("/api/subscription/create-with-auth-hold", json={"name": "Jane"})

    assert resp.status_code == 400
    assert resp.json()["missing"] == ["email", "paymentMethodId", "priceId"]
    assert provider.calls == []


def test_signup_stops_after_failed_hold_and_keeps_customer(client, provider):
    resp = client.post(
        "/api/subscription/create-with-auth-hold",
        json={**SIGNUP, "paymentMethodId": DECLINED_PAYMENT_METHOD},
    )

    assert resp.status_code == 500
    assert provider.called("create_customer")
    assert not provider.called("create_subscription")
    # no rollback: the customer created in step one is still there
    assert len(provider.customers) == 1
