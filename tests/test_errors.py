from __future__ import annotations

import pytest
import stripe

from trialhold.core.settings import settings


@pytest.mark.parametrize(
    "exc, status_code, label",
    [
        (stripe.InvalidRequestError("No such price: 'price_x'", "price"), 400, "Invalid request to Stripe"),
        (stripe.AuthenticationError("Invalid API Key provided"), 401, "Stripe authentication failed"),
        (stripe.APIError("Something went wrong on Stripe's end"), 500, "Stripe API error"),
        (stripe.APIConnectionError("Network error"), 500, "Stripe API error"),
        (stripe.RateLimitError("Too many requests"), 500, "Stripe API error"),
    ],
)
def test_provider_errors_map_to_status(client, provider, customer_id, exc, status_code, label):
    provider.failures["create_subscription"] = exc

    resp = client.post("/api/subscription/create-trial", json={"customerId": customer_id, "priceId": "price_x"})

    assert resp.status_code == status_code
    assert resp.json() == {"error": label, "message": exc.user_message}


def test_provider_errors_are_not_retried(client, provider, customer_id):
    provider.failures["create_subscription"] = stripe.APIError("boom")

    client.post("/api/subscription/create-trial", json={"customerId": customer_id, "priceId": "price_x"})

    assert [name for name, _ in provider.calls].count("create_subscription") == 1


def test_unknown_error_includes_stack_in_development(client, provider, customer_id, monkeypatch):
    monkeypatch.setattr(settings, "ENV", "development")
    provider.failures["create_subscription"] = RuntimeError("unexpected")

    resp = client.post("/api/subscription/create-trial", json={"customerId": customer_id, "priceId": "price_x"})

    assert resp.status_code == 500
    assert resp.json()["error"] == "unexpected"
    assert "RuntimeError" in resp.json()["stack"]


def test_unknown_error_hides_stack_in_production(client, provider, customer_id, monkeypatch):
    monkeypatch.setattr(settings, "ENV", "production")
    provider.failures["create_subscription"] = RuntimeError("")

    resp = client.post("/api/subscription/create-trial", json={"customerId": customer_id, "priceId": "price_x"})

    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal server error"}


def test_unknown_route(client):
    resp = client.get("/api/nope")

    assert resp.status_code == 404
    assert resp.json() == {"error": "Route not found"}


def test_health(client):
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json()["status"] == "Server is running"
    assert resp.json()["timestamp"]
