import hashlib
import hmac
import json
import os
import sys
import time
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

WEBHOOK_SECRET = "whsec_test_secret"

os.environ.setdefault("ENV", "development")
os.environ.setdefault("PAYMENTS_BACKEND", "fake")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", WEBHOOK_SECRET)

import pytest
from fastapi.testclient import TestClient

from trialhold.core.deps import get_stripe_provider
from trialhold.main import app
from trialhold.payments.fake_provider import FakeStripeProvider


@pytest.fixture
def provider() -> FakeStripeProvider:
    return FakeStripeProvider(webhook_secret=WEBHOOK_SECRET)


@pytest.fixture
def client(provider):
    app.dependency_overrides[get_stripe_provider] = lambda: provider
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def customer_id(provider) -> str:
    return provider.create_customer(email="jane@x.com", name="Jane")["id"]


def sign_payload(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> str:
    """Build a Stripe-Signature header the way Stripe does (v1 = HMAC-SHA256 of 't.payload')."""
    ts = timestamp or int(time.time())
    signed = f"{ts}.".encode("utf-8") + payload
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={ts},v1={signature}"


def event_payload(event_type: str, obj: dict, event_id: str = "evt_test_1") -> bytes:
    return json.dumps(
        {
            "id": event_id,
            "object": "event",
            "type": event_type,
            "data": {"object": obj},
        }
    ).encode("utf-8")
