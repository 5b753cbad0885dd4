from __future__ import annotations

import asyncio
import time

import httpx

from trialhold.core.deps import get_stripe_provider
from trialhold.main import app
from trialhold.payments.fake_provider import FakeStripeProvider

SDK_LATENCY = 0.3


class SlowProvider(FakeStripeProvider):
    """Blocks like a synchronous SDK call waiting on the network."""

    def create_customer(self, **kwargs):
        time.sleep(SDK_LATENCY)
        return super().create_customer(**kwargs)


async def _signup_many(count: int):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        return await asyncio.gather(
            *[
                client.post("/api/subscription/create-customer", json={"name": f"User {n}", "email": f"u{n}@x.com"})
                for n in range(count)
            ]
        )


def test_slow_provider_calls_do_not_serialize_requests():
    provider = SlowProvider()
    app.dependency_overrides[get_stripe_provider] = lambda: provider
    try:
        started = time.monotonic()
        responses = asyncio.run(_signup_many(5))
        elapsed = time.monotonic() - started
    finally:
        app.dependency_overrides.pop(get_stripe_provider, None)

    assert [r.status_code for r in responses] == [201] * 5
    assert len(provider.customers) == 5
    # run back to back on the event loop these would take 5 * SDK_LATENCY
    assert elapsed < 3 * SDK_LATENCY
