# trialhold/core/deps.py
from functools import lru_cache
from trialhold.core.settings import Settings, settings
from trialhold.engine.events import EVENT_HANDLERS
from trialhold.payments.stripe_provider import StripePaymentProvider
from trialhold.payments.fake_provider import FakeStripeProvider


def build_payments_provider(cfg: Settings):
    cfg.validate_payments()
    if cfg.PAYMENTS_BACKEND == "fake":
        return FakeStripeProvider(webhook_secret=cfg.STRIPE_WEBHOOK_SECRET or None)
    return StripePaymentProvider(
        api_key=cfg.STRIPE_SECRET_KEY,
        webhook_secret=cfg.STRIPE_WEBHOOK_SECRET,
    )


@lru_cache(maxsize=1)
def _payments_singleton():
    return build_payments_provider(settings)

def get_stripe_provider():
    # FastAPI will call this each request, but we return the cached singleton
    return _payments_singleton()

def get_event_handlers():
    return EVENT_HANDLERS
