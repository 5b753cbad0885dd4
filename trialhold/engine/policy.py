# trialhold/engine/policy.py
"""
Fixed terms of the free-trial offer.

The hold amount is deliberately not configurable: it only verifies that the card
is valid and is recorded as metadata on every trial artifact.
"""
from __future__ import annotations

AUTH_HOLD_AMOUNT = 2900  # minor units ($29.00)
AUTH_HOLD_CURRENCY = "usd"
HOLD_STATEMENT_DESCRIPTOR = "TRIAL VERIFICATION"

TRIAL_PERIOD_DAYS = 14

DEFAULT_CUSTOMER_DESCRIPTION = "Free trial signup"
CUSTOMER_SOURCE = "free_trial"

HOLD_METADATA_TYPE = "free_trial_authorization"
SUBSCRIPTION_TRIAL_TYPE = "free_trial_with_authorization"
CHECKOUT_METADATA_TYPE = "free_trial_signup"
CHECKOUT_SUBSCRIPTION_TYPE = "free_trial"


def hold_amount_display() -> str:
    return f"${AUTH_HOLD_AMOUNT / 100:.0f}"


def checkout_trial_description() -> str:
    return f"Free trial with {hold_amount_display()} authorization hold verification"
