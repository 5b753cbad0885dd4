# trialhold/payments/types.py
from __future__ import annotations
from typing import Protocol, Optional, Dict, Any, List

class PaymentProvider(Protocol):
    # --- webhooks ---
    def verify_signature(self, payload: bytes, sig_header: str): ...

    # --- customers ---
    def create_customer(
        self, *, email: str, name: Optional[str], description: Optional[str], metadata: Dict[str, Any]
    ) -> Dict[str, Any]: ...

    # --- payment intents (authorization holds) ---
    def create_payment_intent(
        self, *, amount: int, currency: str, customer_id: str, payment_method_id: str,
        capture_method: str, confirm: bool, off_session: bool,
        statement_descriptor: Optional[str], metadata: Dict[str, Any], return_url: Optional[str]
    ) -> Dict[str, Any]: ...

    def cancel_payment_intent(self, payment_intent_id: str) -> Dict[str, Any]: ...
    def capture_payment_intent(self, payment_intent_id: str) -> Dict[str, Any]: ...
    def retrieve_payment_intent(self, payment_intent_id: str) -> Dict[str, Any]: ...

    # --- subscriptions ---
    def create_subscription(
        self, *, customer_id: str, price_id: str, trial_days: Optional[int],
        payment_settings: Optional[Dict[str, Any]], metadata: Dict[str, Any]
    ) -> Dict[str, Any]: ...

    def retrieve_subscription(self, subscription_id: str) -> Dict[str, Any]: ...
    def cancel_subscription(self, subscription_id: str) -> Dict[str, Any]: ...

    # --- checkout ---
    def create_checkout_session(
        self, *, price_id: str, customer_email: str, success_url: str, cancel_url: str,
        payment_method_types: List[str], trial_days: Optional[int],
        subscription_description: Optional[str], subscription_metadata: Dict[str, Any],
        metadata: Dict[str, Any]
    ) -> Dict[str, Any]: ...

    def retrieve_checkout_session(self, session_id: str) -> Dict[str, Any]: ...
