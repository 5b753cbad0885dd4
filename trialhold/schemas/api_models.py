from __future__ import annotations

from typing import Optional, Dict, Any, Generic, List, TypeVar
from pydantic import BaseModel

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    message: str
    data: T


# -------------------------
# Authorization holds
# -------------------------
class AuthorizationHoldData(BaseModel):
    success: bool
    paymentIntentId: str
    status: str
    amount: int
    currency: str
    clientSecret: Optional[str] = None


class AuthorizationReleaseData(BaseModel):
    success: bool
    paymentIntentId: str
    status: str
    message: str


class AuthorizationCaptureData(BaseModel):
    success: bool
    paymentIntentId: str
    status: str
    amount: int
    message: str


class AuthorizationStatusData(BaseModel):
    paymentIntentId: str
    status: str
    amount: int
    currency: str
    customer: Optional[str] = None
    paymentMethod: Optional[str] = None
    metadata: Dict[str, Any] = {}


# -------------------------
# Customers / Subscriptions
# -------------------------
class CustomerData(BaseModel):
    customerId: str
    email: str
    name: Optional[str] = None


class TrialSubscriptionData(BaseModel):
    subscriptionId: str
    customerId: str
    status: str
    trialStart: Optional[int] = None   # epoch seconds
    trialEnd: Optional[int] = None     # epoch seconds


class SubscriptionItemData(BaseModel):
    priceId: str
    productId: Optional[str] = None


class SubscriptionDetailsData(BaseModel):
    subscriptionId: str
    customerId: str
    status: str
    trialEnd: Optional[int] = None
    items: List[SubscriptionItemData] = []


class SubscriptionCancelData(BaseModel):
    success: bool
    subscriptionId: str
    status: str
    cancelledAt: Optional[int] = None


# ---------- Signup (customer + hold + trial) ----------
class SignupHoldSummary(BaseModel):
    paymentIntentId: str
    status: str
    amount: int


class SignupSubscriptionSummary(BaseModel):
    subscriptionId: str
    status: str
    trialEnd: Optional[int] = None


class SignupData(BaseModel):
    customer: CustomerData
    authorizationHold: SignupHoldSummary
    subscription: SignupSubscriptionSummary


# -------------------------
# Checkout
# -------------------------
class CheckoutSessionCreatedData(BaseModel):
    sessionId: str
    url: Optional[str] = None


class CheckoutSessionData(BaseModel):
    sessionId: str
    status: str
    customerId: Optional[str] = None
    subscriptionId: Optional[str] = None
    totalDetails: Optional[Dict[str, Any]] = None
    paymentStatus: Optional[str] = None
    amountTotal: Optional[int] = None
    currency: Optional[str] = None


# -------------------------
# Webhook / Health
# -------------------------
class WebhookAck(BaseModel):
    received: bool = True


class HealthResponse(BaseModel):
    status: str
    timestamp: str
