# trialhold/api/subscriptions.py
from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, Request, status

from trialhold.core.deps import get_stripe_provider
from trialhold.core.settings import settings
from trialhold.engine.engine import SignupEngine, SubscriptionEngine
from trialhold.schemas.api_models import (
    Envelope,
    CustomerData,
    SignupData,
    TrialSubscriptionData,
    SubscriptionDetailsData,
    SubscriptionCancelData,
)
from trialhold.schemas.validator import read_json_body, require_fields_or_400

router = APIRouter(prefix="/subscription", tags=["Subscriptions"])


@router.post("/create-with-auth-hold", response_model=Envelope[SignupData], status_code=status.HTTP_201_CREATED)
async def create_with_auth_hold(request: Request, stripe = Depends(get_stripe_provider)):
    """
    Full signup: customer, then authorization hold, then 14-day trial.
    Body: {"name", "email", "paymentMethodId", "priceId"}

    A failure in a later step leaves the earlier provider objects in place.
    """
    body = await read_json_body(request)
    require_fields_or_400(body, "name", "email", "paymentMethodId", "priceId")

    engine = SignupEngine(stripe, return_url=settings.RETURN_URL)
    result = await asyncio.to_thread(
        engine.create_customer_with_auth_hold_and_trial,
        name=body["name"],
        email=body["email"],
        payment_method_id=body["paymentMethodId"],
        price_id=body["priceId"],
    )
    return {"message": "Customer created with authorization hold and trial subscription", "data": result}


@router.post("/create-customer", response_model=Envelope[CustomerData], status_code=status.HTTP_201_CREATED)
async def create_customer(request: Request, stripe = Depends(get_stripe_provider)):
    body = await read_json_body(request)
    require_fields_or_400(body, "name", "email")

    result = await asyncio.to_thread(
        SubscriptionEngine(stripe).create_customer,
        name=body["name"],
        email=body["email"],
        description=body.get("description"),
    )
    return {"message": "Customer created successfully", "data": result}


@router.post("/create-trial", response_model=Envelope[TrialSubscriptionData], status_code=status.HTTP_201_CREATED)
async def create_trial(request: Request, stripe = Depends(get_stripe_provider)):
    body = await read_json_body(request)
    require_fields_or_400(body, "customerId", "priceId")

    result = await asyncio.to_thread(SubscriptionEngine(stripe).create_free_trial, body["customerId"], body["priceId"])
    return {"message": "Free trial subscription created successfully", "data": result}


@router.get("/details/{subscriptionId}", response_model=Envelope[SubscriptionDetailsData])
async def get_details(subscriptionId: str, stripe = Depends(get_stripe_provider)):
    result = await asyncio.to_thread(SubscriptionEngine(stripe).get_details, subscriptionId)
    return {"message": "Subscription details retrieved successfully", "data": result}


@router.delete("/cancel/{subscriptionId}", response_model=Envelope[SubscriptionCancelData])
async def cancel(subscriptionId: str, stripe = Depends(get_stripe_provider)):
    result = await asyncio.to_thread(SubscriptionEngine(stripe).cancel, subscriptionId)
    return {"message": "Subscription cancelled successfully", "data": result}
