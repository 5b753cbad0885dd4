# trialhold/api/checkout.py
from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, Request, status

from trialhold.core.deps import get_stripe_provider
from trialhold.engine.engine import CheckoutEngine
from trialhold.schemas.api_models import Envelope, CheckoutSessionCreatedData, CheckoutSessionData
from trialhold.schemas.validator import read_json_body, require_fields_or_400

router = APIRouter(prefix="/checkout", tags=["Checkout"])


@router.post("/create-session", response_model=Envelope[CheckoutSessionCreatedData], status_code=status.HTTP_201_CREATED)
async def create_session(request: Request, stripe = Depends(get_stripe_provider)):
    """
    Hosted Checkout for the free-trial signup.
    Body: {"priceId", "customerEmail", "successUrl", "cancelUrl"}
    """
    body = await read_json_body(request)
    require_fields_or_400(body, "priceId", "customerEmail", "successUrl", "cancelUrl")

    result = await asyncio.to_thread(
        CheckoutEngine(stripe).create_session,
        price_id=body["priceId"],
        customer_email=body["customerEmail"],
        success_url=body["successUrl"],
        cancel_url=body["cancelUrl"],
    )
    return {"message": "Checkout session created successfully", "data": result}


@router.get("/session/{sessionId}", response_model=Envelope[CheckoutSessionData])
async def get_session(sessionId: str, stripe = Depends(get_stripe_provider)):
    result = await asyncio.to_thread(CheckoutEngine(stripe).get_session, sessionId)
    return {"message": "Checkout session retrieved successfully", "data": result}
