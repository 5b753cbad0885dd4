# trialhold/api/authorization.py
from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, Request, status

from trialhold.core.deps import get_stripe_provider
from trialhold.core.settings import settings
from trialhold.engine import policy
from trialhold.engine.engine import AuthorizationEngine
from trialhold.schemas.api_models import (
    Envelope,
    AuthorizationHoldData,
    AuthorizationReleaseData,
    AuthorizationCaptureData,
    AuthorizationStatusData,
)
from trialhold.schemas.validator import read_json_body, require_fields_or_400

router = APIRouter(prefix="/authorization", tags=["Authorization"])


def _engine(stripe) -> AuthorizationEngine:
    return AuthorizationEngine(stripe, return_url=settings.RETURN_URL)


@router.post("/hold", response_model=Envelope[AuthorizationHoldData], status_code=status.HTTP_201_CREATED)
async def create_hold(request: Request, stripe = Depends(get_stripe_provider)):
    """
    Places the fixed trial-verification hold on the customer's card.
    Body: {"customerId": "cus_...", "paymentMethodId": "pm_..."}
    """
    body = await read_json_body(request)
    require_fields_or_400(body, "customerId", "paymentMethodId")

    result = await asyncio.to_thread(_engine(stripe).create_hold, body["customerId"], body["paymentMethodId"])
    return {
        "message": f"{policy.hold_amount_display()} authorization hold created successfully",
        "data": result,
    }


@router.post("/release", response_model=Envelope[AuthorizationReleaseData])
async def release_hold(request: Request, stripe = Depends(get_stripe_provider)):
    body = await read_json_body(request)
    require_fields_or_400(body, "paymentIntentId")

    result = await asyncio.to_thread(_engine(stripe).release_hold, body["paymentIntentId"])
    return {"message": "Authorization hold released successfully", "data": result}


@router.post("/capture", response_model=Envelope[AuthorizationCaptureData])
async def capture_hold(request: Request, stripe = Depends(get_stripe_provider)):
    """
    Turns the hold into a charge. Only for customers who must be billed.
    """
    body = await read_json_body(request)
    require_fields_or_400(body, "paymentIntentId")

    result = await asyncio.to_thread(_engine(stripe).capture_hold, body["paymentIntentId"])
    return {"message": "Authorization hold captured successfully", "data": result}


@router.get("/status/{paymentIntentId}", response_model=Envelope[AuthorizationStatusData])
async def get_status(paymentIntentId: str, stripe = Depends(get_stripe_provider)):
    result = await asyncio.to_thread(_engine(stripe).get_status, paymentIntentId)
    return {"message": "Authorization status retrieved successfully", "data": result}
