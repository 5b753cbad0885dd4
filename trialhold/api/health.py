# trialhold/api/health.py
from __future__ import annotations
from datetime import datetime, timezone

from fastapi import APIRouter

from trialhold.schemas.api_models import HealthResponse

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health():
    return HealthResponse(status="Server is running", timestamp=datetime.now(tz=timezone.utc).isoformat())
