# trialhold/main.py
from __future__ import annotations
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from trialhold.core.errors import register_error_handlers
from trialhold.core.logger import setup_logging
from trialhold.core.settings import settings
from trialhold.api import (
    authorization,
    checkout,
    subscriptions,
    stripe_webhooks,
    health,
)

setup_logging()
log = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info(
        "server_started",
        port=settings.PORT,
        environment=settings.ENV,
        payments_backend=settings.PAYMENTS_BACKEND,
        stripe_key_configured=bool(settings.STRIPE_SECRET_KEY),
    )
    yield


app = FastAPI(title=settings.APP_NAME, version="1.0.0", lifespan=lifespan)

# --- CORS ---
allow_origins = ["*"] if settings.CORS_ORIGINS == "*" else [o.strip() for o in settings.CORS_ORIGINS.split(",")]
allow_methods = ["*"] if settings.CORS_ALLOW_METHODS == "*" else [m.strip() for m in settings.CORS_ALLOW_METHODS.split(",")]
allow_headers = ["*"] if settings.CORS_ALLOW_HEADERS == "*" else [h.strip() for h in settings.CORS_ALLOW_HEADERS.split(",")]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=allow_methods,
    allow_headers=allow_headers,
)

# --- Errors ---
register_error_handlers(app)

# --- Routers ---
app.include_router(checkout.router, prefix=settings.API_PREFIX)
app.include_router(subscriptions.router, prefix=settings.API_PREFIX)
app.include_router(authorization.router, prefix=settings.API_PREFIX)
app.include_router(stripe_webhooks.router, prefix=settings.API_PREFIX)
app.include_router(health.router)
