# trialhold/core/errors.py
from __future__ import annotations
import traceback
from typing import Iterable, List

import stripe
import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from trialhold.core.settings import settings

log = structlog.get_logger(__name__)


class AppError(Exception):
    """Base for errors raised by this service (not the provider)."""

    status_code = 500


class MissingFieldsError(AppError):
    status_code = 400

    def __init__(self, missing: Iterable[str]):
        self.missing: List[str] = list(missing)
        super().__init__(f"Missing required fields: {', '.join(self.missing)}")


class WebhookSignatureError(AppError):
    status_code = 400


# (error label, status) per provider error class; first match wins
_STRIPE_ERRORS = (
    (stripe.InvalidRequestError, "Invalid request to Stripe", 400),
    (stripe.AuthenticationError, "Stripe authentication failed", 401),
    (stripe.APIConnectionError, "Stripe API error", 500),
    (stripe.RateLimitError, "Stripe API error", 500),
    (stripe.APIError, "Stripe API error", 500),
)


def _stripe_message(exc: stripe.StripeError) -> str:
    return exc.user_message or str(exc)


async def missing_fields_handler(request: Request, exc: MissingFieldsError) -> JSONResponse:
    log.info("request_missing_fields", path=request.url.path, missing=exc.missing)
    return JSONResponse({"error": str(exc), "missing": exc.missing}, status_code=exc.status_code)


async def webhook_signature_handler(request: Request, exc: WebhookSignatureError) -> JSONResponse:
    return JSONResponse({"error": f"Webhook Error: {exc}"}, status_code=exc.status_code)


async def stripe_error_handler(request: Request, exc: stripe.StripeError) -> JSONResponse:
    for cls, label, status_code in _STRIPE_ERRORS:
        if isinstance(exc, cls):
            log.warning(
                "stripe_request_failed",
                path=request.url.path,
                error_type=type(exc).__name__,
                status_code=status_code,
                message=_stripe_message(exc),
            )
            return JSONResponse({"error": label, "message": _stripe_message(exc)}, status_code=status_code)
    # Card declines, idempotency and permission errors fall through to the generic shape
    return await unhandled_error_handler(request, exc)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404 and exc.detail == "Not Found":
        return JSONResponse({"error": "Route not found"}, status_code=404)
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=getattr(exc, "headers", None))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    log.error("unhandled_error", path=request.url.path, exc_info=exc)
    body = {"error": str(exc) or "Internal server error"}
    if settings.DEV_MODE:
        body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(body, status_code=500)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MissingFieldsError, missing_fields_handler)
    app.add_exception_handler(WebhookSignatureError, webhook_signature_handler)
    app.add_exception_handler(stripe.StripeError, stripe_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
