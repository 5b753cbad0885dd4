# trialhold/core/settings.py
from __future__ import annotations
from typing import Literal
from pydantic_settings import BaseSettings
from pydantic import field_validator, ConfigDict


class Settings(BaseSettings):
    # --- App ---
    APP_NAME: str = "Trial Authorization Service"
    ENV: Literal["development", "staging", "production"] = "development"
    LOG_LEVEL: str = "INFO"
    PORT: int = 5000
    API_PREFIX: str = "/api"

    # --- HTTP / CORS ---
    CORS_ORIGINS: str = "*"  # comma-separated list or "*"
    CORS_ALLOW_CREDENTIALS: bool = False
    CORS_ALLOW_METHODS: str = "*"   # comma-separated or "*"
    CORS_ALLOW_HEADERS: str = "*"   # comma-separated or "*"

    # --- Payments ---
    PAYMENTS_BACKEND: Literal["fake", "stripe"] = "fake"
    STRIPE_SECRET_KEY: str = ""         # required if PAYMENTS_BACKEND=stripe
    STRIPE_WEBHOOK_SECRET: str = ""     # required if PAYMENTS_BACKEND=stripe
    RETURN_URL: str = "https://example.com/return"

    model_config = ConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    @property
    def DEV_MODE(self) -> bool:
        return self.ENV == "development"

    @field_validator("CORS_ORIGINS", "CORS_ALLOW_METHODS", "CORS_ALLOW_HEADERS")
    @classmethod
    def _norm_csv(cls, v: str) -> str:
        return ",".join([piece.strip() for piece in v.split(",")]) if v else v

    @field_validator("API_PREFIX")
    @classmethod
    def _norm_prefix(cls, v: str) -> str:
        v = (v or "").strip().rstrip("/")
        if v and not v.startswith("/"):
            v = "/" + v
        return v

    def validate_payments(self) -> None:
        if self.PAYMENTS_BACKEND == "stripe":
            if not self.STRIPE_SECRET_KEY or not self.STRIPE_WEBHOOK_SECRET:
                raise ValueError("STRIPE_SECRET_KEY and STRIPE_WEBHOOK_SECRET are required when PAYMENTS_BACKEND=stripe")
        elif not self.DEV_MODE:
            # The in-memory provider approves every hold; never serve it outside development
            raise ValueError(f"PAYMENTS_BACKEND=fake is only allowed when ENV=development (ENV={self.ENV})")


settings = Settings()
# Post init checks that are cross-field aware
settings.validate_payments()
