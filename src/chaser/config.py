"""Centralized, typed configuration using pydantic-settings.

Provides a single ``Settings`` class backed by ``.env`` file and environment
variables, a cached ``get_settings()`` accessor, and a ``validate_credentials()``
startup gate that enforces credential presence in production mode.

IMPORTANT: This module has ZERO imports from the ``chaser`` package to
prevent circular imports.  Only stdlib, pydantic, pydantic_settings, and
structlog are used.
"""

from __future__ import annotations

import sys
from enum import StrEnum
from functools import lru_cache
from pathlib import Path

import structlog
from pydantic import Field, SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger()


class PaymentCheckPolicy(StrEnum):
    """When the payment detector re-examines an active request's thread."""

    EVERY_RUN = "every_run"
    FOLLOWUP_INTERVAL = "followup_interval"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and ``.env`` file.

    ``SecretStr`` fields prevent accidental leaks in logs or error output.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- General ---------------------------------------------------------------
    production: bool = False
    http_port: int = 8000
    cron_secret: SecretStr = SecretStr("")

    # -- Persistence -----------------------------------------------------------
    database_path: Path = Path("data/chaser.db")

    # -- Gmail / Google OAuth --------------------------------------------------
    google_client_id: str = ""
    google_client_secret: SecretStr = SecretStr("")
    gmail_label_name: str = "Payment Chaser"
    gmail_timeout_seconds: float = 30.0
    token_refresh_margin_seconds: int = 300

    # -- LLM / Anthropic -------------------------------------------------------
    anthropic_api_key: SecretStr = SecretStr("")
    llm_timeout_seconds: float = 60.0

    # -- Follow-up scheduling --------------------------------------------------
    default_followup_interval_days: int = Field(default=7, ge=1, le=90)
    default_voice: str = "assistant"
    followup_lease_seconds: int = 600
    payment_check_policy: PaymentCheckPolicy = PaymentCheckPolicy.EVERY_RUN
    sync_on_schedule: bool = True
    voices_seed_path: Path = Path("config/voices.yaml")

    # -- Observability ---------------------------------------------------------
    sentry_dsn: str = ""


@lru_cache
def get_settings() -> Settings:
    """Return a cached ``Settings`` instance.

    Call ``get_settings.cache_clear()`` in tests to reset.

    Returns:
        The application ``Settings``.
    """
    try:
        return Settings()
    except ValidationError as exc:
        # Log only the structured errors list -- never the full exception
        # which may contain raw SecretStr values.
        logger.error("settings_validation_failed", errors=exc.errors())
        sys.exit(1)


def validate_credentials(settings: Settings) -> None:
    """Enforce credential presence at startup.

    In **production** mode the process exits with a clear error block if any
    required credential is missing.  In **development** mode each missing
    credential is logged as a warning and startup continues.

    Args:
        settings: The loaded application settings.
    """
    errors: list[str] = []

    if not settings.google_client_id:
        errors.append("GOOGLE_CLIENT_ID is empty or not set")

    if not settings.google_client_secret.get_secret_value():
        errors.append("GOOGLE_CLIENT_SECRET is empty or not set")

    if not settings.anthropic_api_key.get_secret_value():
        errors.append("ANTHROPIC_API_KEY is empty or not set")

    if not settings.cron_secret.get_secret_value():
        errors.append("CRON_SECRET is empty or not set")

    if not errors:
        logger.info("credential_validation_passed")
        return

    if settings.production:
        for err in errors:
            logger.error("credential_missing", detail=err)
        print("\n=== STARTUP FAILED ===", file=sys.stderr)
        print("Missing required credentials for production mode:", file=sys.stderr)
        for err in errors:
            print(f"  - {err}", file=sys.stderr)
        print("======================\n", file=sys.stderr)
        sys.exit(1)
    else:
        for err in errors:
            logger.warning("credential_missing_dev", detail=err)
