"""Anthropic client factory and model configuration for the payment chaser."""

from anthropic import Anthropic

from chaser.config import Settings

# Model selection: Haiku for fast/cheap extraction and classification, Sonnet for composition
EXTRACTION_MODEL = "claude-haiku-4-5-20251001"
CLASSIFY_MODEL = "claude-haiku-4-5-20251001"
COMPOSE_MODEL = "claude-sonnet-4-5-20250929"

# Token ceilings per call
EXTRACTION_MAX_TOKENS = 300
CLASSIFY_MAX_TOKENS = 10
COMPOSE_MAX_TOKENS = 500

DEFAULT_MAX_RETRIES = 2


def get_anthropic_client(settings: Settings) -> Anthropic:
    """Create an Anthropic client from settings.

    The SDK retries connection errors, 429s and 5xx responses itself; the
    configured timeout bounds every call so one slow request cannot stall a run.

    Args:
        settings: Supplies the API key and per-call timeout.

    Returns:
        Configured Anthropic client instance.
    """
    return Anthropic(
        api_key=settings.anthropic_api_key.get_secret_value() or None,
        timeout=settings.llm_timeout_seconds,
        max_retries=DEFAULT_MAX_RETRIES,
    )
