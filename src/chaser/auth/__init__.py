"""Authentication module for Gmail credential management."""

from chaser.auth.credentials import (
    build_user_credentials,
    ensure_fresh_credential,
    get_gmail_service,
    needs_refresh,
)

__all__ = [
    "build_user_credentials",
    "ensure_fresh_credential",
    "get_gmail_service",
    "needs_refresh",
]
