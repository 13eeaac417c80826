"""Gmail OAuth2 credential management for stored user tokens.

Provides helpers for:
- Building ``google.oauth2.credentials.Credentials`` from a stored user
- Deciding whether an access token is about to expire
- Refreshing and persisting the token before any Gmail operation
- Building the Gmail API service client with a per-call timeout
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import google_auth_httplib2
import httplib2
import structlog
from google.auth.exceptions import RefreshError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import Resource, build
from pydantic import SecretStr

from chaser.config import Settings
from chaser.domain.errors import CredentialRefreshError, MailCredentialMissingError
from chaser.domain.models import User
from chaser.resilience.retry import resilient_api_call
from chaser.store.store import ChaserStore

logger = structlog.get_logger()

GOOGLE_TOKEN_URI: str = "https://oauth2.googleapis.com/token"

DEFAULT_GMAIL_SCOPES: list[str] = [
    "https://www.googleapis.com/auth/gmail.modify",
    "https://www.googleapis.com/auth/gmail.compose",
    "https://www.googleapis.com/auth/gmail.labels",
]


def _to_naive_utc(value: datetime | None) -> datetime | None:
    # google-auth compares expiry against a naive utcnow().
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(UTC)
    return value.replace(tzinfo=None)


def build_user_credentials(user: User, settings: Settings) -> Credentials:
    """Build OAuth2 credentials from the tokens stored on *user*.

    Args:
        user: The user whose Gmail tokens are used.
        settings: Supplies the OAuth client id and secret needed for refresh.

    Returns:
        A ``Credentials`` instance (possibly expired; see
        :func:`ensure_fresh_credential`).

    Raises:
        MailCredentialMissingError: If the user has no access token.
    """
    if not user.has_mail_credential or user.gmail_access_token is None:
        raise MailCredentialMissingError(user.id)

    refresh_token = (
        user.gmail_refresh_token.get_secret_value() if user.gmail_refresh_token else None
    )
    return Credentials(  # type: ignore[no-untyped-call]
        token=user.gmail_access_token.get_secret_value(),
        refresh_token=refresh_token,
        token_uri=GOOGLE_TOKEN_URI,
        client_id=settings.google_client_id or None,
        client_secret=settings.google_client_secret.get_secret_value() or None,
        scopes=DEFAULT_GMAIL_SCOPES,
        expiry=_to_naive_utc(user.token_expires_at),
    )


def needs_refresh(user: User, now: datetime, margin_seconds: int) -> bool:
    """Return True if the user's access token expires within *margin_seconds*.

    A token with no recorded expiry is treated as valid.
    """
    if user.token_expires_at is None:
        return False
    return user.token_expires_at < now + timedelta(seconds=margin_seconds)


@resilient_api_call("google_oauth_refresh")
def _refresh(credentials: Credentials, timeout: float) -> None:
    request = google_auth_httplib2.Request(httplib2.Http(timeout=timeout))
    credentials.refresh(request)


def ensure_fresh_credential(
    user: User,
    store: ChaserStore,
    settings: Settings,
    now: datetime | None = None,
) -> User:
    """Refresh the user's access token if it is expired or about to expire.

    Idempotent: a token outside the refresh margin is left untouched.  A
    refreshed token and its new expiry are persisted before returning.

    Args:
        user: The user about to make Gmail calls.
        store: Store used to persist the refreshed token.
        settings: Refresh margin, OAuth client config, and Gmail timeout.
        now: Current time (defaults to ``datetime.now(UTC)``).

    Returns:
        The user, updated with the fresh token when a refresh happened.

    Raises:
        MailCredentialMissingError: If the user has no access token.
        CredentialRefreshError: If the token cannot be refreshed.
    """
    if not user.has_mail_credential:
        raise MailCredentialMissingError(user.id)

    now = now or datetime.now(tz=UTC)
    if not needs_refresh(user, now, settings.token_refresh_margin_seconds):
        return user

    if user.gmail_refresh_token is None or not user.gmail_refresh_token.get_secret_value():
        raise CredentialRefreshError(f"User {user.id} has no refresh token")

    credentials = build_user_credentials(user, settings)
    try:
        _refresh(credentials, settings.gmail_timeout_seconds)
    except RefreshError as exc:
        raise CredentialRefreshError(f"Token refresh rejected for user {user.id}: {exc}") from exc

    expires_at = (
        credentials.expiry.replace(tzinfo=UTC) if credentials.expiry is not None else None
    )
    store.update_access_token(user.id, credentials.token, expires_at)
    logger.info("Refreshed Gmail access token", user_id=user.id, expires_at=str(expires_at))

    return user.model_copy(
        update={
            "gmail_access_token": SecretStr(credentials.token),
            "token_expires_at": expires_at,
        }
    )


def get_gmail_service(credentials: Credentials, timeout: float = 30.0) -> Resource:
    """Build and return a Gmail API v1 service client.

    Args:
        credentials: OAuth2 credentials for the mailbox owner.
        timeout: Socket timeout in seconds applied to every API request.

    Returns:
        A ``googleapiclient.discovery.Resource`` for the Gmail API v1.
    """
    http = google_auth_httplib2.AuthorizedHttp(credentials, http=httplib2.Http(timeout=timeout))
    return build("gmail", "v1", http=http, cache_discovery=False)
