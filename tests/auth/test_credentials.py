"""Tests for the auth credentials module.

Uses unittest.mock to avoid requiring real Google API credentials.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock, patch

import pytest
from google.auth.exceptions import RefreshError
from pydantic import SecretStr

from chaser.auth.credentials import (
    DEFAULT_GMAIL_SCOPES,
    GOOGLE_TOKEN_URI,
    build_user_credentials,
    ensure_fresh_credential,
    get_gmail_service,
    needs_refresh,
)
from chaser.domain.errors import CredentialRefreshError, MailCredentialMissingError
from chaser.domain.models import User

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)


def _make_user(**overrides) -> User:
    fields = {
        "email": "me@freelancer.dev",
        "gmail_access_token": SecretStr("old-token"),
        "gmail_refresh_token": SecretStr("refresh-token"),
        "token_expires_at": NOW + timedelta(minutes=2),
    }
    fields.update(overrides)
    return User(**fields)


# ---------------------------------------------------------------------------
# build_user_credentials
# ---------------------------------------------------------------------------


class TestBuildUserCredentials:
    """Tests for build_user_credentials."""

    def test_builds_from_stored_tokens(self, settings):
        creds = build_user_credentials(_make_user(), settings)

        assert creds.token == "old-token"
        assert creds.refresh_token == "refresh-token"
        assert creds.token_uri == GOOGLE_TOKEN_URI
        assert creds.client_id == "client-id"
        assert creds.scopes == DEFAULT_GMAIL_SCOPES
        # google-auth expects a naive UTC expiry
        assert creds.expiry == datetime(2026, 3, 10, 12, 2)

    def test_missing_access_token(self, settings):
        with pytest.raises(MailCredentialMissingError):
            build_user_credentials(_make_user(gmail_access_token=None), settings)


# ---------------------------------------------------------------------------
# needs_refresh
# ---------------------------------------------------------------------------


class TestNeedsRefresh:
    """Tests for the refresh-margin check."""

    def test_within_margin(self):
        assert needs_refresh(_make_user(), NOW, 300) is True

    def test_outside_margin(self):
        user = _make_user(token_expires_at=NOW + timedelta(hours=1))
        assert needs_refresh(user, NOW, 300) is False

    def test_already_expired(self):
        user = _make_user(token_expires_at=NOW - timedelta(minutes=1))
        assert needs_refresh(user, NOW, 0) is True

    def test_no_expiry_is_treated_as_valid(self):
        assert needs_refresh(_make_user(token_expires_at=None), NOW, 300) is False


# ---------------------------------------------------------------------------
# ensure_fresh_credential
# ---------------------------------------------------------------------------


class TestEnsureFreshCredential:
    """Tests for ensure_fresh_credential."""

    def test_fresh_token_left_untouched(self, settings):
        store = MagicMock()
        user = _make_user(token_expires_at=NOW + timedelta(hours=1))

        with patch("chaser.auth.credentials._refresh") as mock_refresh:
            result = ensure_fresh_credential(user, store, settings, now=NOW)

        assert result is user
        mock_refresh.assert_not_called()
        store.update_access_token.assert_not_called()

    def test_refreshes_and_persists(self, settings):
        store = MagicMock()
        user = _make_user()

        def fake_refresh(credentials, timeout):
            credentials.token = "new-token"
            credentials.expiry = datetime(2026, 3, 10, 13, 0)

        with patch("chaser.auth.credentials._refresh", side_effect=fake_refresh):
            result = ensure_fresh_credential(user, store, settings, now=NOW)

        expected_expiry = datetime(2026, 3, 10, 13, 0, tzinfo=UTC)
        store.update_access_token.assert_called_once_with(user.id, "new-token", expected_expiry)
        assert result.gmail_access_token.get_secret_value() == "new-token"
        assert result.token_expires_at == expected_expiry

    def test_refresh_rejected(self, settings):
        store = MagicMock()
        with patch(
            "chaser.auth.credentials._refresh", side_effect=RefreshError("invalid_grant")
        ):
            with pytest.raises(CredentialRefreshError, match="invalid_grant"):
                ensure_fresh_credential(_make_user(), store, settings, now=NOW)
        store.update_access_token.assert_not_called()

    def test_no_refresh_token(self, settings):
        user = _make_user(gmail_refresh_token=None)
        with pytest.raises(CredentialRefreshError, match="no refresh token"):
            ensure_fresh_credential(user, MagicMock(), settings, now=NOW)

    def test_no_credential(self, settings):
        user = _make_user(gmail_access_token=None)
        with pytest.raises(MailCredentialMissingError):
            ensure_fresh_credential(user, MagicMock(), settings, now=NOW)


# ---------------------------------------------------------------------------
# get_gmail_service
# ---------------------------------------------------------------------------


class TestGetGmailService:
    """Tests for get_gmail_service."""

    @patch("chaser.auth.credentials.build")
    def test_builds_gmail_v1_service(self, mock_build: MagicMock):
        """Calls build('gmail', 'v1') with an authorized http transport."""
        mock_service = MagicMock()
        mock_build.return_value = mock_service

        result = get_gmail_service(MagicMock(), timeout=5.0)

        assert result is mock_service
        args, kwargs = mock_build.call_args
        assert args == ("gmail", "v1")
        assert kwargs["cache_discovery"] is False
        assert "http" in kwargs
