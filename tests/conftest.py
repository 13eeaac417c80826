"""Shared pytest fixtures for the payment chaser test suite."""

from __future__ import annotations

import sqlite3
from collections.abc import Callable, Iterator
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any

import pytest
from pydantic import SecretStr

from chaser.config import Settings
from chaser.domain.models import Followup, PaymentRequest, User
from chaser.domain.types import FollowupAction
from chaser.store.schema import init_db
from chaser.store.serializers import row_to_followup, row_to_request
from chaser.store.store import ChaserStore

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)


@pytest.fixture
def now() -> datetime:
    """A fixed evaluation time so timing rules are deterministic."""
    return NOW


@pytest.fixture
def conn() -> Iterator[sqlite3.Connection]:
    """In-memory SQLite connection with every chaser table created."""
    connection = init_db(":memory:")
    yield connection
    connection.close()


@pytest.fixture
def store(conn: sqlite3.Connection) -> ChaserStore:
    """ChaserStore backed by the in-memory connection."""
    return ChaserStore(conn)


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(  # type: ignore[call-arg]
        _env_file=None,
        google_client_id="client-id",
        google_client_secret=SecretStr("client-secret"),
        anthropic_api_key=SecretStr("sk-test"),
    )


@pytest.fixture
def user(store: ChaserStore) -> User:
    """A persisted user with a Gmail credential that never needs refreshing."""
    return store.create_user(
        User(
            email="me@freelancer.dev",
            gmail_access_token=SecretStr("access-token"),
            gmail_refresh_token=SecretStr("refresh-token"),
            token_expires_at=None,
            label_id="Label_1",
            followup_action=FollowupAction.DRAFT,
            created_at=NOW - timedelta(days=60),
        )
    )


@pytest.fixture
def make_request(store: ChaserStore, user: User) -> Callable[..., PaymentRequest]:
    """Factory persisting a request for ``user``; keyword overrides are applied."""
    counter = {"n": 0}

    def _make(**overrides: Any) -> PaymentRequest:
        counter["n"] += 1
        fields: dict[str, Any] = {
            "user_id": user.id,
            "recipient_email": "client@acme.com",
            "recipient_name": "Dana Client",
            "subject": "Invoice #1042",
            "amount": Decimal("1250.00"),
            "thread_id": f"thread-{counter['n']}",
            "context": "Website redesign, phase one",
            "voice": "accountant",
            "initial_request_at": NOW - timedelta(days=10),
            "created_at": NOW - timedelta(days=10),
        }
        fields.update(overrides)
        request = PaymentRequest(**fields)
        store.insert_requests([request])
        return request

    return _make


@pytest.fixture
def requests_of(conn: sqlite3.Connection) -> Callable[[str], list[PaymentRequest]]:
    """Read back every stored request for a user, in insertion order."""

    def _read(user_id: str) -> list[PaymentRequest]:
        rows = conn.execute(
            "SELECT * FROM requests WHERE user_id = ? ORDER BY rowid", (user_id,)
        ).fetchall()
        return [row_to_request(r) for r in rows]

    return _read


@pytest.fixture
def followups_of(conn: sqlite3.Connection) -> Callable[[str], list[Followup]]:
    """Read back every recorded follow-up for a request, in sequence order."""

    def _read(request_id: str) -> list[Followup]:
        rows = conn.execute(
            "SELECT * FROM followups WHERE request_id = ? ORDER BY followup_number",
            (request_id,),
        ).fetchall()
        return [row_to_followup(r) for r in rows]

    return _read
