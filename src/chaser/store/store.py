"""SQLite-backed store for users, payment requests, follow-ups, and voices.

Mirrors the rest of the persistence code: accepts a sqlite3.Connection, uses
parameterized queries exclusively, and commits synchronously after writes.
A re-entrant lock serializes access so HTTP worker threads can share one
connection.
"""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from typing import Any

from chaser.domain.models import Followup, PaymentRequest, User, Voice
from chaser.domain.types import FollowupAction, RequestStatus
from chaser.store.serializers import (
    format_amount,
    format_timestamp,
    request_to_params,
    row_to_followup,
    row_to_request,
    row_to_user,
    row_to_voice,
)

# Columns a user edit may change on a request.
EDITABLE_REQUEST_FIELDS: frozenset[str] = frozenset(
    {
        "recipient_name",
        "recipient_email",
        "amount",
        "voice",
        "followup_interval",
        "context",
        "status",
    }
)


class ChaserStore:
    """Persist and retrieve chaser records in SQLite."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialize with an open database connection.

        Args:
            conn: An open sqlite3.Connection whose database already has the
                  chaser tables (see ``init_db`` / ``init_schema``).
        """
        self._conn = conn
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _fetchone(self, sql: str, params: Iterable[Any] = ()) -> sqlite3.Row | None:
        with self._lock:
            row: sqlite3.Row | None = self._conn.execute(sql, tuple(params)).fetchone()
            return row

    def _fetchall(self, sql: str, params: Iterable[Any] = ()) -> list[sqlite3.Row]:
        with self._lock:
            return list(self._conn.execute(sql, tuple(params)).fetchall())

    def _write(self, sql: str, params: Iterable[Any] = ()) -> int:
        """Execute a single write, commit, and return the affected row count."""
        with self._lock:
            cursor = self._conn.execute(sql, tuple(params))
            self._conn.commit()
            return cursor.rowcount

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> User:
        """Insert a user row (sign-in happens outside the core; used for setup)."""
        self._write(
            """
            INSERT INTO users (
                id, email, gmail_access_token, gmail_refresh_token,
                token_expires_at, gmail_label_id, followup_action, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                user.id,
                user.email,
                user.gmail_access_token.get_secret_value() if user.gmail_access_token else None,
                user.gmail_refresh_token.get_secret_value() if user.gmail_refresh_token else None,
                format_timestamp(user.token_expires_at),
                user.label_id,
                user.followup_action.value,
                format_timestamp(user.created_at),
            ),
        )
        return user

    def get_user(self, user_id: str) -> User | None:
        """Return the user with *user_id*, or ``None``."""
        row = self._fetchone("SELECT * FROM users WHERE id = ?", (user_id,))
        return row_to_user(row) if row else None

    def list_users(self) -> list[User]:
        """Return every user in insertion order."""
        return [row_to_user(r) for r in self._fetchall("SELECT * FROM users ORDER BY rowid")]

    def set_label_id(self, user_id: str, label_id: str) -> None:
        """Cache the Gmail label identifier on the user."""
        self._write("UPDATE users SET gmail_label_id = ? WHERE id = ?", (label_id, user_id))

    def set_followup_action(self, user_id: str, action: FollowupAction) -> bool:
        """Update the user's draft/send preference.

        Returns:
            True if the user exists and was updated.
        """
        count = self._write(
            "UPDATE users SET followup_action = ? WHERE id = ?", (action.value, user_id)
        )
        return count == 1

    def update_access_token(
        self, user_id: str, access_token: str, expires_at: datetime | None
    ) -> None:
        """Persist a refreshed Gmail access token and its expiry."""
        self._write(
            "UPDATE users SET gmail_access_token = ?, token_expires_at = ? WHERE id = ?",
            (access_token, format_timestamp(expires_at), user_id),
        )

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def get_request(self, request_id: str, user_id: str | None = None) -> PaymentRequest | None:
        """Return a request, optionally restricted to an owning user."""
        if user_id is None:
            row = self._fetchone("SELECT * FROM requests WHERE id = ?", (request_id,))
        else:
            row = self._fetchone(
                "SELECT * FROM requests WHERE id = ? AND user_id = ?", (request_id, user_id)
            )
        return row_to_request(row) if row else None

    def list_thread_ids(self, user_id: str) -> set[str]:
        """Return the thread identifiers already tracked for *user_id*."""
        rows = self._fetchall(
            "SELECT thread_id FROM requests WHERE user_id = ? AND thread_id IS NOT NULL",
            (user_id,),
        )
        return {r["thread_id"] for r in rows}

    def list_active_requests(self, user_id: str | None = None) -> list[PaymentRequest]:
        """Return active requests in insertion order, optionally for one user."""
        if user_id is None:
            rows = self._fetchall(
                "SELECT * FROM requests WHERE status = ? ORDER BY rowid",
                (RequestStatus.ACTIVE.value,),
            )
        else:
            rows = self._fetchall(
                "SELECT * FROM requests WHERE status = ? AND user_id = ? ORDER BY rowid",
                (RequestStatus.ACTIVE.value, user_id),
            )
        return [row_to_request(r) for r in rows]

    def insert_requests(self, requests: list[PaymentRequest]) -> int:
        """Insert a batch of new requests in a single transaction.

        Rows whose ``(user_id, thread_id)`` is already tracked are ignored, so
        an overlapping sync cannot create a duplicate.

        Returns:
            The number of rows actually inserted.
        """
        if not requests:
            return 0
        inserted = 0
        with self._lock:
            try:
                for request in requests:
                    cursor = self._conn.execute(
                        """
                        INSERT OR IGNORE INTO requests (
                            id, user_id, recipient_email, recipient_name, subject,
                            amount, original_message_id, thread_id, status,
                            followup_interval, context, voice, initial_request_at,
                            created_at
                        ) VALUES (
                            :id, :user_id, :recipient_email, :recipient_name, :subject,
                            :amount, :original_message_id, :thread_id, :status,
                            :followup_interval, :context, :voice, :initial_request_at,
                            :created_at
                        )
                        """,
                        request_to_params(request),
                    )
                    inserted += cursor.rowcount
                self._conn.commit()
            except sqlite3.Error:
                self._conn.rollback()
                raise
        return inserted

    def update_request(self, request_id: str, changes: dict[str, Any]) -> None:
        """Apply a user edit to a request.

        Args:
            request_id: The request to update.
            changes: Column -> value mapping; keys must be in
                ``EDITABLE_REQUEST_FIELDS``.

        Raises:
            ValueError: If a key is not an editable column.
        """
        if not changes:
            return
        unknown = set(changes) - EDITABLE_REQUEST_FIELDS
        if unknown:
            raise ValueError(f"Not editable: {', '.join(sorted(unknown))}")

        params: dict[str, Any] = {}
        for key, value in changes.items():
            if key == "amount":
                value = format_amount(value)
            elif key == "status":
                value = RequestStatus(value).value
            params[key] = value

        assignments = ", ".join(f"{key} = :{key}" for key in sorted(params))
        params["request_id"] = request_id
        self._write(f"UPDATE requests SET {assignments} WHERE id = :request_id", params)

    def close_if_active(self, request_id: str) -> bool:
        """Atomically move an active request to ``closed``.

        Returns:
            True if this call closed the request, False if it was no longer active.
        """
        count = self._write(
            "UPDATE requests SET status = ? WHERE id = ? AND status = ?",
            (RequestStatus.CLOSED.value, request_id, RequestStatus.ACTIVE.value),
        )
        return count == 1

    def delete_request(self, request_id: str) -> None:
        """Delete a request; its follow-ups go with it (ON DELETE CASCADE)."""
        self._write("DELETE FROM requests WHERE id = ?", (request_id,))

    def count_active_requests(self) -> int:
        """Return the number of active requests system-wide."""
        row = self._fetchone(
            "SELECT COUNT(*) AS n FROM requests WHERE status = ?", (RequestStatus.ACTIVE.value,)
        )
        return int(row["n"]) if row else 0

    # ------------------------------------------------------------------
    # Follow-up lease (per-request mutual exclusion)
    # ------------------------------------------------------------------

    def acquire_followup_lease(
        self, request_id: str, token: str, now: datetime, ttl_seconds: int
    ) -> bool:
        """Claim the request's follow-up lease with a single conditional update.

        The claim succeeds only if the request is still active and the lease
        is free or has expired.

        Returns:
            True if *token* now holds the lease.
        """
        count = self._write(
            """
            UPDATE requests
            SET lease_token = ?, lease_expires_at = ?
            WHERE id = ?
              AND status = ?
              AND (lease_token IS NULL OR lease_expires_at IS NULL OR lease_expires_at <= ?)
            """,
            (
                token,
                format_timestamp(now + timedelta(seconds=ttl_seconds)),
                request_id,
                RequestStatus.ACTIVE.value,
                format_timestamp(now),
            ),
        )
        return count == 1

    def release_followup_lease(self, request_id: str, token: str) -> None:
        """Release the lease if *token* still holds it."""
        self._write(
            "UPDATE requests SET lease_token = NULL, lease_expires_at = NULL "
            "WHERE id = ? AND lease_token = ?",
            (request_id, token),
        )

    # ------------------------------------------------------------------
    # Follow-ups
    # ------------------------------------------------------------------

    def count_followups(self, request_id: str) -> int:
        """Return how many follow-ups have been recorded for *request_id*."""
        row = self._fetchone(
            "SELECT COUNT(*) AS n FROM followups WHERE request_id = ?", (request_id,)
        )
        return int(row["n"]) if row else 0

    def latest_followup(self, request_id: str) -> Followup | None:
        """Return the most recent follow-up for *request_id*, or ``None``."""
        row = self._fetchone(
            "SELECT * FROM followups WHERE request_id = ? "
            "ORDER BY sent_at DESC, followup_number DESC LIMIT 1",
            (request_id,),
        )
        return row_to_followup(row) if row else None

    def insert_followup(self, followup: Followup) -> Followup:
        """Record a follow-up.

        Raises:
            sqlite3.IntegrityError: If the sequence number is already taken.
        """
        self._write(
            """
            INSERT INTO followups (id, request_id, email_id, followup_number, mode, sent_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                followup.id,
                followup.request_id,
                followup.external_message_id,
                followup.followup_number,
                followup.mode.value,
                format_timestamp(followup.sent_at),
            ),
        )
        return followup

    # ------------------------------------------------------------------
    # Voices
    # ------------------------------------------------------------------

    def get_voice(self, name: str) -> Voice | None:
        """Return the catalog voice called *name*, or ``None``."""
        row = self._fetchone("SELECT * FROM voices WHERE name = ?", (name,))
        return row_to_voice(row) if row else None

    def list_voices(self) -> list[Voice]:
        """Return the voice catalog ordered by display order."""
        rows = self._fetchall("SELECT * FROM voices ORDER BY sort_order, name")
        return [row_to_voice(r) for r in rows]

    def upsert_voice(self, voice: Voice) -> None:
        """Insert or update a catalog voice by name."""
        now = datetime.now(tz=UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
        self._write(
            """
            INSERT INTO voices (
                name, label, description, examples, color, sort_order, escalates, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT (name) DO UPDATE SET
                label = excluded.label,
                description = excluded.description,
                examples = excluded.examples,
                color = excluded.color,
                sort_order = excluded.sort_order,
                escalates = excluded.escalates
            """,
            (
                voice.name,
                voice.label,
                voice.description,
                voice.examples,
                voice.color,
                voice.sort_order,
                1 if voice.escalates else 0,
                now,
            ),
        )
