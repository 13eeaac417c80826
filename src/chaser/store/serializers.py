"""Row <-> model conversion helpers for the chaser store.

Decimal amounts are stored as strings so no precision is lost, and
timestamps as fixed-width ISO 8601 UTC strings so that lexicographic
``ORDER BY`` matches chronological order.
"""

from __future__ import annotations

import sqlite3
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from chaser.domain.models import Followup, PaymentRequest, User, Voice

_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def format_timestamp(value: datetime | None) -> str | None:
    """Render an aware datetime as a UTC ISO 8601 string.

    Naive datetimes are assumed to already be UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).strftime(_TIMESTAMP_FORMAT)


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a stored timestamp back into an aware UTC datetime."""
    if not value:
        return None
    try:
        return datetime.strptime(value, _TIMESTAMP_FORMAT).replace(tzinfo=UTC)
    except ValueError:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def format_amount(value: Decimal | None) -> str | None:
    """Serialize a Decimal amount to its exact string form."""
    return None if value is None else str(value)


def row_to_user(row: sqlite3.Row) -> User:
    """Build a :class:`User` from a ``users`` row."""
    return User(
        id=row["id"],
        email=row["email"],
        gmail_access_token=row["gmail_access_token"],
        gmail_refresh_token=row["gmail_refresh_token"],
        token_expires_at=parse_timestamp(row["token_expires_at"]),
        label_id=row["gmail_label_id"],
        followup_action=row["followup_action"] or "draft",
        created_at=parse_timestamp(row["created_at"]),
    )


def row_to_request(row: sqlite3.Row) -> PaymentRequest:
    """Build a :class:`PaymentRequest` from a ``requests`` row."""
    return PaymentRequest(
        id=row["id"],
        user_id=row["user_id"],
        recipient_email=row["recipient_email"],
        recipient_name=row["recipient_name"],
        subject=row["subject"],
        amount=row["amount"],
        original_message_id=row["original_message_id"],
        thread_id=row["thread_id"],
        status=row["status"],
        followup_interval=row["followup_interval"],
        context=row["context"],
        voice=row["voice"],
        initial_request_at=parse_timestamp(row["initial_request_at"]),
        created_at=parse_timestamp(row["created_at"]),
    )


def request_to_params(request: PaymentRequest) -> dict[str, Any]:
    """Flatten a :class:`PaymentRequest` into named SQL parameters."""
    return {
        "id": request.id,
        "user_id": request.user_id,
        "recipient_email": request.recipient_email,
        "recipient_name": request.recipient_name,
        "subject": request.subject,
        "amount": format_amount(request.amount),
        "original_message_id": request.original_message_id,
        "thread_id": request.thread_id,
        "status": request.status.value,
        "followup_interval": request.followup_interval,
        "context": request.context,
        "voice": request.voice,
        "initial_request_at": format_timestamp(request.initial_request_at),
        "created_at": format_timestamp(request.created_at),
    }


def row_to_followup(row: sqlite3.Row) -> Followup:
    """Build a :class:`Followup` from a ``followups`` row."""
    return Followup(
        id=row["id"],
        request_id=row["request_id"],
        external_message_id=row["email_id"],
        followup_number=row["followup_number"],
        mode=row["mode"],
        sent_at=parse_timestamp(row["sent_at"]),
    )


def row_to_voice(row: sqlite3.Row) -> Voice:
    """Build a :class:`Voice` from a ``voices`` row."""
    return Voice(
        name=row["name"],
        label=row["label"],
        description=row["description"],
        examples=row["examples"],
        color=row["color"],
        sort_order=row["sort_order"],
        escalates=bool(row["escalates"]),
    )
