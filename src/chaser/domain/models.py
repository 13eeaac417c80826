"""Pydantic v2 models for users, payment requests, follow-ups, and run summaries."""

import uuid
from datetime import UTC, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from chaser.domain.types import (
    DEFAULT_FOLLOWUP_INTERVAL_DAYS,
    MAX_FOLLOWUP_INTERVAL_DAYS,
    MIN_FOLLOWUP_INTERVAL_DAYS,
    FollowupAction,
    FollowupMode,
    RequestStatus,
)


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class User(BaseModel):
    """An account whose mailbox is watched for payment-chase threads.

    The Gmail credential pair is opaque to the orchestration core, which only
    asks whether it is present (:attr:`has_mail_credential`).
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    email: str
    gmail_access_token: SecretStr | None = None
    gmail_refresh_token: SecretStr | None = None
    token_expires_at: datetime | None = None
    label_id: str | None = None
    followup_action: FollowupAction = FollowupAction.DRAFT
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def has_mail_credential(self) -> bool:
        """Return True if the user has an access token to talk to Gmail with."""
        return bool(self.gmail_access_token and self.gmail_access_token.get_secret_value())


class PaymentRequest(BaseModel):
    """A tracked payment-chase conversation.

    Uses Decimal for the owed amount -- float inputs are rejected.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    user_id: str
    recipient_email: str
    recipient_name: str | None = None
    subject: str | None = None
    amount: Decimal | None = None
    original_message_id: str | None = None
    thread_id: str | None = None
    status: RequestStatus = RequestStatus.ACTIVE
    followup_interval: int | None = DEFAULT_FOLLOWUP_INTERVAL_DAYS
    context: str | None = None
    voice: str | None = None
    initial_request_at: datetime | None = None
    created_at: datetime = Field(default_factory=_utcnow)

    @field_validator("amount", mode="before")
    @classmethod
    def reject_float_inputs(cls, v: object) -> object:
        """Reject float inputs for monetary fields to prevent precision errors."""
        if isinstance(v, float):
            raise ValueError("Use Decimal or string, not float, for monetary values")
        return v

    @field_validator("followup_interval")
    @classmethod
    def interval_in_range(cls, v: int | None) -> int | None:
        """Ensure the follow-up interval stays within 1-90 days."""
        if v is not None and not MIN_FOLLOWUP_INTERVAL_DAYS <= v <= MAX_FOLLOWUP_INTERVAL_DAYS:
            raise ValueError(
                f"followup_interval must be between {MIN_FOLLOWUP_INTERVAL_DAYS} "
                f"and {MAX_FOLLOWUP_INTERVAL_DAYS} days"
            )
        return v

    @field_validator("recipient_email")
    @classmethod
    def recipient_email_must_not_be_empty(cls, v: str) -> str:
        """Ensure recipient_email is not empty or whitespace-only."""
        if not v.strip():
            raise ValueError("recipient_email must not be empty")
        return v

    @property
    def effective_interval(self) -> int:
        """The follow-up interval in days, defaulting to 7 when unset."""
        return self.followup_interval or DEFAULT_FOLLOWUP_INTERVAL_DAYS


class Followup(BaseModel):
    """One recorded draft-creation or send attempt against a request."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    request_id: str
    external_message_id: str | None = None
    followup_number: int = Field(ge=1)
    mode: FollowupMode
    sent_at: datetime = Field(default_factory=_utcnow)


class Voice(BaseModel):
    """A named writing style consumed by follow-up generation.

    ``escalates`` is False for deliberately calm voices whose follow-ups
    should stay light no matter how many have been sent.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    label: str
    description: str
    examples: str | None = None
    color: str | None = None
    sort_order: int = 0
    escalates: bool = True


class RunSummary(BaseModel):
    """Counts returned by the scheduled all-users run."""

    processed: int = 0
    skipped: int = 0
    errors: int = 0
    total: int = 0
    synced: int = 0
    auto_closed: int = 0


class SyncSummary(BaseModel):
    """Counts returned by a single user's sync."""

    synced: int = 0
    auto_completed: int = 0
    total: int = 0


class FollowupResult(BaseModel):
    """Outcome of one dispatched follow-up."""

    mode: FollowupMode
    followup_number: int
    external_message_id: str | None = None
