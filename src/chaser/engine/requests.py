"""User edits to requests and follow-up preferences.

Edits apply only the fields supplied.  A status change goes through the
request state machine, so a user can mark a request paid, cancel it, or
reopen a closed or cancelled one, but cannot jump between terminal states.
"""

from __future__ import annotations

from decimal import Decimal

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator

from chaser.domain.errors import NotFoundError
from chaser.domain.models import PaymentRequest
from chaser.domain.types import (
    MAX_FOLLOWUP_INTERVAL_DAYS,
    MIN_FOLLOWUP_INTERVAL_DAYS,
    FollowupAction,
    RequestStatus,
)
from chaser.state_machine import RequestStateMachine
from chaser.store.store import ChaserStore

logger = structlog.get_logger()


class RequestUpdate(BaseModel):
    """The fields a user may change on a request; unset fields stay as they are."""

    model_config = ConfigDict(extra="forbid")

    recipient_name: str | None = None
    recipient_email: str | None = None
    amount: Decimal | None = None
    voice: str | None = None
    followup_interval: int | None = Field(
        default=None, ge=MIN_FOLLOWUP_INTERVAL_DAYS, le=MAX_FOLLOWUP_INTERVAL_DAYS
    )
    context: str | None = None
    status: RequestStatus | None = None

    @field_validator("amount", mode="before")
    @classmethod
    def reject_float_inputs(cls, v: object) -> object:
        """Reject float inputs for monetary fields to prevent precision errors."""
        if isinstance(v, float):
            raise ValueError("Use Decimal or string, not float, for monetary values")
        return v

    @field_validator("recipient_email", mode="before")
    @classmethod
    def recipient_email_must_not_be_empty(cls, v: object) -> object:
        """A supplied recipient address must be neither null nor blank."""
        if v is None:
            raise ValueError("recipient_email cannot be null")
        if isinstance(v, str):
            if not v.strip():
                raise ValueError("recipient_email must not be empty")
            return v.strip()
        return v

    @field_validator("status", mode="before")
    @classmethod
    def status_not_null(cls, v: object) -> object:
        """Status may be changed but never cleared."""
        if v is None:
            raise ValueError("status cannot be null")
        return v


def _owned_request(store: ChaserStore, user_id: str, request_id: str) -> PaymentRequest:
    request = store.get_request(request_id, user_id=user_id)
    if request is None:
        raise NotFoundError("request", request_id)
    return request


def update_request(
    store: ChaserStore, user_id: str, request_id: str, update: RequestUpdate
) -> PaymentRequest:
    """Apply a user edit to one of the user's requests.

    Args:
        store: The chaser store.
        user_id: The editing user; must own the request.
        request_id: The request to edit.
        update: The fields to change.

    Returns:
        The request as stored after the edit.

    Raises:
        NotFoundError: If the request does not exist or belongs to someone else.
        InvalidTransitionError: If the requested status change is not allowed.
    """
    request = _owned_request(store, user_id, request_id)
    changes = update.model_dump(exclude_unset=True)

    if "status" in changes:
        RequestStateMachine(request.status).change_to(changes["status"])

    # Validate the merged record before touching the store.
    PaymentRequest.model_validate({**request.model_dump(), **changes})

    store.update_request(request.id, changes)
    logger.info("Updated request", request_id=request.id, fields=sorted(changes))
    return _owned_request(store, user_id, request_id)


def delete_request(store: ChaserStore, user_id: str, request_id: str) -> None:
    """Delete one of the user's requests together with its follow-ups.

    Raises:
        NotFoundError: If the request does not exist or belongs to someone else.
    """
    request = _owned_request(store, user_id, request_id)
    store.delete_request(request.id)
    logger.info("Deleted request", request_id=request.id, user_id=user_id)


def update_followup_action(store: ChaserStore, user_id: str, action: FollowupAction) -> None:
    """Change whether due follow-ups are drafted or sent for *user_id*.

    Raises:
        NotFoundError: If the user does not exist.
    """
    if not store.set_followup_action(user_id, FollowupAction(action)):
        raise NotFoundError("user", user_id)
    logger.info("Updated follow-up action", user_id=user_id, action=str(action))
