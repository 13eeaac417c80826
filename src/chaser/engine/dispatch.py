"""Draft-versus-send dispatch of a generated follow-up.

The user's ``followup_action`` preference selects a strategy once per
dispatch; the strategy talks to the mail collaborator, and the dispatcher
records exactly one :class:`Followup` for whichever branch ran.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

import structlog

from chaser.domain.errors import MissingThreadError
from chaser.domain.models import Followup, FollowupResult, PaymentRequest, User
from chaser.domain.types import FollowupAction, FollowupMode
from chaser.mail.gateway import MailGateway
from chaser.mail.threading import build_followup_subject
from chaser.observability.metrics import FOLLOWUPS_RECORDED
from chaser.store.store import ChaserStore

logger = structlog.get_logger()


class DispatchStrategy(Protocol):
    """How a follow-up body reaches the mailbox."""

    mode: FollowupMode

    def deliver(
        self, mail: MailGateway, user: User, thread_id: str, to: str, subject: str, body: str
    ) -> str | None:
        """Hand the reply to the mail collaborator and return its message id."""
        ...


class DraftStrategy:
    """Stage the reply as a draft in the thread; nothing is transmitted."""

    mode = FollowupMode.DRAFT

    def deliver(
        self, mail: MailGateway, user: User, thread_id: str, to: str, subject: str, body: str
    ) -> str | None:
        return mail.create_draft(user, thread_id, to, subject, body)


class SendStrategy:
    """Transmit the reply immediately, threaded under the conversation."""

    mode = FollowupMode.SENT

    def deliver(
        self, mail: MailGateway, user: User, thread_id: str, to: str, subject: str, body: str
    ) -> str | None:
        return mail.send_message(user, thread_id, to, subject, body)


_STRATEGIES: dict[FollowupAction, DispatchStrategy] = {
    FollowupAction.DRAFT: DraftStrategy(),
    FollowupAction.SEND: SendStrategy(),
}


def select_strategy(action: FollowupAction | str | None) -> DispatchStrategy:
    """Return the strategy for a user preference; anything unrecognised drafts."""
    try:
        return _STRATEGIES[FollowupAction(action)]
    except ValueError:
        return _STRATEGIES[FollowupAction.DRAFT]


class Dispatcher:
    """Deliver a generated follow-up and record it.

    Args:
        store: Store the follow-up row is written to.
        mail: The mail collaborator.
    """

    def __init__(self, store: ChaserStore, mail: MailGateway) -> None:
        self._store = store
        self._mail = mail

    def dispatch(
        self,
        user: User,
        request: PaymentRequest,
        body: str,
        followup_number: int,
        now: datetime,
    ) -> FollowupResult:
        """Draft or send *body* per the user's preference and record the follow-up.

        Args:
            user: The request's owner.
            request: The request being followed up.
            body: The generated body text.
            followup_number: The sequence number claimed under the lease.
            now: Timestamp recorded on the follow-up.

        Returns:
            The mode used, the sequence number, and the collaborator's message
            id (``None`` when it returned none).

        Raises:
            MissingThreadError: If the request has no thread to reply in.
        """
        if not request.thread_id:
            raise MissingThreadError(request.id)

        strategy = select_strategy(user.followup_action)
        subject = build_followup_subject(request.subject)
        external_id = strategy.deliver(
            self._mail, user, request.thread_id, request.recipient_email, subject, body
        )

        followup = Followup(
            request_id=request.id,
            external_message_id=external_id,
            followup_number=followup_number,
            mode=strategy.mode,
            sent_at=now,
        )
        self._store.insert_followup(followup)
        FOLLOWUPS_RECORDED.labels(mode=strategy.mode.value).inc()

        logger.info(
            "Recorded follow-up",
            request_id=request.id,
            followup_number=followup_number,
            mode=strategy.mode.value,
            external_message_id=external_id,
        )
        return FollowupResult(
            mode=strategy.mode,
            followup_number=followup_number,
            external_message_id=external_id,
        )
