"""Payment detection: close active requests whose thread shows payment.

Each active request with a thread is re-read and classified by the language
model.  A positive answer closes the request silently; no follow-up or
notification is produced.  How often a request is re-checked is governed by
:class:`PaymentCheckPolicy`.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

import structlog

from chaser.config import PaymentCheckPolicy
from chaser.domain.models import PaymentRequest, User
from chaser.engine.ingestion import thread_bodies
from chaser.engine.timing import is_due
from chaser.mail.gateway import MailGateway
from chaser.observability.metrics import REQUESTS_AUTO_CLOSED
from chaser.state_machine import RequestEvent, RequestStateMachine
from chaser.store.store import ChaserStore

logger = structlog.get_logger()


class PaymentClassifier(Protocol):
    def classify_paid(self, bodies: list[str]) -> bool: ...


class PaymentDetector:
    """Re-examine active requests and auto-close the paid ones.

    Args:
        store: The chaser store.
        mail: The mail collaborator.
        llm: Anything with a ``classify_paid(bodies)`` method.
        policy: ``every_run`` checks each request on every invocation;
            ``followup_interval`` only checks requests whose follow-up is due.
    """

    def __init__(
        self,
        store: ChaserStore,
        mail: MailGateway,
        llm: PaymentClassifier,
        policy: PaymentCheckPolicy = PaymentCheckPolicy.EVERY_RUN,
    ) -> None:
        self._store = store
        self._mail = mail
        self._llm = llm
        self._policy = policy

    def should_check(self, request: PaymentRequest, now: datetime) -> bool:
        """Return True if *request* is eligible for a payment check at *now*."""
        if not request.thread_id:
            return False
        if self._policy is PaymentCheckPolicy.EVERY_RUN:
            return True
        return is_due(request, self._store.latest_followup(request.id), now)

    def check(self, requests: list[PaymentRequest], now: datetime) -> int:
        """Classify each eligible request's thread and close the paid ones.

        A failure on one request is logged and does not stop the others.

        Args:
            requests: Active requests to consider, possibly across users.
            now: The evaluation time.

        Returns:
            The number of requests closed.
        """
        users: dict[str, User | None] = {}
        closed = 0

        for request in requests:
            if not self.should_check(request, now):
                continue
            if request.user_id not in users:
                users[request.user_id] = self._store.get_user(request.user_id)
            user = users[request.user_id]
            if user is None or not user.has_mail_credential:
                logger.debug(
                    "Skipping payment check", request_id=request.id, reason="no_credential"
                )
                continue
            try:
                if self._check_one(user, request):
                    closed += 1
            except Exception:
                logger.exception("Payment check failed", request_id=request.id, user_id=user.id)
        return closed

    def _check_one(self, user: User, request: PaymentRequest) -> bool:
        messages = self._mail.get_thread_messages(user, request.thread_id or "")
        if not messages or not self._llm.classify_paid(thread_bodies(messages)):
            return False

        RequestStateMachine(request.status).trigger(RequestEvent.AUTO_CLOSE)
        if not self._store.close_if_active(request.id):
            return False

        REQUESTS_AUTO_CLOSED.inc()
        logger.info("Auto-closed paid request", request_id=request.id, user_id=user.id)
        return True
