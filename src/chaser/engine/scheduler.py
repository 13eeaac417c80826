"""Follow-up scheduling: decide which requests are due and follow them up.

Each due request goes through one pipeline under its lease: claim the next
sequence number, resolve the voice, generate the body, dispatch, record.
Skips (not due, no credential, no thread or recipient, lease busy) are
counted separately from failures.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

import structlog

from chaser.domain.errors import (
    FollowupInProgressError,
    MailCredentialMissingError,
    MissingThreadError,
    PreconditionFailedError,
    RequestNotActiveError,
)
from chaser.domain.models import FollowupResult, PaymentRequest, RunSummary, User
from chaser.domain.types import UNKNOWN_RECIPIENT, RequestStatus
from chaser.engine.dispatch import Dispatcher
from chaser.engine.locks import request_lease
from chaser.engine.timing import days_since_initial, is_due
from chaser.llm.models import GenerationParams
from chaser.llm.voices import VoiceCatalog
from chaser.store.store import ChaserStore

logger = structlog.get_logger()


class FollowupGenerator(Protocol):
    def generate_followup(self, params: GenerationParams) -> str: ...


def skip_reason(request: PaymentRequest, user: User | None) -> str | None:
    """Return why *request* cannot be followed up right now, or ``None``."""
    if user is None or not user.has_mail_credential:
        return "no_mail_credential"
    if not request.thread_id:
        return "no_thread"
    if not request.recipient_email or request.recipient_email == UNKNOWN_RECIPIENT:
        return "no_recipient"
    return None


class FollowupScheduler:
    """Drive generation and dispatch for due requests.

    Args:
        store: The chaser store.
        llm: Anything with a ``generate_followup(params)`` method.
        voices: Voice catalog used to resolve each request's voice.
        dispatcher: Delivers and records the generated follow-up.
        default_voice: Voice used when a request names none.
        lease_seconds: Lifetime of an unreleased follow-up lease.
    """

    def __init__(
        self,
        store: ChaserStore,
        llm: FollowupGenerator,
        voices: VoiceCatalog,
        dispatcher: Dispatcher,
        *,
        default_voice: str,
        lease_seconds: int,
    ) -> None:
        self._store = store
        self._llm = llm
        self._voices = voices
        self._dispatcher = dispatcher
        self._default_voice = default_voice
        self._lease_seconds = lease_seconds

    def run_due(self, requests: list[PaymentRequest], now: datetime) -> RunSummary:
        """Follow up every due request, one at a time in the given order.

        Args:
            requests: Active requests in store order.
            now: The evaluation time.

        Returns:
            ``processed``, ``skipped``, ``errors`` and ``total`` counts.
        """
        summary = RunSummary(total=len(requests))
        users: dict[str, User | None] = {}
        seen: set[str] = set()

        for request in requests:
            if request.id in seen:
                continue
            seen.add(request.id)

            if request.user_id not in users:
                users[request.user_id] = self._store.get_user(request.user_id)
            user = users[request.user_id]

            reason = skip_reason(request, user)
            if reason is not None or user is None:
                logger.info("Skipping request", request_id=request.id, reason=reason)
                summary.skipped += 1
                continue

            if not is_due(request, self._store.latest_followup(request.id), now):
                logger.debug("Follow-up not due", request_id=request.id)
                summary.skipped += 1
                continue

            try:
                with request_lease(
                    self._store, request.id, now=now, ttl_seconds=self._lease_seconds
                ):
                    result = self._follow_up_if_due(user, request, now)
            except FollowupInProgressError:
                logger.info("Skipping request", request_id=request.id, reason="lease_busy")
                summary.skipped += 1
                continue
            except Exception:
                logger.exception("Follow-up failed", request_id=request.id, user_id=user.id)
                summary.errors += 1
                continue

            if result is None:
                summary.skipped += 1
            else:
                summary.processed += 1

        return summary

    def follow_up_now(
        self, user: User, request: PaymentRequest, now: datetime
    ) -> FollowupResult:
        """Follow up one request immediately, ignoring its interval.

        Raises:
            RequestNotActiveError: If the request is closed or cancelled.
            MailCredentialMissingError: If the owner has no mail credential.
            MissingThreadError: If the request has no thread.
            PreconditionFailedError: If the request has no usable recipient.
            FollowupInProgressError: If another trigger holds the lease.
        """
        if request.status != RequestStatus.ACTIVE:
            raise RequestNotActiveError(request.id, request.status)
        reason = skip_reason(request, user)
        if reason == "no_mail_credential":
            raise MailCredentialMissingError(user.id)
        if reason == "no_thread":
            raise MissingThreadError(request.id)
        if reason == "no_recipient":
            raise PreconditionFailedError(f"Request '{request.id}' has no recipient address")

        with request_lease(self._store, request.id, now=now, ttl_seconds=self._lease_seconds):
            return self._follow_up(user, request, now)

    def _follow_up_if_due(
        self, user: User, request: PaymentRequest, now: datetime
    ) -> FollowupResult | None:
        # Re-read under the lease: another trigger may have just recorded one.
        if not is_due(request, self._store.latest_followup(request.id), now):
            logger.info("Follow-up no longer due", request_id=request.id)
            return None
        return self._follow_up(user, request, now)

    def _follow_up(self, user: User, request: PaymentRequest, now: datetime) -> FollowupResult:
        followup_number = self._store.count_followups(request.id) + 1
        params = GenerationParams(
            recipient_name=request.recipient_name,
            amount=request.amount,
            context=request.context,
            subject=request.subject,
            voice=self._voices.resolve(request.voice or self._default_voice),
            followup_number=followup_number,
            days_since_initial=days_since_initial(request, now),
        )
        body = self._llm.generate_followup(params)
        return self._dispatcher.dispatch(user, request, body, followup_number, now)
