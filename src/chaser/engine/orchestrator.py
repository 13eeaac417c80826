"""The follow-up engine: entry points for the scheduled run, sync, and manual trigger.

Wires ingestion, payment detection, scheduling, and dispatch around one
store, one mail gateway, and one language model service:

- ``run_all(now)``: ingest and payment-check every user (when enabled), then
  follow up every due active request.
- ``sync_user(user_id, now)``: ingest and payment-check one user.
- ``followup_now(request_id, user_id, now)``: follow up one request immediately.
"""

from __future__ import annotations

import sqlite3
from datetime import UTC, datetime
from typing import Protocol

import structlog

from chaser.config import Settings
from chaser.domain.errors import MailCredentialMissingError, NotFoundError, RunFailedError
from chaser.domain.models import FollowupResult, PaymentRequest, RunSummary, SyncSummary, User
from chaser.engine.dispatch import Dispatcher
from chaser.engine.ingestion import ThreadIngestor
from chaser.engine.payment_detector import PaymentDetector
from chaser.engine.scheduler import FollowupScheduler
from chaser.llm.models import ExtractedContext, GenerationParams
from chaser.llm.voices import VoiceCatalog
from chaser.mail.gateway import MailGateway
from chaser.observability.metrics import ACTIVE_REQUESTS
from chaser.store.store import ChaserStore

logger = structlog.get_logger()


class LanguageModel(Protocol):
    """The language model operations the engine consumes."""

    def extract_context(self, bodies: list[str]) -> ExtractedContext: ...

    def classify_paid(self, bodies: list[str]) -> bool: ...

    def generate_followup(self, params: GenerationParams) -> str: ...


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class FollowupEngine:
    """Orchestrates ingestion, payment detection, and follow-up dispatch.

    Args:
        store: The chaser store.
        mail: The mail collaborator.
        llm: The language model collaborator.
        settings: Defaults, lease lifetime, and payment-check policy.
        voices: Voice catalog; defaults to one backed by *store*.
    """

    def __init__(
        self,
        store: ChaserStore,
        mail: MailGateway,
        llm: LanguageModel,
        settings: Settings,
        *,
        voices: VoiceCatalog | None = None,
    ) -> None:
        self._store = store
        self._settings = settings
        self.voices = voices or VoiceCatalog(store)
        self.ingestor = ThreadIngestor(
            store,
            mail,
            llm,
            followup_interval=settings.default_followup_interval_days,
            voice=settings.default_voice,
        )
        self.detector = PaymentDetector(store, mail, llm, settings.payment_check_policy)
        self.scheduler = FollowupScheduler(
            store,
            llm,
            self.voices,
            Dispatcher(store, mail),
            default_voice=settings.default_voice,
            lease_seconds=settings.followup_lease_seconds,
        )

    def _get_user(self, user_id: str) -> User:
        user = self._store.get_user(user_id)
        if user is None:
            raise NotFoundError("user", user_id)
        return user

    def sync_user(self, user_id: str, now: datetime | None = None) -> SyncSummary:
        """Ingest the user's labelled threads, then check their active requests for payment.

        Raises:
            NotFoundError: If the user does not exist.
            MailCredentialMissingError: If the user has no mail credential.
        """
        now = now or _utcnow()
        user = self._get_user(user_id)
        if not user.has_mail_credential:
            raise MailCredentialMissingError(user.id)

        ingested = self.ingestor.ingest(user, now)
        auto_completed = self.detector.check(self._store.list_active_requests(user.id), now)
        summary = SyncSummary(
            synced=ingested.synced, auto_completed=auto_completed, total=ingested.total
        )
        logger.info("Synced user", user_id=user.id, **summary.model_dump())
        return summary

    def run_all(self, now: datetime | None = None) -> RunSummary:
        """Run one scheduled pass over every user and every active request.

        Ingestion failures for one user are logged, counted as errors, and
        do not stop the run.

        Raises:
            RunFailedError: If the store fails while listing work.
        """
        now = now or _utcnow()
        synced = 0
        auto_closed = 0
        sync_errors = 0

        try:
            if self._settings.sync_on_schedule:
                for user in self._store.list_users():
                    if not user.has_mail_credential:
                        continue
                    try:
                        synced += self.ingestor.ingest(user, now).synced
                    except Exception:
                        logger.exception("Scheduled sync failed", user_id=user.id)
                        sync_errors += 1
                auto_closed = self.detector.check(self._store.list_active_requests(), now)

            active: list[PaymentRequest] = self._store.list_active_requests()
            summary = self.scheduler.run_due(active, now)
            ACTIVE_REQUESTS.set(self._store.count_active_requests())
        except sqlite3.Error as exc:
            logger.exception("Scheduled run failed")
            raise RunFailedError(f"Store failure during scheduled run: {exc}") from exc

        summary.errors += sync_errors
        summary.synced = synced
        summary.auto_closed = auto_closed

        logger.info("Scheduled run complete", **summary.model_dump())
        return summary

    def followup_now(
        self, request_id: str, user_id: str, now: datetime | None = None
    ) -> FollowupResult:
        """Follow up one of the user's requests immediately, ignoring its interval.

        Raises:
            NotFoundError: If the user or request is missing, or the request
                belongs to another user.
            PreconditionFailedError: If the request is not active, lacks a
                thread or recipient, or the user lacks a mail credential.
            FollowupInProgressError: If another trigger is already following it up.
        """
        now = now or _utcnow()
        user = self._get_user(user_id)
        request = self._store.get_request(request_id, user_id=user.id)
        if request is None:
            raise NotFoundError("request", request_id)
        return self.scheduler.follow_up_now(user, request, now)
