"""Thread ingestion: turn newly labelled mail threads into tracked requests.

For each labelled thread the user does not already track, the thread is
fetched, its bodies are handed to the language model for context
extraction, and a :class:`PaymentRequest` is synthesized.  All new requests
are inserted together at the end of the loop; a thread that fails to fetch
or extract is logged and left out.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

import structlog

from chaser.domain.models import PaymentRequest, SyncSummary, User
from chaser.llm.models import ExtractedContext
from chaser.mail.gateway import MailGateway
from chaser.mail.models import ThreadMessage
from chaser.mail.parser import extract_latest_reply, parse_header_date, resolve_counterparty
from chaser.observability.metrics import REQUESTS_INGESTED
from chaser.store.store import ChaserStore

logger = structlog.get_logger()


class ContextExtractor(Protocol):
    def extract_context(self, bodies: list[str]) -> ExtractedContext: ...


def thread_bodies(messages: list[ThreadMessage]) -> list[str]:
    """Return each message's new content, with quoted history removed."""
    return [extract_latest_reply(m.body) for m in messages]


def build_request(
    user: User,
    thread_id: str,
    messages: list[ThreadMessage],
    extracted: ExtractedContext,
    now: datetime,
    *,
    followup_interval: int,
    voice: str | None,
) -> PaymentRequest:
    """Synthesize a request from a thread and the model's extracted context.

    The counterparty comes from the first message's headers; extracted name,
    amount, and summary win over header-derived values.

    Args:
        user: The mailbox owner.
        thread_id: The labelled thread's id.
        messages: The thread's messages in order (must not be empty).
        extracted: Context extracted by the language model.
        now: Ingestion time, used when the first ``Date`` header is unusable.
        followup_interval: Interval in days for the new request.
        voice: Voice name for the new request.

    Returns:
        The new, not yet persisted, request.
    """
    first = messages[0]
    header_name, recipient_email = resolve_counterparty(
        first.from_header, first.to_header, user.email
    )
    return PaymentRequest(
        user_id=user.id,
        recipient_email=recipient_email,
        recipient_name=extracted.recipient_name or header_name,
        subject=first.subject or None,
        amount=extracted.amount,
        original_message_id=first.message_id or None,
        thread_id=thread_id,
        followup_interval=followup_interval,
        context=extracted.summary or None,
        voice=voice,
        initial_request_at=parse_header_date(first.date_header, now),
        created_at=now,
    )


class ThreadIngestor:
    """Create requests for labelled threads the user does not track yet.

    Args:
        store: The chaser store.
        mail: The mail collaborator.
        llm: Anything with an ``extract_context(bodies)`` method.
        followup_interval: Interval assigned to new requests.
        voice: Voice assigned to new requests.
    """

    def __init__(
        self,
        store: ChaserStore,
        mail: MailGateway,
        llm: ContextExtractor,
        *,
        followup_interval: int,
        voice: str | None,
    ) -> None:
        self._store = store
        self._mail = mail
        self._llm = llm
        self._followup_interval = followup_interval
        self._voice = voice

    def ingest(self, user: User, now: datetime) -> SyncSummary:
        """Ingest the user's labelled threads.

        Label lookup and thread listing failures propagate; per-thread
        failures are logged and skipped.

        Returns:
            ``synced`` (requests inserted) and ``total`` (labelled threads seen).
        """
        label_id = self._mail.ensure_label(user)
        thread_ids = self._mail.list_threads_with_label(user, label_id)
        known = self._store.list_thread_ids(user.id)

        new_requests: list[PaymentRequest] = []
        for thread_id in dict.fromkeys(thread_ids):
            if thread_id in known:
                continue
            try:
                request = self._ingest_thread(user, thread_id, now)
            except Exception:
                logger.exception("Failed to ingest thread", user_id=user.id, thread_id=thread_id)
                continue
            if request is not None:
                new_requests.append(request)

        inserted = self._store.insert_requests(new_requests)
        if inserted:
            REQUESTS_INGESTED.inc(inserted)
        logger.info(
            "Ingested labelled threads",
            user_id=user.id,
            threads=len(thread_ids),
            inserted=inserted,
        )
        return SyncSummary(synced=inserted, total=len(thread_ids))

    def _ingest_thread(self, user: User, thread_id: str, now: datetime) -> PaymentRequest | None:
        messages = self._mail.get_thread_messages(user, thread_id)
        if not messages:
            logger.info("Skipping empty thread", user_id=user.id, thread_id=thread_id)
            return None
        extracted = self._llm.extract_context(thread_bodies(messages))
        return build_request(
            user,
            thread_id,
            messages,
            extracted,
            now,
            followup_interval=self._followup_interval,
            voice=self._voice,
        )
