"""Gmail API gateway used by ingestion, payment detection, and dispatch.

Provides the ``GmailGateway`` class that implements :class:`MailGateway`
against the Gmail API: label lookup-or-create, labelled-thread listing,
thread fetches decoded into :class:`ThreadMessage`, and threaded draft/send.
Each operation first makes sure the user's access token is fresh.  Reads go
through :func:`resilient_api_call`; label creation, drafts and sends run
exactly once so a timed-out send is never transmitted twice.
"""

from __future__ import annotations

import base64
from collections.abc import Callable
from email.message import EmailMessage
from typing import Any

import structlog
from google.oauth2.credentials import Credentials

from chaser.auth.credentials import (
    build_user_credentials,
    ensure_fresh_credential,
    get_gmail_service,
)
from chaser.config import Settings
from chaser.domain.models import User
from chaser.mail.models import OutboundEmail, ThreadMessage
from chaser.mail.parser import extract_body, header_map
from chaser.mail.threading import build_reply_headers
from chaser.resilience.retry import resilient_api_call
from chaser.store.store import ChaserStore

logger = structlog.get_logger()

THREAD_PAGE_SIZE = 50

ServiceFactory = Callable[[Credentials, float], Any]


@resilient_api_call("gmail")
def _execute(request: Any) -> dict[str, Any]:
    result: dict[str, Any] = request.execute()
    return result


def _execute_once(request: Any) -> dict[str, Any]:
    result: dict[str, Any] = request.execute()
    return result


def _encode(outbound: OutboundEmail, from_email: str) -> dict[str, Any]:
    message = EmailMessage()
    message.set_content(outbound.body)
    message["To"] = outbound.to
    message["From"] = from_email
    message["Subject"] = outbound.subject
    if outbound.in_reply_to:
        message["In-Reply-To"] = outbound.in_reply_to
    if outbound.references:
        message["References"] = outbound.references

    encoded = base64.urlsafe_b64encode(message.as_bytes()).decode()
    return {"raw": encoded, "threadId": outbound.thread_id}


class GmailGateway:
    """Gmail-backed implementation of the mail collaborator.

    Args:
        store: Store used to cache label ids and persist refreshed tokens.
        settings: Label name, timeouts, and OAuth client configuration.
        service_factory: Builds a Gmail service from credentials and a
            timeout.  Defaults to :func:`get_gmail_service`; tests inject a
            factory returning a ``MagicMock``.
    """

    def __init__(
        self,
        store: ChaserStore,
        settings: Settings,
        service_factory: ServiceFactory | None = None,
    ) -> None:
        self._store = store
        self._settings = settings
        self._service_factory = service_factory or get_gmail_service

    def _service_for(self, user: User) -> tuple[User, Any]:
        user = ensure_fresh_credential(user, self._store, self._settings)
        credentials = build_user_credentials(user, self._settings)
        return user, self._service_factory(credentials, self._settings.gmail_timeout_seconds)

    def ensure_label(self, user: User) -> str:
        """Return the tracking label id, creating it in Gmail if needed.

        The id is cached on the user so later runs skip the lookup.
        """
        if user.label_id:
            return user.label_id

        user, service = self._service_for(user)
        label_name = self._settings.gmail_label_name

        response = _execute(service.users().labels().list(userId="me"))
        for label in response.get("labels", []):
            if label.get("name") == label_name and label.get("id"):
                self._store.set_label_id(user.id, label["id"])
                return str(label["id"])

        created = _execute_once(
            service.users()
            .labels()
            .create(
                userId="me",
                body={
                    "name": label_name,
                    "labelListVisibility": "labelShow",
                    "messageListVisibility": "show",
                },
            )
        )
        label_id = str(created["id"])
        self._store.set_label_id(user.id, label_id)
        logger.info("Created Gmail label", user_id=user.id, label_id=label_id, name=label_name)
        return label_id

    def list_threads_with_label(self, user: User, label_id: str) -> list[str]:
        """Return every thread id carrying *label_id*, following pagination."""
        user, service = self._service_for(user)
        thread_ids: list[str] = []
        page_token: str | None = None

        while True:
            kwargs: dict[str, Any] = {
                "userId": "me",
                "labelIds": [label_id],
                "maxResults": THREAD_PAGE_SIZE,
            }
            if page_token:
                kwargs["pageToken"] = page_token
            response = _execute(service.users().threads().list(**kwargs))
            thread_ids.extend(t["id"] for t in response.get("threads", []) if t.get("id"))
            page_token = response.get("nextPageToken")
            if not page_token:
                return thread_ids

    def get_thread_messages(self, user: User, thread_id: str) -> list[ThreadMessage]:
        """Fetch a thread in ``full`` format and decode each message."""
        user, service = self._service_for(user)
        thread = _execute(service.users().threads().get(userId="me", id=thread_id, format="full"))

        messages: list[ThreadMessage] = []
        for msg in thread.get("messages", []):
            payload = msg.get("payload", {})
            headers = header_map(payload)
            messages.append(
                ThreadMessage(
                    message_id=msg.get("id", ""),
                    from_header=headers.get("from", ""),
                    to_header=headers.get("to", ""),
                    subject=headers.get("subject", ""),
                    date_header=headers.get("date", ""),
                    message_id_header=headers.get("message-id", ""),
                    body=extract_body(payload),
                )
            )
        return messages

    def _outbound(
        self, user: User, thread_id: str, to: str, subject: str, body: str
    ) -> OutboundEmail:
        reply_headers = build_reply_headers(self.get_thread_messages(user, thread_id))
        return OutboundEmail(
            to=to,
            subject=subject,
            body=body,
            thread_id=thread_id,
            in_reply_to=reply_headers.get("In-Reply-To"),
            references=reply_headers.get("References"),
        )

    def create_draft(
        self, user: User, thread_id: str, to: str, subject: str, body: str
    ) -> str | None:
        """Create a threaded reply draft; nothing is transmitted.

        Returns:
            The Gmail draft id, or ``None`` if the response carried none.
        """
        outbound = self._outbound(user, thread_id, to, subject, body)
        user, service = self._service_for(user)
        result = _execute_once(
            service.users()
            .drafts()
            .create(userId="me", body={"message": _encode(outbound, user.email)})
        )
        return result.get("id") or None

    def send_message(
        self, user: User, thread_id: str, to: str, subject: str, body: str
    ) -> str | None:
        """Send a threaded reply immediately.

        Returns:
            The Gmail message id, or ``None`` if the response carried none.
        """
        outbound = self._outbound(user, thread_id, to, subject, body)
        user, service = self._service_for(user)
        result = _execute_once(
            service.users().messages().send(userId="me", body=_encode(outbound, user.email))
        )
        return result.get("id") or None
