"""The mail collaborator interface consumed by the orchestration engine."""

from __future__ import annotations

from typing import Protocol

from chaser.domain.models import User
from chaser.mail.models import ThreadMessage


class MailGateway(Protocol):
    """Operations the engine needs from a mailbox provider.

    Every method takes the mailbox owner; implementations are responsible for
    credential freshness and per-call timeouts.
    """

    def ensure_label(self, user: User) -> str:
        """Return the tracking label id, creating and caching it on first use."""
        ...

    def list_threads_with_label(self, user: User, label_id: str) -> list[str]:
        """Return the ids of every thread carrying *label_id*."""
        ...

    def get_thread_messages(self, user: User, thread_id: str) -> list[ThreadMessage]:
        """Return the thread's messages in order, bodies resolved to plain text."""
        ...

    def create_draft(
        self, user: User, thread_id: str, to: str, subject: str, body: str
    ) -> str | None:
        """Stage a reply as a draft; return the draft id if the provider gives one."""
        ...

    def send_message(
        self, user: User, thread_id: str, to: str, subject: str, body: str
    ) -> str | None:
        """Send a reply immediately; return the message id if the provider gives one."""
        ...
