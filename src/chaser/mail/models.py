"""Pydantic v2 models for the mail domain.

Provides frozen (immutable) models for a message fetched from a labelled
thread and for an outgoing follow-up reply.
"""

from pydantic import BaseModel, ConfigDict


class ThreadMessage(BaseModel):
    """One message of a labelled Gmail thread, reduced to what the engine needs.

    ``body`` is plain text: the ``text/plain`` part when present, otherwise the
    ``text/html`` part with tags stripped.
    """

    model_config = ConfigDict(frozen=True)

    message_id: str  # Gmail message id
    from_header: str = ""
    to_header: str = ""
    subject: str = ""
    date_header: str = ""
    message_id_header: str = ""  # RFC 2822 Message-ID header
    body: str = ""


class OutboundEmail(BaseModel):
    """A follow-up reply to be drafted or sent inside an existing thread.

    ``in_reply_to`` and ``references`` carry the last message's Message-ID so
    mail clients display the reply in the same conversation.
    """

    model_config = ConfigDict(frozen=True)

    to: str
    subject: str
    body: str
    thread_id: str
    in_reply_to: str | None = None  # RFC 2822 Message-ID to reply to
    references: str | None = None  # Space-separated RFC 2822 Message-IDs
