"""Reply subject and header construction for follow-ups.

Provides helpers for:
- Deriving the follow-up subject line from the request subject
- Building RFC 2822 reply headers from the last message of a thread
"""

from __future__ import annotations

from chaser.mail.models import ThreadMessage

DEFAULT_FOLLOWUP_SUBJECT = "Re: Follow-up"


def build_followup_subject(subject: str | None) -> str:
    """Return the subject line for a follow-up.

    ``"Invoice"`` becomes ``"Re: Invoice"`` and a subject already starting with
    the literal ``"Re:"`` is kept unchanged.  Any other prefix, ``"RE:"``
    included, gets ``"Re: "`` in front.  A missing or blank subject becomes
    ``"Re: Follow-up"``.
    """
    if not subject or not subject.strip():
        return DEFAULT_FOLLOWUP_SUBJECT
    if subject.startswith("Re:"):
        return subject
    return f"Re: {subject}"


def build_reply_headers(messages: list[ThreadMessage]) -> dict[str, str]:
    """Build ``In-Reply-To`` / ``References`` headers for a reply to *messages*.

    Args:
        messages: The thread's messages in order.

    Returns:
        A dict of header names to values; empty when the thread has no
        Message-ID to reply to.
    """
    message_ids = [m.message_id_header for m in messages if m.message_id_header]
    if not message_ids:
        return {}
    return {
        "In-Reply-To": message_ids[-1],
        "References": " ".join(message_ids),
    }
