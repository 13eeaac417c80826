"""Gmail payload decoding, header parsing, and reply text extraction.

Provides helpers for:
- Decoding a Gmail API ``format="full"`` payload into a plain text body
- Reading ``From``/``To``/``Date`` headers into addresses and timestamps
- Deciding which side of a thread is the counterparty
- Extracting only the latest reply from a message body
"""

from __future__ import annotations

import base64
import html
import re
from datetime import UTC, datetime
from email.utils import getaddresses, parsedate_to_datetime
from typing import Any

from mailparser_reply import EmailReplyParser  # type: ignore[import-untyped]

from chaser.domain.types import UNKNOWN_RECIPIENT

_TAG_RE = re.compile(r"<[^>]+>")
_STYLE_RE = re.compile(r"<(script|style)\b[^>]*>.*?</\1>", re.IGNORECASE | re.DOTALL)


def header_map(payload: dict[str, Any]) -> dict[str, str]:
    """Return the payload's headers keyed by lower-cased header name.

    When a header repeats, the first occurrence wins.
    """
    headers: dict[str, str] = {}
    for header in payload.get("headers", []):
        headers.setdefault(header.get("name", "").lower(), header.get("value", ""))
    return headers


def _decode_data(data: str) -> str:
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded).decode("utf-8", errors="replace")


def strip_html(text: str) -> str:
    """Remove tags (and script/style blocks) from HTML, unescaping entities."""
    text = _STYLE_RE.sub("", text)
    return html.unescape(_TAG_RE.sub("", text)).strip()


def _find_part(payload: dict[str, Any], mime_type: str) -> str:
    if payload.get("mimeType") == mime_type:
        data = payload.get("body", {}).get("data")
        if data:
            return _decode_data(data)
    for part in payload.get("parts", []) or []:
        found = _find_part(part, mime_type)
        if found:
            return found
    return ""


def extract_body(payload: dict[str, Any]) -> str:
    """Resolve a Gmail message payload to plain text.

    Walks the MIME tree looking for ``text/plain`` first; if none exists,
    falls back to ``text/html`` with tags stripped.

    Args:
        payload: The ``payload`` dict of a Gmail API message resource.

    Returns:
        The decoded body text, or an empty string if no text part exists.
    """
    plain = _find_part(payload, "text/plain")
    if plain:
        return plain
    markup = _find_part(payload, "text/html")
    if markup:
        return strip_html(markup)
    return ""


def extract_latest_reply(full_body: str) -> str:
    """Extract only the latest reply text from an email body.

    Uses ``mail-parser-reply`` to strip quoted content, signature blocks,
    and forwarded message headers.  If the parser returns nothing (e.g. the
    whole message was detected as quoted content), the original body is
    returned.

    Args:
        full_body: The full text body of the email.

    Returns:
        The latest reply text, or the original body if extraction yields nothing.
    """
    if not full_body.strip():
        return full_body
    parsed: str = EmailReplyParser(languages=["en"]).parse_reply(text=full_body)
    if not parsed or not parsed.strip():
        return full_body
    return parsed


def parse_address(value: str) -> tuple[str | None, str]:
    """Split an ``address`` or ``"Name" <address>`` header value.

    Only the first address of a list is considered.

    Returns:
        ``(display_name, email)``; the name is ``None`` for a bare address and
        the email is an empty string when nothing usable was found.
    """
    if not value or not value.strip():
        return None, ""
    addresses = getaddresses([value])
    if not addresses:
        return None, ""
    name, email = addresses[0]
    name = name.strip().strip('"').strip() or None
    email = email.strip()
    if "@" not in email:
        return name, ""
    return name, email


def resolve_counterparty(
    from_header: str, to_header: str, user_email: str
) -> tuple[str | None, str]:
    """Work out who the payment request is addressed to.

    If the user's own address appears in ``From`` the user sent the request,
    so the counterparty is in ``To``; otherwise the counterparty sent it.

    Args:
        from_header: The first message's ``From`` header.
        to_header: The first message's ``To`` header.
        user_email: The mailbox owner's address.

    Returns:
        ``(display_name, email)``; the email falls back to ``"unknown"``.
    """
    user_sent = bool(user_email) and user_email.lower() in from_header.lower()
    name, email = parse_address(to_header if user_sent else from_header)
    return name, email or UNKNOWN_RECIPIENT


def parse_header_date(value: str, fallback: datetime) -> datetime:
    """Parse an RFC 2822 ``Date`` header into an aware UTC datetime.

    Returns *fallback* when the header is missing or unparseable.
    """
    if not value:
        return fallback
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return fallback
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)
