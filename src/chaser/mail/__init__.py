"""Mail domain: Gmail gateway, thread parsing, reply threading, and models."""

from chaser.mail.client import GmailGateway
from chaser.mail.gateway import MailGateway
from chaser.mail.models import OutboundEmail, ThreadMessage
from chaser.mail.parser import (
    extract_body,
    extract_latest_reply,
    parse_address,
    parse_header_date,
    resolve_counterparty,
)
from chaser.mail.threading import build_followup_subject, build_reply_headers

__all__ = [
    "GmailGateway",
    "MailGateway",
    "OutboundEmail",
    "ThreadMessage",
    "build_followup_subject",
    "build_reply_headers",
    "extract_body",
    "extract_latest_reply",
    "parse_address",
    "parse_header_date",
    "resolve_counterparty",
]
