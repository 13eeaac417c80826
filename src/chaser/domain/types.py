"""Domain enumerations for payment requests and their follow-ups."""

from enum import StrEnum


class RequestStatus(StrEnum):
    """Lifecycle states of a tracked payment request."""

    ACTIVE = "active"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class FollowupAction(StrEnum):
    """User preference for what happens when a follow-up is due."""

    DRAFT = "draft"
    SEND = "send"


class FollowupMode(StrEnum):
    """How a recorded follow-up was delivered."""

    DRAFT = "draft"
    SENT = "sent"


DEFAULT_FOLLOWUP_INTERVAL_DAYS = 7
MIN_FOLLOWUP_INTERVAL_DAYS = 1
MAX_FOLLOWUP_INTERVAL_DAYS = 90

UNKNOWN_RECIPIENT = "unknown"
