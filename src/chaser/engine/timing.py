"""Whole-day elapsed-time arithmetic behind the follow-up schedule."""

from __future__ import annotations

from datetime import datetime, timedelta

from chaser.domain.models import Followup, PaymentRequest

_ONE_DAY = timedelta(days=1)


def days_between(start: datetime, end: datetime) -> int:
    """Return the whole days elapsed from *start* to *end* (floor division).

    Negative when *start* lies after *end*.
    """
    return (end - start) // _ONE_DAY


def last_activity_at(request: PaymentRequest, latest: Followup | None) -> datetime:
    """Return the later of the last follow-up time and the request's creation."""
    if latest is None:
        return request.created_at
    return max(latest.sent_at, request.created_at)


def days_since_last(request: PaymentRequest, latest: Followup | None, now: datetime) -> int:
    """Whole days since the last follow-up, or since creation when there is none."""
    return days_between(last_activity_at(request, latest), now)


def days_since_initial(request: PaymentRequest, now: datetime) -> int:
    """Whole days since the original payment request was made (never negative)."""
    start = request.initial_request_at or request.created_at
    return max(0, days_between(start, now))


def is_due(request: PaymentRequest, latest: Followup | None, now: datetime) -> bool:
    """Return True once a full follow-up interval has passed since the last activity.

    Args:
        request: The request being considered.
        latest: Its most recent follow-up, if any.
        now: The evaluation time.
    """
    return days_since_last(request, latest, now) >= request.effective_interval
