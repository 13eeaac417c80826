"""Transition map defining all valid (status, event) -> status mappings."""

from enum import StrEnum

from chaser.domain.types import RequestStatus


class RequestEvent(StrEnum):
    """Events that can change a payment request's status."""

    AUTO_CLOSE = "auto_close"
    MARK_PAID = "mark_paid"
    CANCEL = "cancel"
    REOPEN = "reopen"


# All valid (current_status, event) -> next_status mappings.
# Any pair not in this dict is an invalid transition.
TRANSITIONS: dict[tuple[RequestStatus, str], RequestStatus] = {
    (RequestStatus.ACTIVE, RequestEvent.AUTO_CLOSE): RequestStatus.CLOSED,
    (RequestStatus.ACTIVE, RequestEvent.MARK_PAID): RequestStatus.CLOSED,
    (RequestStatus.ACTIVE, RequestEvent.CANCEL): RequestStatus.CANCELLED,
    (RequestStatus.CLOSED, RequestEvent.REOPEN): RequestStatus.ACTIVE,
    (RequestStatus.CANCELLED, RequestEvent.REOPEN): RequestStatus.ACTIVE,
}

# Events that only an explicit user edit may apply.
USER_ONLY_EVENTS: frozenset[str] = frozenset(
    {RequestEvent.MARK_PAID, RequestEvent.CANCEL, RequestEvent.REOPEN}
)

# Which user event moves a request from one status to another.
STATUS_CHANGE_EVENTS: dict[tuple[RequestStatus, RequestStatus], RequestEvent] = {
    (RequestStatus.ACTIVE, RequestStatus.CLOSED): RequestEvent.MARK_PAID,
    (RequestStatus.ACTIVE, RequestStatus.CANCELLED): RequestEvent.CANCEL,
    (RequestStatus.CLOSED, RequestStatus.ACTIVE): RequestEvent.REOPEN,
    (RequestStatus.CANCELLED, RequestStatus.ACTIVE): RequestEvent.REOPEN,
}
