"""Domain-specific exception classes for the payment chaser."""

from chaser.domain.types import RequestStatus


class ChaserError(Exception):
    """Base class for all domain errors in the payment chaser."""


class NotFoundError(ChaserError):
    """Raised when a user or request does not exist or is not owned by the caller.

    Attributes:
        entity: The kind of record that was looked up (``"request"``, ``"user"``).
        entity_id: The identifier that was not found.
    """

    def __init__(self, entity: str, entity_id: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} '{entity_id}' not found")


class PreconditionFailedError(ChaserError):
    """Raised when an operation is attempted in a state that does not allow it."""


class RequestNotActiveError(PreconditionFailedError):
    """Raised when a follow-up is attempted on a request that is not active.

    Attributes:
        request_id: The request that was targeted.
        status: The request's current status.
    """

    def __init__(self, request_id: str, status: RequestStatus) -> None:
        self.request_id = request_id
        self.status = status
        super().__init__(f"Request '{request_id}' is {status}, not active")


class InvalidTransitionError(PreconditionFailedError):
    """Raised when an invalid request status transition is attempted.

    Attributes:
        current_status: The status the request was in when the event was applied.
        event: The event that was rejected.
    """

    def __init__(self, current_status: RequestStatus, event: str) -> None:
        self.current_status = current_status
        self.event = event
        super().__init__(f"Cannot apply event '{event}' to a request that is '{current_status}'")


class MissingThreadError(PreconditionFailedError):
    """Raised when a request has no mail thread to follow up in."""

    def __init__(self, request_id: str) -> None:
        self.request_id = request_id
        super().__init__(f"Request '{request_id}' has no thread identifier")


class MailCredentialMissingError(PreconditionFailedError):
    """Raised when the owning user has no usable mail credential."""

    def __init__(self, user_id: str) -> None:
        self.user_id = user_id
        super().__init__(f"User '{user_id}' has no mail credential")


class FollowupInProgressError(PreconditionFailedError):
    """Raised when another trigger currently holds the request's follow-up lease."""

    def __init__(self, request_id: str) -> None:
        self.request_id = request_id
        super().__init__(f"A follow-up for request '{request_id}' is already in progress")


class CredentialRefreshError(ChaserError):
    """Raised when a user's mail credential could not be refreshed."""


class RunFailedError(ChaserError):
    """Raised when a scheduled run cannot proceed at all (e.g. the store is unreachable)."""
