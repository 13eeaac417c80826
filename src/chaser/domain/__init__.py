"""Domain types, models, and errors for the payment chaser."""

from chaser.domain.errors import (
    ChaserError,
    CredentialRefreshError,
    FollowupInProgressError,
    InvalidTransitionError,
    MailCredentialMissingError,
    MissingThreadError,
    NotFoundError,
    PreconditionFailedError,
    RequestNotActiveError,
    RunFailedError,
)
from chaser.domain.models import (
    Followup,
    FollowupResult,
    PaymentRequest,
    RunSummary,
    SyncSummary,
    User,
    Voice,
)
from chaser.domain.types import FollowupAction, FollowupMode, RequestStatus

__all__ = [
    "ChaserError",
    "CredentialRefreshError",
    "Followup",
    "FollowupAction",
    "FollowupInProgressError",
    "FollowupMode",
    "FollowupResult",
    "InvalidTransitionError",
    "MailCredentialMissingError",
    "MissingThreadError",
    "NotFoundError",
    "PaymentRequest",
    "PreconditionFailedError",
    "RequestNotActiveError",
    "RequestStatus",
    "RunFailedError",
    "RunSummary",
    "SyncSummary",
    "User",
    "Voice",
]
