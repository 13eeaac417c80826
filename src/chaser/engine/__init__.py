"""Follow-up orchestration engine: ingestion, payment detection, scheduling, dispatch."""

from chaser.engine.dispatch import (
    DispatchStrategy,
    Dispatcher,
    DraftStrategy,
    SendStrategy,
    select_strategy,
)
from chaser.engine.ingestion import ThreadIngestor, build_request
from chaser.engine.locks import request_lease
from chaser.engine.orchestrator import FollowupEngine
from chaser.engine.payment_detector import PaymentDetector
from chaser.engine.requests import (
    RequestUpdate,
    delete_request,
    update_followup_action,
    update_request,
)
from chaser.engine.scheduler import FollowupScheduler
from chaser.engine.timing import days_between, days_since_initial, days_since_last, is_due

__all__ = [
    "DispatchStrategy",
    "Dispatcher",
    "DraftStrategy",
    "FollowupEngine",
    "FollowupScheduler",
    "PaymentDetector",
    "RequestUpdate",
    "SendStrategy",
    "ThreadIngestor",
    "build_request",
    "days_between",
    "days_since_initial",
    "days_since_last",
    "delete_request",
    "is_due",
    "request_lease",
    "select_strategy",
    "update_followup_action",
    "update_request",
]
