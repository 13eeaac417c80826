"""Request status state machine with transition validation."""

from chaser.state_machine.machine import RequestStateMachine
from chaser.state_machine.transitions import (
    STATUS_CHANGE_EVENTS,
    TRANSITIONS,
    USER_ONLY_EVENTS,
    RequestEvent,
)

__all__ = [
    "RequestEvent",
    "RequestStateMachine",
    "STATUS_CHANGE_EVENTS",
    "TRANSITIONS",
    "USER_ONLY_EVENTS",
]
