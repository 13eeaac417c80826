"""RequestStateMachine class with event triggers and status-change lookup."""

from __future__ import annotations

from chaser.domain.errors import InvalidTransitionError
from chaser.domain.types import RequestStatus
from chaser.state_machine.transitions import (
    STATUS_CHANGE_EVENTS,
    TRANSITIONS,
    USER_ONLY_EVENTS,
)


class RequestStateMachine:
    """Finite state machine governing a payment request's status.

    ``closed`` and ``cancelled`` are terminal for automatic events: the
    payment detector and scheduler can never move a request out of them.
    Only a user edit (``reopen``) brings a request back to ``active``.

    Usage::

        sm = RequestStateMachine()
        sm.trigger("auto_close")                 # -> CLOSED
        sm.trigger("reopen", by_user=True)       # -> ACTIVE
    """

    def __init__(self, initial_status: RequestStatus = RequestStatus.ACTIVE) -> None:
        self._status: RequestStatus = initial_status

    @property
    def status(self) -> RequestStatus:
        """Return the current request status."""
        return self._status

    def trigger(self, event: str, *, by_user: bool = False) -> RequestStatus:
        """Apply an event to the current status and transition.

        Args:
            event: The event string (e.g. ``"auto_close"``).
            by_user: Whether the event comes from an explicit user edit.
                User-only events (``mark_paid``, ``cancel``, ``reopen``)
                are rejected when this is False.

        Returns:
            The new status after the transition.

        Raises:
            InvalidTransitionError: If the transition is not allowed.
        """
        if event in USER_ONLY_EVENTS and not by_user:
            raise InvalidTransitionError(self._status, event)

        key = (self._status, event)
        if key not in TRANSITIONS:
            raise InvalidTransitionError(self._status, event)

        self._status = TRANSITIONS[key]
        return self._status

    def change_to(self, target: RequestStatus) -> RequestStatus:
        """Move to *target* through the matching user event.

        Returns the current status unchanged when *target* equals it.

        Raises:
            InvalidTransitionError: If no user event leads from the current
                status to *target* (e.g. ``closed`` -> ``cancelled``).
        """
        if target == self._status:
            return self._status
        event = STATUS_CHANGE_EVENTS.get((self._status, target))
        if event is None:
            raise InvalidTransitionError(self._status, f"change_to_{target}")
        return self.trigger(event, by_user=True)
