"""Resilient API call decorator with tenacity retry and failure accounting.

Retries transient failures 3 times with exponential backoff and jitter, logs
every retry, and on final failure logs, counts the failure per API, and
re-raises the original exception so per-item error handling upstream sees it.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

import httplib2
import structlog
from google.auth.exceptions import TransportError
from googleapiclient.errors import HttpError
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)
from tenacity.wait import wait_base

from chaser.observability.metrics import COLLABORATOR_FAILURES

logger = structlog.get_logger()

F = TypeVar("F", bound=Callable[..., Any])

TRANSIENT_HTTP_STATUSES: frozenset[int] = frozenset({408, 429, 500, 502, 503, 504})


def is_transient_error(exc: BaseException) -> bool:
    """Return True for failures worth retrying (rate limits, 5xx, timeouts, resets).

    Args:
        exc: The exception raised by the wrapped call.
    """
    if isinstance(exc, HttpError):
        return exc.resp is not None and int(exc.resp.status) in TRANSIENT_HTTP_STATUSES
    return isinstance(
        exc, (TimeoutError, ConnectionError, TransportError, httplib2.HttpLib2Error)
    )


def _api_name_of(retry_state: RetryCallState) -> str:
    return getattr(retry_state.fn, "_api_name", "unknown") if retry_state.fn else "unknown"


def _before_sleep_log(retry_state: RetryCallState) -> None:
    """Log a warning before each retry attempt.

    Args:
        retry_state: Tenacity retry state with attempt info.
    """
    logger.warning(
        "Retrying API call",
        api_name=_api_name_of(retry_state),
        attempt=retry_state.attempt_number,
        wait=retry_state.next_action.sleep if retry_state.next_action else 0,
    )


def _record_final_failure(retry_state: RetryCallState) -> Any:
    """Log and count the exhausted call, then re-raise its exception.

    Args:
        retry_state: Tenacity retry state with attempt info and outcome.
    """
    api_name = _api_name_of(retry_state)
    exception = retry_state.outcome.exception() if retry_state.outcome else None

    logger.error(
        "API call failed after all retries",
        api_name=api_name,
        attempts=retry_state.attempt_number,
        exception=str(exception),
    )
    COLLABORATOR_FAILURES.labels(api_name=api_name).inc()

    # Re-raises the original exception.
    return retry_state.outcome.result() if retry_state.outcome else None


def resilient_api_call(
    api_name: str,
    *,
    attempts: int = 3,
    wait: wait_base | None = None,
) -> Callable[[F], F]:
    """Create a retry decorator for an API call.

    Returns a tenacity retry decorator configured with:
    - ``attempts`` tries maximum (default 3)
    - Exponential backoff with jitter (1s initial, 30s max, 5s jitter)
    - Retries only for :func:`is_transient_error` failures
    - Warning log before each retry
    - Error log and failure metric on final failure
    - Original exception re-raised after exhaustion

    Args:
        api_name: Human-readable name for the API (used in logs and metrics).
        attempts: Maximum number of attempts.
        wait: Override the wait strategy (tests pass ``wait_none()``).

    Returns:
        A decorator that wraps the function with retry logic.
    """

    def decorator(func: F) -> F:
        func._api_name = api_name  # type: ignore[attr-defined]

        wrapped = retry(
            stop=stop_after_attempt(attempts),
            wait=wait or wait_exponential_jitter(initial=1, max=30, jitter=5),
            retry=retry_if_exception(is_transient_error),
            before_sleep=_before_sleep_log,
            retry_error_callback=_record_final_failure,
            reraise=True,
        )(func)

        return wrapped  # type: ignore[return-value]

    return decorator
