"""Per-request follow-up lease.

Sequence numbers are derived from a count of existing follow-ups, so two
triggers working on the same request at once could both compute the same
number.  Holding the lease across generation, dispatch and recording rules
that out; the ``UNIQUE(request_id, followup_number)`` constraint backs it.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime

import structlog

from chaser.domain.errors import FollowupInProgressError
from chaser.store.store import ChaserStore

logger = structlog.get_logger()


@contextmanager
def request_lease(
    store: ChaserStore,
    request_id: str,
    *,
    now: datetime,
    ttl_seconds: int,
) -> Iterator[str]:
    """Hold the follow-up lease on *request_id* for the duration of the block.

    The claim is a single conditional update: it succeeds only while the
    request is active and no unexpired lease exists.  A lease older than
    *ttl_seconds* is treated as abandoned and taken over.

    Args:
        store: The chaser store.
        request_id: The request to lock.
        now: Current time, used to stamp and compare lease expiry.
        ttl_seconds: How long the lease stays valid if never released.

    Yields:
        The lease token.

    Raises:
        FollowupInProgressError: If another holder has the lease (or the
            request stopped being active).
    """
    token = str(uuid.uuid4())
    if not store.acquire_followup_lease(request_id, token, now, ttl_seconds):
        raise FollowupInProgressError(request_id)

    logger.debug("Acquired follow-up lease", request_id=request_id)
    try:
        yield token
    finally:
        store.release_followup_lease(request_id, token)
        logger.debug("Released follow-up lease", request_id=request_id)
