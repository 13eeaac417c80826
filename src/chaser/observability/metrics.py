"""Prometheus metrics instrumentation for the payment chaser.

Provides:
- ``setup_metrics(app)``: Attach prometheus-fastapi-instrumentator to a FastAPI app,
  exposing ``/metrics`` with HTTP request duration/count plus custom business metrics.
- ``FOLLOWUPS_RECORDED``: Counter of recorded follow-ups, labelled by delivery mode.
- ``REQUESTS_INGESTED``: Counter of requests created from labelled threads.
- ``REQUESTS_AUTO_CLOSED``: Counter of requests closed by the payment detector.
- ``COLLABORATOR_FAILURES``: Counter of collaborator calls that exhausted retries.
- ``ACTIVE_REQUESTS``: Gauge of active requests, refreshed at each scheduled run.

Business metrics are updated where the events happen (not by polling the database).
"""

from __future__ import annotations

from fastapi import FastAPI
from prometheus_client import Counter, Gauge
from prometheus_fastapi_instrumentator import Instrumentator

FOLLOWUPS_RECORDED: Counter = Counter(
    "chaser_followups_recorded_total",
    "Follow-ups recorded, by delivery mode (draft or sent)",
    ["mode"],
)

REQUESTS_INGESTED: Counter = Counter(
    "chaser_requests_ingested_total",
    "Payment requests created from labelled mail threads",
)

REQUESTS_AUTO_CLOSED: Counter = Counter(
    "chaser_requests_auto_closed_total",
    "Payment requests closed automatically after payment was detected",
)

COLLABORATOR_FAILURES: Counter = Counter(
    "chaser_collaborator_failures_total",
    "Collaborator API calls that failed after all retries",
    ["api_name"],
)

ACTIVE_REQUESTS: Gauge = Gauge(
    "chaser_active_requests",
    "Number of payment requests currently being chased",
)


def setup_metrics(app: FastAPI) -> None:
    """Instrument *app* with Prometheus HTTP metrics and expose ``/metrics``.

    Excludes health/ready/metrics endpoints from instrumentation to avoid
    noise in dashboards.

    Args:
        app: The FastAPI application to instrument.
    """
    Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        excluded_handlers=["/health", "/ready", "/metrics"],
    ).instrument(app).expose(app, include_in_schema=False, should_gzip=True)
