"""Resilience infrastructure for collaborator API calls with retry and failure accounting."""

from chaser.resilience.retry import is_transient_error, resilient_api_call

__all__ = [
    "is_transient_error",
    "resilient_api_call",
]
