"""Context extraction from a newly labelled payment-request thread.

Pulls the payer's name, the amount owed, and a one-line summary out of the
thread text.  Model output that is not valid JSON matching
:class:`ExtractedContext` is treated as "nothing extracted", never as an error.
"""

from __future__ import annotations

import json
import re

import structlog
from anthropic import Anthropic
from pydantic import ValidationError

from chaser.llm.client import EXTRACTION_MAX_TOKENS, EXTRACTION_MODEL
from chaser.llm.models import ExtractedContext
from chaser.llm.prompts import CONTEXT_EXTRACTION_PROMPT, THREAD_SEPARATOR

logger = structlog.get_logger()

_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)


def response_text(response: object) -> str:
    """Return the first text block of an Anthropic response, or ``""``."""
    for block in getattr(response, "content", None) or []:
        if getattr(block, "type", None) == "text":
            return str(block.text)
    return ""


def parse_extraction(text: str) -> ExtractedContext:
    """Parse a model response into an :class:`ExtractedContext`.

    Markdown code fences are stripped first.  Invalid JSON, a non-object
    payload, or a schema mismatch yields an empty context.
    """
    cleaned = _FENCE_RE.sub("", text).strip()
    try:
        payload = json.loads(cleaned)
        if not isinstance(payload, dict):
            raise ValueError("extraction payload is not an object")
        return ExtractedContext.model_validate(payload)
    except (ValueError, ValidationError) as exc:
        logger.warning("Could not parse extracted context", error=str(exc), raw=cleaned[:200])
        return ExtractedContext()


def extract_context(
    bodies: list[str],
    client: Anthropic,
    *,
    model: str = EXTRACTION_MODEL,
) -> ExtractedContext:
    """Extract payer name, amount, and summary from a thread's message bodies.

    Args:
        bodies: The thread's message bodies in order.
        client: An ``anthropic.Anthropic`` instance (or compatible mock).
        model: The Anthropic model ID to use.

    Returns:
        The extracted context; empty when the response is malformed.
    """
    response = client.messages.create(
        model=model,
        max_tokens=EXTRACTION_MAX_TOKENS,
        messages=[
            {
                "role": "user",
                "content": CONTEXT_EXTRACTION_PROMPT.format(thread=THREAD_SEPARATOR.join(bodies)),
            }
        ],
    )
    return parse_extraction(response_text(response))
