"""Binary "has this been paid?" classification of a thread."""

from __future__ import annotations

from anthropic import Anthropic

from chaser.llm.client import CLASSIFY_MAX_TOKENS, CLASSIFY_MODEL
from chaser.llm.extraction import response_text
from chaser.llm.prompts import PAYMENT_CLASSIFICATION_PROMPT, THREAD_SEPARATOR


def classify_paid(
    bodies: list[str],
    client: Anthropic,
    *,
    model: str = CLASSIFY_MODEL,
) -> bool:
    """Ask the model whether payment has been made or confirmed in the thread.

    Only an exact ``true`` answer (case and surrounding whitespace ignored)
    counts as paid; anything else, including an empty response, is False.

    Args:
        bodies: The thread's message bodies in order.
        client: An ``anthropic.Anthropic`` instance (or compatible mock).
        model: The Anthropic model ID to use.

    Returns:
        True if the thread shows the payment was completed.
    """
    response = client.messages.create(
        model=model,
        max_tokens=CLASSIFY_MAX_TOKENS,
        messages=[
            {
                "role": "user",
                "content": PAYMENT_CLASSIFICATION_PROMPT.format(
                    thread=THREAD_SEPARATOR.join(bodies)
                ),
            }
        ],
    )
    return response_text(response).strip().lower() == "true"
