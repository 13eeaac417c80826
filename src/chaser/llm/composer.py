"""Follow-up body composition.

Builds the composition prompt from :class:`GenerationParams` (voice
description, escalation guidance by sequence number) and asks the model for
the body text.  Subject, greeting, and signature are never requested; the
caller owns those.
"""

from anthropic import Anthropic

from chaser.llm.client import COMPOSE_MAX_TOKENS, COMPOSE_MODEL
from chaser.llm.extraction import response_text
from chaser.llm.models import GenerationParams
from chaser.llm.prompts import (
    DIRECT_GUIDANCE,
    ESCALATE_GUIDANCE,
    FOLLOWUP_COMPOSITION_PROMPT,
    STAY_LIGHT_GUIDANCE,
    VOICE_EXAMPLES_LINE,
)

DEFAULT_SUBJECT = "Invoice/Payment Request"


def escalation_guidance(params: GenerationParams) -> str:
    """Return the urgency instructions for this follow-up.

    The first follow-up gets none.  Later ones escalate, and past the third
    also ask for directness, unless the voice does not escalate, in which
    case the model is told to stay light.
    """
    if params.followup_number <= 1:
        return ""
    if not params.voice.escalates:
        return STAY_LIGHT_GUIDANCE.format(followup_number=params.followup_number)
    guidance = ESCALATE_GUIDANCE.format(followup_number=params.followup_number)
    if params.followup_number > 3:
        guidance += DIRECT_GUIDANCE
    return guidance


def build_followup_prompt(params: GenerationParams) -> str:
    """Render the composition prompt for *params*."""
    voice = params.voice
    return FOLLOWUP_COMPOSITION_PROMPT.format(
        recipient_name=params.recipient_name or "the recipient",
        amount=f"${params.amount}" if params.amount is not None else "amount not specified",
        subject=params.subject or DEFAULT_SUBJECT,
        context=params.context or "None provided",
        followup_number=params.followup_number,
        days_since_initial=params.days_since_initial,
        voice_label=voice.label,
        voice_description=voice.description,
        voice_examples=VOICE_EXAMPLES_LINE.format(examples=voice.examples)
        if voice.examples
        else "",
        escalation=escalation_guidance(params),
    )


def generate_followup_body(
    params: GenerationParams,
    client: Anthropic,
    *,
    model: str = COMPOSE_MODEL,
) -> str:
    """Compose the body text of a follow-up email.

    Args:
        params: Recipient, amount, voice, and sequence details.
        client: Configured Anthropic client instance.
        model: Model ID to use. Defaults to COMPOSE_MODEL (Sonnet).

    Returns:
        The generated body text, stripped of surrounding whitespace.

    Raises:
        ValueError: If the model returned no text.
    """
    response = client.messages.create(
        model=model,
        max_tokens=COMPOSE_MAX_TOKENS,
        messages=[{"role": "user", "content": build_followup_prompt(params)}],
    )
    body = response_text(response).strip()
    if not body:
        raise ValueError("Model returned an empty follow-up body")
    return body
