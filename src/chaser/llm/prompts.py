"""Prompt templates for LLM interactions.

Templates use Python string placeholders ({variable_name}) for injection of
thread content and per-follow-up parameters.
"""

THREAD_SEPARATOR = "\n\n---\n\n"

CONTEXT_EXTRACTION_PROMPT = """Analyze this email thread and extract:
1. The name of the person being asked to pay (if mentioned)
2. The amount owed (if mentioned)
3. A brief summary of what the payment is for

Email thread:
{thread}

Respond with JSON only, in this format:
{{
  "recipient_name": "name or null",
  "amount": "number as string or null",
  "summary": "brief summary of what the payment is for"
}}"""

PAYMENT_CLASSIFICATION_PROMPT = """Analyze this email thread and determine if payment has been \
made or confirmed.
Look for phrases like "payment sent", "paid", "transferred", "receipt attached", "thank you for \
your payment", etc.

Email thread:
{thread}

Respond with only "true" or "false" (no other text)."""

FOLLOWUP_COMPOSITION_PROMPT = """You are helping someone follow up on an unpaid invoice or \
payment request.

Context about the request:
- Recipient: {recipient_name}
- Amount owed: {amount}
- Original request subject: {subject}
- Additional context: {context}
- This is follow-up #{followup_number}
- It has been {days_since_initial} days since the initial request

Voice: {voice_label} - {voice_description}
{voice_examples}
{escalation}
Write a brief, effective follow-up email. Keep it concise (3-5 sentences). Don't include a \
subject line - just the body text. Don't include a formal greeting or signature - just the \
core message."""

VOICE_EXAMPLES_LINE = "Example of this voice: {examples}\n"

ESCALATE_GUIDANCE = (
    "This is follow-up #{followup_number}, so the urgency should naturally escalate. "
)

DIRECT_GUIDANCE = (
    "This has been outstanding for a while, so be more direct about needing resolution. "
)

STAY_LIGHT_GUIDANCE = (
    "Even though this is follow-up #{followup_number}, keep the tone just as light and "
    "friendly as a first reminder. Do not increase urgency or pressure. "
)
