"""Pydantic models defining structured I/O contracts for LLM interactions.

These models are used for:
- Context extraction from a newly labelled thread
- The parameters handed to follow-up composition
"""

from decimal import Decimal, InvalidOperation

from pydantic import BaseModel, ConfigDict, Field, field_validator

from chaser.domain.models import Voice


class ExtractedContext(BaseModel):
    """Structured extraction from a payment-request thread.

    Every field is optional: a model that cannot find a name or amount
    returns null, and a malformed response becomes an empty instance.
    """

    recipient_name: str | None = Field(
        default=None, description="Name of the person being asked to pay"
    )
    amount: Decimal | None = Field(default=None, description="Amount owed, if mentioned")
    summary: str = Field(default="", description="What the payment is for")

    @field_validator("recipient_name", mode="before")
    @classmethod
    def blank_name_is_none(cls, v: object) -> object:
        """Treat empty strings and the literal ``"null"`` as no name."""
        if isinstance(v, str) and (not v.strip() or v.strip().lower() == "null"):
            return None
        return v

    @field_validator("amount", mode="before")
    @classmethod
    def parse_amount(cls, v: object) -> Decimal | None:
        """Parse ``"$1,250.00"``-style strings; anything unparseable becomes None."""
        if v is None or isinstance(v, bool):
            return None
        text = str(v).strip().replace("$", "").replace(",", "")
        if not text or text.lower() == "null":
            return None
        try:
            amount = Decimal(text)
        except InvalidOperation:
            return None
        return amount if amount.is_finite() else None

    @field_validator("summary", mode="before")
    @classmethod
    def none_summary_is_empty(cls, v: object) -> object:
        """Coerce a null summary to an empty string."""
        return "" if v is None else v


class GenerationParams(BaseModel):
    """Everything the composer needs to write one follow-up body."""

    model_config = ConfigDict(frozen=True)

    recipient_name: str | None = None
    amount: Decimal | None = None
    context: str | None = None
    subject: str | None = None
    voice: Voice
    followup_number: int = Field(ge=1)
    days_since_initial: int = Field(ge=0)
