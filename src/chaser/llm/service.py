"""Language model collaborator bundling extraction, classification, and composition."""

from __future__ import annotations

from anthropic import Anthropic

from chaser.llm.classifier import classify_paid
from chaser.llm.client import CLASSIFY_MODEL, COMPOSE_MODEL, EXTRACTION_MODEL
from chaser.llm.composer import generate_followup_body
from chaser.llm.extraction import extract_context
from chaser.llm.models import ExtractedContext, GenerationParams


class LanguageModelService:
    """The three model operations the engine consumes, bound to one client.

    Args:
        client: Configured Anthropic client instance.
        extraction_model: Model used for context extraction.
        classify_model: Model used for payment classification.
        compose_model: Model used for follow-up composition.
    """

    def __init__(
        self,
        client: Anthropic,
        *,
        extraction_model: str = EXTRACTION_MODEL,
        classify_model: str = CLASSIFY_MODEL,
        compose_model: str = COMPOSE_MODEL,
    ) -> None:
        self._client = client
        self._extraction_model = extraction_model
        self._classify_model = classify_model
        self._compose_model = compose_model

    def extract_context(self, bodies: list[str]) -> ExtractedContext:
        return extract_context(bodies, self._client, model=self._extraction_model)

    def classify_paid(self, bodies: list[str]) -> bool:
        return classify_paid(bodies, self._client, model=self._classify_model)

    def generate_followup(self, params: GenerationParams) -> str:
        return generate_followup_body(params, self._client, model=self._compose_model)
