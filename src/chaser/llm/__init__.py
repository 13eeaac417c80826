"""LLM integration package for the payment chaser.

Provides Anthropic client configuration, Pydantic models for LLM I/O, prompt
templates, context extraction, payment classification, follow-up
composition, and the voice catalog.
"""

from chaser.llm.classifier import classify_paid
from chaser.llm.client import (
    CLASSIFY_MODEL,
    COMPOSE_MODEL,
    EXTRACTION_MODEL,
    get_anthropic_client,
)
from chaser.llm.composer import build_followup_prompt, escalation_guidance, generate_followup_body
from chaser.llm.extraction import extract_context, parse_extraction
from chaser.llm.models import ExtractedContext, GenerationParams
from chaser.llm.service import LanguageModelService
from chaser.llm.voices import (
    BUILTIN_VOICES,
    FALLBACK_VOICE,
    VoiceCatalog,
    load_voice_seed,
    seed_voices,
)

__all__ = [
    "BUILTIN_VOICES",
    "CLASSIFY_MODEL",
    "COMPOSE_MODEL",
    "EXTRACTION_MODEL",
    "FALLBACK_VOICE",
    "ExtractedContext",
    "GenerationParams",
    "LanguageModelService",
    "VoiceCatalog",
    "build_followup_prompt",
    "classify_paid",
    "escalation_guidance",
    "extract_context",
    "generate_followup_body",
    "get_anthropic_client",
    "load_voice_seed",
    "parse_extraction",
    "seed_voices",
]
