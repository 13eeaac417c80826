"""Voice catalog: resolve a style name to the description the composer uses.

Lookups go to the ``voices`` table first; a small built-in table is consulted
only when the store has no entry, and unknown names fall back to
``professional``.  The catalog is seeded from ``config/voices.yaml``.
"""

from __future__ import annotations

from pathlib import Path

import structlog
import yaml  # type: ignore[import-untyped]
from pydantic import BaseModel, Field

from chaser.domain.models import Voice
from chaser.store.store import ChaserStore

logger = structlog.get_logger()

FALLBACK_VOICE = "professional"

DEFAULT_VOICES_PATH = Path("config/voices.yaml")

BUILTIN_VOICES: dict[str, Voice] = {
    "professional": Voice(
        name="professional",
        label="Professional",
        description=(
            "Polite and business-like. Maintains professionalism while being clear "
            "about the request."
        ),
        sort_order=1,
    ),
    "friendly": Voice(
        name="friendly",
        label="Friendly",
        description=(
            "Warm and personable. Uses a conversational tone while still being clear "
            "about needing payment."
        ),
        sort_order=2,
        escalates=False,
    ),
    "firm": Voice(
        name="firm",
        label="Firm",
        description=(
            "Direct and assertive. Makes it clear this is important and needs attention, "
            "without being rude."
        ),
        sort_order=3,
    ),
    "aggressive": Voice(
        name="aggressive",
        label="Aggressive",
        description=(
            "Very direct and urgent. Emphasizes consequences and the need for immediate action."
        ),
        sort_order=4,
    ),
}


class VoiceSeed(BaseModel):
    """Validated shape of ``voices.yaml``."""

    voices: list[Voice] = Field(default_factory=list)


class VoiceCatalog:
    """Single lookup capability for voices, backed by the store.

    Args:
        store: The store holding the configurable ``voices`` table.
    """

    def __init__(self, store: ChaserStore) -> None:
        self._store = store

    def resolve(self, name: str | None) -> Voice:
        """Return the voice called *name*.

        Resolution order: catalog entry, built-in default, then ``professional``.
        """
        if name:
            voice = self._store.get_voice(name)
            if voice is not None:
                return voice
            builtin = BUILTIN_VOICES.get(name)
            if builtin is not None:
                return builtin
            logger.debug("Unknown voice, using fallback", voice=name, fallback=FALLBACK_VOICE)
        return BUILTIN_VOICES[FALLBACK_VOICE]

    def list_voices(self) -> list[Voice]:
        """Return the catalog in display order, or the built-ins if it is empty."""
        voices = self._store.list_voices()
        if voices:
            return voices
        return sorted(BUILTIN_VOICES.values(), key=lambda v: (v.sort_order, v.name))


def load_voice_seed(path: Path = DEFAULT_VOICES_PATH) -> list[Voice]:
    """Load and validate the voice seed file.

    Args:
        path: Path to the YAML seed file.

    Returns:
        The voices defined in the file (empty if the file is empty).

    Raises:
        FileNotFoundError: If the seed file does not exist.
    """
    if not path.exists():
        raise FileNotFoundError(f"Voice seed file not found: {path}")

    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    if raw is None:
        return []
    return VoiceSeed.model_validate(raw).voices


def seed_voices(store: ChaserStore, path: Path = DEFAULT_VOICES_PATH) -> int:
    """Upsert every voice in the seed file into the catalog by name.

    Returns:
        The number of voices written.
    """
    voices = load_voice_seed(path)
    for voice in voices:
        store.upsert_voice(voice)
        logger.info("Seeded voice", voice=voice.name, label=voice.label)
    return len(voices)
