"""
Shared types, prompt and base class for all recognition providers.
"""
from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from models import CorrectionEntry, ImagePayload, RecognitionResult

logger = logging.getLogger(__name__)

# ── Prompt (shared across all providers) ──────────────────────────────────────

SYSTEM_PROMPT = """You are an expert visual recognition assistant.
Analyse the image and return ONLY a valid JSON object — no markdown, no prose.

JSON schema (all fields required unless marked optional):
{
  "summary":            "one or two sentences describing the whole scene",
  "objects":            [{"name": "short object name",
                          "description": "what it is / what it looks like",
                          "confidence": "high | medium | low"}],
  "colors":             ["dominant colours"],
  "labels":             ["short tags for the scene"],
  "textDetected":       "any legible text in the image, or null if none",
  "aiLearningFeedback": "optional — what you changed because of the user's corrections"
}

Rules:
- List the most prominent objects first
- Only fill textDetected with text you can actually read
- When the user supplies corrections, treat them as ground truth
"""

USER_PROMPT = "Analyse this image and return the JSON."


def build_user_prompt(
    corrections: Optional[dict] = None,
    history: tuple[CorrectionEntry, ...] = (),
    language: str = "English",
) -> str:
    """
    Build the user message.  Corrections from the current refinement and
    the rolling history of past ones are appended so the model can adjust.
    """
    parts = [USER_PROMPT, f"Write all text values in {language}."]

    if history:
        learned = "\n".join(
            f"- \"{e.original}\" should be called \"{e.corrected}\"" for e in history
        )
        # Same entries again as wire records, timestamps in epoch ms
        records = json.dumps([e.to_dict() for e in history], ensure_ascii=False)
        parts.append(
            "Learned knowledge from earlier user corrections "
            "(apply it whenever the same kind of object appears):\n"
            + learned + "\nRecords, oldest first: " + records
        )

    if corrections:
        parts.append(
            "The user reviewed your previous answer and corrected it. "
            "Use these values as ground truth, re-examine the image and "
            "explain what you adjusted in aiLearningFeedback:\n"
            + json.dumps(corrections, ensure_ascii=False)
        )

    return "\n\n".join(parts)


# ── Request type ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class RecognitionRequest:
    """Everything a provider needs for one recognition call."""
    image: ImagePayload
    corrections: Optional[dict] = None
    history: tuple[CorrectionEntry, ...] = field(default_factory=tuple)

    @property
    def image_base64(self) -> str:
        return self.image.base64

    @property
    def media_type(self) -> str:
        return self.image.media_type

    def user_prompt(self, language: str = "English") -> str:
        return build_user_prompt(self.corrections, self.history, language)


def parse_json_response(raw: str, provider_name: str) -> dict:
    """
    Parse JSON from a model response, handling markdown fences gracefully.
    Raises ValueError on parse failure.
    """
    text = (raw or "").strip()
    # Strip ```json ... ``` or ``` ... ``` fences if present
    if text.startswith("```"):
        lines = text.split("\n")
        text = "\n".join(lines[1:-1] if lines[-1].strip() == "```" else lines[1:])
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        logger.error("[%s] Non-JSON response: %s", provider_name, (raw or "")[:300])
        raise ValueError(f"[{provider_name}] JSON parse error: {exc}") from exc


def parse_result(raw: str, provider_name: str) -> RecognitionResult:
    """Parse and validate a model response into a RecognitionResult."""
    data = parse_json_response(raw, provider_name)
    try:
        return RecognitionResult.from_dict(data)
    except ValueError as exc:
        logger.error("[%s] Malformed result: %s", provider_name, exc)
        raise ValueError(f"[{provider_name}] Malformed result: {exc}") from exc


# ── Abstract base ──────────────────────────────────────────────────────────────

class RecognitionProvider(ABC):
    """Base class all recognition providers must implement."""

    name: str           # e.g. "google"
    model_id: str       # e.g. "gemini-2.0-flash"
    language: str = "English"

    @abstractmethod
    async def recognise(self, request: RecognitionRequest) -> RecognitionResult:
        """Run one recognition call. Raises on any failure."""
        ...

    @property
    def full_name(self) -> str:
        return f"{self.name}/{self.model_id}"
