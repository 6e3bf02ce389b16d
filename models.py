"""
models.py — canonical home of the recognition data types.

The service speaks camelCase JSON (textDetected, aiLearningFeedback);
the Python side uses snake_case attributes. Conversion happens only in
from_dict() / to_dict() so nothing else needs to know the wire names.
"""
from __future__ import annotations

import base64
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional


@dataclass(frozen=True)
class RecognizedObject:
    """One object the service found in the image."""
    name: str
    description: str = ""
    confidence: str = ""   # free text as returned, e.g. "high" or "92%"

    @classmethod
    def from_dict(cls, data: Any) -> "RecognizedObject":
        if not isinstance(data, dict):
            raise ValueError(f"Object entry must be a JSON object, got {type(data).__name__}")
        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValueError("Object entry is missing a name")
        return cls(
            name=name.strip(),
            description=str(data.get("description") or ""),
            confidence=str(data.get("confidence") or ""),
        )

    def to_dict(self) -> dict:
        return {"name": self.name, "description": self.description, "confidence": self.confidence}


@dataclass(frozen=True)
class RecognitionResult:
    """Output of one recognition call. Each call's result replaces the previous one."""
    summary: str
    objects: list[RecognizedObject] = field(default_factory=list)
    colors: list[str]               = field(default_factory=list)
    labels: list[str]               = field(default_factory=list)
    text_detected: Optional[str]    = None
    learning_feedback: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "RecognitionResult":
        """
        Build a result from the service's JSON.
        Raises ValueError when the payload does not have the expected shape.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Recognition result must be a JSON object, got {type(data).__name__}")

        objects = data.get("objects") or []
        if not isinstance(objects, list):
            raise ValueError("'objects' must be a list")

        return cls(
            summary=str(data.get("summary") or ""),
            objects=[RecognizedObject.from_dict(o) for o in objects],
            colors=_str_list(data.get("colors"), "colors"),
            labels=_str_list(data.get("labels"), "labels"),
            text_detected=_optional_text(data.get("textDetected")),
            learning_feedback=_optional_text(data.get("aiLearningFeedback")),
        )

    def to_dict(self) -> dict:
        return {
            "summary": self.summary,
            "objects": [o.to_dict() for o in self.objects],
            "colors": list(self.colors),
            "labels": list(self.labels),
            "textDetected": self.text_detected,
            "aiLearningFeedback": self.learning_feedback,
        }

    @property
    def object_names(self) -> list[str]:
        return [o.name for o in self.objects]


@dataclass(frozen=True)
class CorrectionEntry:
    """A user renamed one object between two consecutive recognition calls."""
    original: str
    corrected: str
    observed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        # Epoch milliseconds, the format the prompt has always used
        return {
            "original": self.original,
            "corrected": self.corrected,
            "timestamp": int(self.observed_at.timestamp() * 1000),
        }


@dataclass(frozen=True)
class ImagePayload:
    """Encoded image bytes plus their media type, ready to send to a provider."""
    data: bytes
    media_type: str = "image/jpeg"

    @property
    def base64(self) -> str:
        return base64.b64encode(self.data).decode()

    @property
    def data_url(self) -> str:
        return f"data:{self.media_type};base64,{self.base64}"

    def __repr__(self) -> str:
        return f"ImagePayload(media_type={self.media_type!r}, size={len(self.data)})"


# ── helpers ───────────────────────────────────────────────────────────────────

def _str_list(value: Any, field_name: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"'{field_name}' must be a list")
    return [str(v) for v in value if v is not None and str(v).strip()]


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
