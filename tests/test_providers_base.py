"""
Tests for providers/base.py — prompt building and response parsing.

Covers:
  - build_user_prompt(): plain, with history, with corrections, language
  - RecognitionRequest accessors
  - parse_json_response: plain JSON, markdown-fenced JSON, invalid JSON
  - parse_result(): valid result, malformed shape
"""
from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from models import CorrectionEntry, ImagePayload
from providers.base import (
    USER_PROMPT,
    RecognitionRequest,
    build_user_prompt,
    parse_json_response,
    parse_result,
)


# ── build_user_prompt ─────────────────────────────────────────────────────────

class TestBuildUserPrompt:
    def test_plain_prompt(self):
        prompt = build_user_prompt()
        assert prompt.startswith(USER_PROMPT)
        assert "Learned knowledge" not in prompt
        assert "corrected" not in prompt

    def test_language(self):
        assert "Traditional Chinese" in build_user_prompt(language="Traditional Chinese")

    def test_history_listed_in_order(self):
        history = (
            CorrectionEntry(original="cat", corrected="dog"),
            CorrectionEntry(original="cup", corrected="mug"),
        )
        prompt = build_user_prompt(history=history)
        assert "Learned knowledge" in prompt
        assert prompt.index('"cat" should be called "dog"') < prompt.index('"cup" should be called "mug"')

    def test_history_records_carry_epoch_ms(self):
        at = datetime(2024, 1, 1, tzinfo=timezone.utc)
        prompt = build_user_prompt(history=(CorrectionEntry(original="cat", corrected="dog", observed_at=at),))
        records = json.loads(prompt.split("Records, oldest first: ")[1].split("\n")[0])
        assert records == [{"original": "cat", "corrected": "dog", "timestamp": 1704067200000}]

    def test_corrections_embedded_as_json(self):
        corr = {"objects": [{"name": "golden retriever", "description": "", "confidence": ""}]}
        prompt = build_user_prompt(corrections=corr)
        assert json.dumps(corr, ensure_ascii=False) in prompt
        assert "aiLearningFeedback" in prompt

    def test_non_ascii_kept_readable(self):
        prompt = build_user_prompt(corrections={"objects": [{"name": "貓"}]})
        assert "貓" in prompt


class TestRecognitionRequest:
    def test_accessors(self):
        image = ImagePayload(data=b"abc", media_type="image/png")
        req = RecognitionRequest(image=image)
        assert req.image_base64 == "YWJj"
        assert req.media_type == "image/png"
        assert req.corrections is None
        assert req.history == ()

    def test_user_prompt_uses_request_fields(self):
        req = RecognitionRequest(
            image=ImagePayload(data=b"x"),
            history=(CorrectionEntry(original="cat", corrected="dog"),),
        )
        assert '"cat" should be called "dog"' in req.user_prompt()


# ── parse_json_response ───────────────────────────────────────────────────────

class TestParseJsonResponse:
    def test_plain_json(self):
        data = parse_json_response('{"summary": "A cat"}', "testprovider")
        assert data["summary"] == "A cat"

    def test_json_fenced_with_backticks(self):
        data = parse_json_response("```json\n{\"summary\": \"A cat\"}\n```", "testprovider")
        assert data["summary"] == "A cat"

    def test_json_fenced_without_language_hint(self):
        data = parse_json_response("```\n{\"summary\": \"A cat\"}\n```", "testprovider")
        assert data["summary"] == "A cat"

    def test_leading_trailing_whitespace(self):
        data = parse_json_response('  \n  {"summary": "A cat"}  \n  ', "testprovider")
        assert data["summary"] == "A cat"

    def test_invalid_json_raises_value_error(self):
        with pytest.raises(ValueError, match="JSON parse error"):
            parse_json_response("This is not JSON at all.", "testprovider")

    def test_none_raises_value_error(self):
        with pytest.raises(ValueError):
            parse_json_response(None, "testprovider")


class TestParseResult:
    def test_valid(self):
        raw = json.dumps({
            "summary": "desk",
            "objects": [{"name": "laptop", "description": "silver", "confidence": "high"}],
            "colors": ["silver"],
            "labels": ["office"],
            "textDetected": None,
        })
        result = parse_result(raw, "testprovider")
        assert result.object_names == ["laptop"]
        assert result.text_detected is None

    def test_malformed_shape_names_provider(self):
        with pytest.raises(ValueError, match=r"\[testprovider\] Malformed result"):
            parse_result('{"objects": "laptop"}', "testprovider")
