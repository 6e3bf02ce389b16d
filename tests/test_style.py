"""
Tests for style.py — MarkdownV2 formatting helpers.

Covers:
  - esc(): all MarkdownV2 special characters are escaped
  - loading(): analysing vs refining wording
  - history_badge(): hidden when empty, singular / plural
  - result_card(): objects, optional sections, draft markers, truncation
  - error_card() / history_list()
"""
from __future__ import annotations

import style
from models import CorrectionEntry, RecognitionResult, RecognizedObject


def make_result(**kwargs) -> RecognitionResult:
    defaults = dict(
        summary="A cat on a sofa.",
        objects=[
            RecognizedObject(name="cat", description="grey tabby", confidence="high"),
            RecognizedObject(name="sofa", description="blue", confidence="low"),
        ],
        colors=["grey", "blue"],
        labels=["pet"],
        text_detected=None,
        learning_feedback=None,
    )
    defaults.update(kwargs)
    return RecognitionResult(**defaults)


# ── esc() ─────────────────────────────────────────────────────────────────────

class TestEsc:
    MDV2_SPECIALS = r"\_*[]()~`>#+-=|{}.!"

    def test_all_special_characters_escaped(self):
        for ch in self.MDV2_SPECIALS:
            assert style.esc(ch) == f"\\{ch}", f"Character {ch!r} not escaped"

    def test_plain_text_unchanged(self):
        assert style.esc("Hello World") == "Hello World"


# ── loading / badge ───────────────────────────────────────────────────────────

class TestLoading:
    def test_analysing(self):
        assert "Analysing" in style.loading(refining=False)

    def test_refining(self):
        text = style.loading(refining=True)
        assert "corrections" in text
        assert "Analysing" not in text


class TestHistoryBadge:
    def test_empty_hidden(self):
        assert style.history_badge(0) == ""

    def test_singular(self):
        assert "1 correction_" in style.history_badge(1)

    def test_plural(self):
        assert "7 corrections" in style.history_badge(7)


# ── result_card() ─────────────────────────────────────────────────────────────

class TestResultCard:
    def test_lists_numbered_objects(self):
        card = style.result_card(make_result())
        assert "*1\\.* *cat*" in card
        assert "*2\\.* *sofa*" in card
        assert "🟢" in card and "🔴" in card

    def test_summary_escaped(self):
        assert "A cat on a sofa\\." in style.result_card(make_result())

    def test_optional_sections_hidden_when_absent(self):
        card = style.result_card(make_result())
        assert "Text found" not in card
        assert "What I adjusted" not in card

    def test_optional_sections_shown(self):
        card = style.result_card(make_result(text_detected="EXIT", learning_feedback="Now a dog"))
        assert "Text found" in card and "EXIT" in card
        assert "What I adjusted" in card and "Now a dog" in card

    def test_no_objects(self):
        assert "No objects recognised" in style.result_card(make_result(objects=[]))

    def test_draft_change_marked(self):
        card = style.result_card(make_result(), draft=["dog", "sofa"])
        assert "~cat~ → *dog* ✏️" in card
        assert "*sofa*" in card

    def test_history_badge_included(self):
        assert "Learned 3 corrections" in style.result_card(make_result(), history_size=3)

    def test_long_card_truncated(self):
        many = [RecognizedObject(name=f"object {i}", description="x" * 80) for i in range(100)]
        card = style.result_card(make_result(objects=many))
        assert len(card) <= style.MAX_MESSAGE_LEN + 2


# ── misc ──────────────────────────────────────────────────────────────────────

class TestMessages:
    def test_error_card_contains_message(self):
        assert "quota exceeded" in style.error_card("quota exceeded")

    def test_history_list_empty(self):
        assert "Nothing learned yet" in style.history_list([], 10)

    def test_history_list_entries(self):
        text = style.history_list([CorrectionEntry(original="cat", corrected="dog")], 10)
        assert "\\(1/10\\)" in text
        assert "cat → *dog*" in text

    def test_reset_done_shows_badge(self):
        assert "Learned 2 corrections" in style.reset_done(2)
        assert "Learned" not in style.reset_done(0)

    def test_provider_info_escapes_name(self):
        assert "google/gemini\\-2\\.0\\-flash" in style.provider_info("google/gemini-2.0-flash")
