"""
style.py — Visual style system for the bot.

Design language:
  • Structured cards with consistent emoji icons
  • Unicode box-drawing dividers
  • Clear visual hierarchy: header → body → footer
  • MarkdownV2 throughout

All text that goes into Telegram messages should be formatted through this module.
"""
from __future__ import annotations

from typing import Iterable, Optional

from models import CorrectionEntry, RecognitionResult

# ── Escape ────────────────────────────────────────────────────────────────────

def esc(text: str) -> str:
    """Escape all MarkdownV2 special characters."""
    for ch in r"\_*[]()~`>#+-=|{}.!":
        text = text.replace(ch, f"\\{ch}")
    return text


# ── Visual constants ──────────────────────────────────────────────────────────

DIV   = "━━━━━━━━━━━━━━━━━━━━━━━━━━"    # thick divider
SDIV  = "┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄"    # subtle divider

CONF  = {"high": "🟢", "medium": "🟡", "low": "🔴"}

MAX_MESSAGE_LEN = 4050   # Telegram hard limit is 4096


def conf_icon(confidence: str) -> str:
    return CONF.get(confidence.strip().lower(), "⚪")


def _truncate(text: str) -> str:
    if len(text) <= MAX_MESSAGE_LEN:
        return text
    return text[:MAX_MESSAGE_LEN] + "\n…"


# ══════════════════════════════════════════════════════════════════════════════
# START / HELP
# ══════════════════════════════════════════════════════════════════════════════

def welcome() -> str:
    return (
        f"👁️ *VISION AI ADAPTIVE*\n"
        f"{DIV}\n\n"
        f"Send me a photo and I'll describe what's in it\\.\n"
        f"Correct my mistakes and I'll learn from them\\.\n\n"
        f"✨  *What I can do*\n"
        f"▸ List the objects in your image\n"
        f"▸ Pick out colours, labels and any text\n"
        f"▸ Re\\-analyse with your corrections\n"
        f"▸ Remember your last corrections for the next photos\n\n"
        f"{DIV}\n"
        f"_📸 Take a photo or send an image file to get started_"
    )


def help_text() -> str:
    return (
        f"📖 *HOW TO USE*\n"
        f"{DIV}\n\n"
        f"*1️⃣  Send an image*\n"
        f"_A camera photo, or an image file as a document_\n\n"
        f"*2️⃣  Check the result*\n"
        f"_Objects, colours, labels, detected text_\n\n"
        f"*3️⃣  Correct wrong names*\n"
        f"_Tap ✏️ next to an object and send the right name,_\n"
        f"_or use /fix 2 golden retriever_\n\n"
        f"*4️⃣  Submit*\n"
        f"_The image is analysed again with your corrections_\n\n"
        f"{DIV}\n"
        f"_Commands: /start · /help · /history · /reset · /provider_"
    )


# ══════════════════════════════════════════════════════════════════════════════
# LOADING / BADGES
# ══════════════════════════════════════════════════════════════════════════════

def loading(refining: bool) -> str:
    if refining:
        return (
            f"🧠 *Learning from your corrections*\n"
            f"{SDIV}\n"
            f"⠙ Re\\-analysing the image…"
        )
    return (
        f"🔍 *Analysing your photo*\n"
        f"{SDIV}\n"
        f"⠋ Reasoning about the scene…"
    )


def history_badge(size: int) -> str:
    if size <= 0:
        return ""
    noun = "correction" if size == 1 else "corrections"
    return f"🎓 _Learned {size} {noun}_"


# ══════════════════════════════════════════════════════════════════════════════
# RESULT
# ══════════════════════════════════════════════════════════════════════════════

def result_card(
    result: RecognitionResult,
    history_size: int = 0,
    draft: Optional[list[str]] = None,
) -> str:
    """
    Format a recognition result.  *draft* holds the user's pending names,
    index-aligned with result.objects; changed ones are shown as old → new.
    """
    lines = [f"✨ *RECOGNITION RESULT*\n{DIV}\n"]

    if result.summary:
        lines.append(f"📝 {esc(result.summary)}\n")

    if result.objects:
        lines.append("📦 *Objects*")
        for i, obj in enumerate(result.objects):
            name = esc(obj.name)
            if draft is not None and i < len(draft) and draft[i] != obj.name:
                name = f"~{name}~ → *{esc(draft[i])}* ✏️"
            else:
                name = f"*{name}*"
            conf = f"  {conf_icon(obj.confidence)} {esc(obj.confidence)}" if obj.confidence else ""
            lines.append(f"*{i + 1}\\.* {name}{conf}")
            if obj.description:
                lines.append(f"    _{esc(obj.description)}_")
        lines.append("")
    else:
        lines.append("📦 _No objects recognised_\n")

    if result.colors:
        lines.append(f"🎨 {esc(' · '.join(result.colors))}")
    if result.labels:
        lines.append(f"🏷️ {esc(' · '.join(result.labels))}")
    if result.text_detected:
        lines.append(f"\n🔤 *Text found*\n`{esc(result.text_detected)}`")
    if result.learning_feedback:
        lines.append(f"\n🧠 *What I adjusted*\n_{esc(result.learning_feedback)}_")

    lines.append(f"\n{SDIV}")
    badge = history_badge(history_size)
    if badge:
        lines.append(badge)
    lines.append("_Tap ✏️ to correct a name, then submit\\._")
    return _truncate("\n".join(lines))


def ask_new_name(index: int, current: str) -> str:
    return (
        f"✏️ *Correct object {index + 1}*\n"
        f"{SDIV}\n"
        f"Currently: *{esc(current)}*\n\n"
        f"_Send the right name as a message\\._"
    )


def history_list(entries: Iterable[CorrectionEntry], capacity: int) -> str:
    entries = list(entries)
    if not entries:
        return (
            f"🎓 *LEARNED CORRECTIONS*\n"
            f"{SDIV}\n"
            f"_Nothing learned yet\\. Correct a result to teach me\\._"
        )
    lines = [f"🎓 *LEARNED CORRECTIONS*  \\({len(entries)}/{capacity}\\)\n{SDIV}"]
    for e in entries:
        lines.append(f"▸ {esc(e.original)} → *{esc(e.corrected)}*")
    return "\n".join(lines)


def reset_done(history_size: int) -> str:
    badge = history_badge(history_size)
    return (
        f"🔁 *Starting over*\n"
        f"{SDIV}\n"
        f"_Send a new photo\\._"
        + (f"\n{badge}" if badge else "")
    )


def provider_info(full_name: str) -> str:
    return (
        f"🤖 *RECOGNITION PROVIDER*\n"
        f"{SDIV}\n"
        f"▸ *{esc(full_name)}*"
    )


# ══════════════════════════════════════════════════════════════════════════════
# ERROR MESSAGES
# ══════════════════════════════════════════════════════════════════════════════

def error_card(message: str) -> str:
    return (
        f"❌ *Analysis Failed*\n"
        f"{DIV}\n\n"
        f"{esc(message)}\n\n"
        f"_Retry, or start over with a new photo\\._"
    )


def capture_error(message: str) -> str:
    return (
        f"⚠️ *Couldn't read the image*\n"
        f"{SDIV}\n"
        f"{esc(message)}"
    )


def error_no_providers() -> str:
    return (
        f"⚠️ *No AI Provider Configured*\n"
        f"{DIV}\n\n"
        f"Set at least one vision API key in the environment:\n"
        f"▸ GOOGLE\\_API\\_KEY\n"
        f"▸ OPENAI\\_API\\_KEY\n"
        f"▸ ANTHROPIC\\_API\\_KEY"
    )


def busy() -> str:
    return "⏳ _Still working on your last image — one moment\\._"


def cancelled() -> str:
    return "🔁 _Cancelled\\. That answer was dropped after you started over\\._"


def nothing_to_refine() -> str:
    return (
        f"📸 *Nothing to correct yet*\n"
        f"{SDIV}\n"
        f"_Send a photo first\\._"
    )


def fix_usage() -> str:
    return "✏️ Usage: `/fix <number> <new name>`, e\\.g\\. `/fix 2 golden retriever`"


def not_a_photo() -> str:
    return (
        f"📸 *Send a Photo*\n"
        f"{SDIV}\n"
        f"I need an image to analyse\\.\n"
        f"_Take a pic or attach an image file\\!_"
    )
