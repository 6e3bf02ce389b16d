"""
bot.py — Telegram bot handlers.

All visual formatting is delegated to style.py.
Session state is kept in-memory per user_id; the analysis lifecycle itself
lives in session.AnalysisSession.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Awaitable, Callable, Optional

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

import config
import style
from history import CorrectionHistory
from image_source import CaptureError, download_document, download_photo
from models import ImagePayload, RecognitionResult
from providers.manager import recognise, select_provider
from session import AnalysisSession, Phase, SessionState

logger = logging.getLogger(__name__)

# ── Callback data ──────────────────────────────────────────────────────────────
CB_EDIT   = "edit:"            # + object index
CB_SUBMIT = "refine:submit"
CB_RETRY  = "session:retry"
CB_RESET  = "session:reset"

MAX_NAME_LEN = 60


# ── Session ────────────────────────────────────────────────────────────────────

@dataclass
class UserSession:
    analysis: AnalysisSession
    # Pending object names, index-aligned with analysis.result.objects
    draft: list[str] = field(default_factory=list)
    # Object whose new name the next text message provides
    editing_index: Optional[int] = None
    # A handler is preparing a call (download, status message) but the
    # analysis has not entered LOADING/REFINING yet
    claimed: bool = False

    @property
    def busy(self) -> bool:
        return self.claimed or self.analysis.is_busy

    def claim(self) -> bool:
        """
        Reserve the session for one recognition call. Must be called with no
        await between the check and the claim; returns False when taken.
        """
        if self.busy:
            return False
        self.claimed = True
        return True

    def release(self) -> None:
        self.claimed = False

    async def hand_over(self, call: Awaitable[bool]) -> bool:
        """
        Drop the claim and run *call*. start_analysis() switches the phase
        before its first suspension, so the session never looks idle between.
        """
        self.claimed = False
        return await call

    def start_draft(self) -> None:
        result = self.analysis.result
        self.draft = result.object_names if result else []
        self.editing_index = None


_sessions: dict[int, UserSession] = {}


def _log_transitions(user_id: int) -> Callable[[SessionState], None]:
    def _listener(state: SessionState) -> None:
        logger.info(
            "user=%d phase=%s generation=%d history=%d",
            user_id, state.phase.value, state.generation, state.history_size,
        )
    return _listener


def get_session(user_id: int) -> UserSession:
    if user_id not in _sessions:
        analysis = AnalysisSession(
            recognise,
            CorrectionHistory(config.HISTORY_CAPACITY),
            default_error=config.DEFAULT_ERROR_MESSAGE,
            timeout=config.ANALYSIS_TIMEOUT_SECS,
        )
        analysis.subscribe(_log_transitions(user_id))
        _sessions[user_id] = UserSession(analysis=analysis)
    return _sessions[user_id]


# ── Corrections ────────────────────────────────────────────────────────────────

def draft_changed(result: RecognitionResult, draft: list[str]) -> bool:
    return draft != result.object_names


def build_corrections(result: RecognitionResult, draft: list[str]) -> dict:
    """
    Turn the draft into the corrected result sent with a refinement, in the
    service's wire format. Only object names change, so positions stay aligned.
    """
    objects = [
        replace(obj, name=draft[i]) if i < len(draft) else obj
        for i, obj in enumerate(result.objects)
    ]
    return replace(result, objects=objects).to_dict()


def parse_fix_args(args: list[str]) -> tuple[int, str]:
    """
    Parse `/fix <number> <new name>` arguments into (0-based index, name).
    Raises ValueError on bad input.
    """
    if len(args) < 2 or not args[0].isdigit():
        raise ValueError("usage: /fix <number> <new name>")
    index = int(args[0]) - 1
    name  = " ".join(args[1:]).strip()[:MAX_NAME_LEN]
    if index < 0 or not name:
        raise ValueError("usage: /fix <number> <new name>")
    return index, name


# ── Keyboards ──────────────────────────────────────────────────────────────────

def result_keyboard(result: RecognitionResult, draft: list[str]) -> InlineKeyboardMarkup:
    rows = [
        [InlineKeyboardButton(
            f"✏️  {i + 1}. {draft[i] if i < len(draft) else obj.name}"[:64],
            callback_data=f"{CB_EDIT}{i}",
        )]
        for i, obj in enumerate(result.objects)
    ]
    if draft_changed(result, draft):
        rows.append([InlineKeyboardButton("✅  Submit corrections", callback_data=CB_SUBMIT)])
    rows.append([InlineKeyboardButton("🔁  Start over", callback_data=CB_RESET)])
    return InlineKeyboardMarkup(rows)


def error_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([
        [InlineKeyboardButton("🔄  Retry", callback_data=CB_RETRY)],
        [InlineKeyboardButton("🔁  Start over", callback_data=CB_RESET)],
    ])


# ── Rendering ──────────────────────────────────────────────────────────────────

EditFn = Callable[..., Awaitable[object]]


async def _render_result(edit: EditFn, session: UserSession) -> None:
    result = session.analysis.result
    await edit(
        style.result_card(result, len(session.analysis.history), session.draft),
        parse_mode="MarkdownV2",
        reply_markup=result_keyboard(result, session.draft),
    )


async def _render_outcome(edit: EditFn, session: UserSession) -> None:
    """Show whatever resting state the session ended in."""
    analysis = session.analysis
    if analysis.phase is Phase.SUCCESS:
        session.start_draft()
        await _render_result(edit, session)
    elif analysis.phase is Phase.ERROR:
        await edit(
            style.error_card(analysis.error or config.DEFAULT_ERROR_MESSAGE),
            parse_mode="MarkdownV2",
            reply_markup=error_keyboard(),
        )


# ── Handlers ───────────────────────────────────────────────────────────────────

async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await update.message.reply_text(style.welcome(), parse_mode="MarkdownV2")


async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await update.message.reply_text(style.help_text(), parse_mode="MarkdownV2")


async def cmd_provider(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    try:
        provider = select_provider()
    except (RuntimeError, ValueError) as exc:
        logger.warning("No usable provider: %s", exc)
        await update.message.reply_text(style.error_no_providers(), parse_mode="MarkdownV2")
        return
    await update.message.reply_text(style.provider_info(provider.full_name), parse_mode="MarkdownV2")


async def cmd_history(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    history = get_session(update.effective_user.id).analysis.history
    await update.message.reply_text(
        style.history_list(history.snapshot(), history.capacity),
        parse_mode="MarkdownV2",
    )


async def cmd_reset(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    session = get_session(update.effective_user.id)
    await session.analysis.reset()
    session.start_draft()
    await update.message.reply_text(
        style.reset_done(len(session.analysis.history)), parse_mode="MarkdownV2"
    )


async def cmd_fix(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    session = get_session(update.effective_user.id)
    result  = session.analysis.result
    if result is None:
        await update.message.reply_text(style.nothing_to_refine(), parse_mode="MarkdownV2")
        return
    try:
        index, name = parse_fix_args(context.args or [])
    except ValueError:
        await update.message.reply_text(style.fix_usage(), parse_mode="MarkdownV2")
        return
    if index >= len(session.draft):
        await update.message.reply_text(style.fix_usage(), parse_mode="MarkdownV2")
        return

    session.draft[index] = name
    await _render_result(update.message.reply_text, session)


async def _finish(edit: EditFn, session: UserSession, applied: bool) -> None:
    if applied:
        await _render_outcome(edit, session)
    else:
        # Reset while the call was outstanding; its answer was dropped
        await edit(style.cancelled(), parse_mode="MarkdownV2")


async def _analyse(
    update: Update,
    context: ContextTypes.DEFAULT_TYPE,
    download: Callable[..., Awaitable[ImagePayload]],
) -> None:
    session = get_session(update.effective_user.id)
    if not session.claim():
        await update.message.reply_text(style.busy(), parse_mode="MarkdownV2")
        return

    try:
        image = await download(update.message, context.bot)
        # A new image always starts a fresh analysis; learned corrections are kept
        await session.analysis.reset()
        session.start_draft()
        msg = await update.message.reply_text(style.loading(refining=False), parse_mode="MarkdownV2")
    except CaptureError as exc:
        session.release()
        await update.message.reply_text(style.capture_error(str(exc)), parse_mode="MarkdownV2")
        return
    except BaseException:
        session.release()
        raise

    applied = await session.hand_over(session.analysis.start_analysis(image))
    await _finish(msg.edit_text, session, applied)


async def handle_photo(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await _analyse(update, context, download_photo)


async def handle_document(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await _analyse(update, context, download_document)


async def handle_text(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    session = get_session(update.effective_user.id)
    index   = session.editing_index
    result  = session.analysis.result

    if index is None or result is None or index >= len(session.draft):
        await update.message.reply_text(style.not_a_photo(), parse_mode="MarkdownV2")
        return

    name = update.message.text.strip()[:MAX_NAME_LEN]
    session.editing_index = None
    if name:
        session.draft[index] = name
    await _render_result(update.message.reply_text, session)


async def handle_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()
    session  = get_session(update.effective_user.id)
    analysis = session.analysis
    data     = query.data

    if session.busy and data != CB_RESET:
        await query.message.reply_text(style.busy(), parse_mode="MarkdownV2")
        return

    # ── Pick an object to rename ──────────────────────────────────────────────
    if data.startswith(CB_EDIT):
        idx = int(data[len(CB_EDIT):])
        if analysis.result is None or idx >= len(session.draft):
            await query.edit_message_text(style.nothing_to_refine(), parse_mode="MarkdownV2")
            return
        session.editing_index = idx
        await query.message.reply_text(
            style.ask_new_name(idx, session.draft[idx]), parse_mode="MarkdownV2"
        )
        return

    # ── Submit corrections → refinement call ──────────────────────────────────
    if data == CB_SUBMIT:
        result = analysis.result
        if result is None or analysis.image is None:
            await query.edit_message_text(style.nothing_to_refine(), parse_mode="MarkdownV2")
            return
        corrections = build_corrections(result, session.draft)
        session.claim()
        try:
            await query.edit_message_text(style.loading(refining=True), parse_mode="MarkdownV2")
        except BaseException:
            session.release()
            raise
        applied = await session.hand_over(analysis.refine(corrections))
        await _finish(query.edit_message_text, session, applied)
        return

    # ── Retry after an error ──────────────────────────────────────────────────
    if data == CB_RETRY:
        if analysis.image is None:
            await query.edit_message_text(style.nothing_to_refine(), parse_mode="MarkdownV2")
            return
        session.claim()
        try:
            await query.edit_message_text(style.loading(refining=False), parse_mode="MarkdownV2")
        except BaseException:
            session.release()
            raise
        applied = await session.hand_over(analysis.retry())
        await _finish(query.edit_message_text, session, applied)
        return

    # ── Start over ────────────────────────────────────────────────────────────
    if data == CB_RESET:
        await analysis.reset()
        session.start_draft()
        await query.edit_message_text(
            style.reset_done(len(analysis.history)), parse_mode="MarkdownV2"
        )
        return


async def _on_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    logger.error("Unhandled error while processing %s", update, exc_info=context.error)


# ── App factory ────────────────────────────────────────────────────────────────

def build_application() -> Application:
    app = (
        Application.builder()
        .token(config.TELEGRAM_BOT_TOKEN)
        # /reset must be able to arrive while a recognition call is outstanding
        .concurrent_updates(True)
        .build()
    )

    app.add_handler(CommandHandler("start",    cmd_start))
    app.add_handler(CommandHandler("help",     cmd_help))
    app.add_handler(CommandHandler("provider", cmd_provider))
    app.add_handler(CommandHandler("history",  cmd_history))
    app.add_handler(CommandHandler("reset",    cmd_reset))
    app.add_handler(CommandHandler("fix",      cmd_fix))
    app.add_handler(MessageHandler(filters.PHOTO,                   handle_photo))
    app.add_handler(MessageHandler(filters.Document.ALL,            handle_document))
    app.add_handler(CallbackQueryHandler(handle_callback))
    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_text))
    app.add_error_handler(_on_error)
    return app
