"""
image_source.py — turns incoming Telegram media into an ImagePayload.

Two producers:
  • photo     — Telegram re-encodes camera shots, always image/jpeg
  • document  — an uploaded file; media type taken from the file itself

Failures here are capture errors: they are shown to the user but never
touch the analysis session.
"""
from __future__ import annotations

import logging
import mimetypes
from typing import Optional

from telegram import Bot, Message
from telegram.error import TelegramError

from models import ImagePayload

logger = logging.getLogger(__name__)

CAMERA_MEDIA_TYPE = "image/jpeg"


class CaptureError(Exception):
    """The image could not be obtained from the user."""


def from_photo(data: bytes) -> ImagePayload:
    if not data:
        raise CaptureError("The photo is empty")
    return ImagePayload(data=data, media_type=CAMERA_MEDIA_TYPE)


def from_document(data: bytes, mime_type: Optional[str], file_name: Optional[str] = None) -> ImagePayload:
    media_type = mime_type or (mimetypes.guess_type(file_name)[0] if file_name else None)
    if not media_type or not media_type.startswith("image/"):
        raise CaptureError(f"{file_name or 'This file'} is not an image")
    if not data:
        raise CaptureError(f"{file_name or 'The file'} is empty")
    return ImagePayload(data=data, media_type=media_type)


# ── Telegram glue ─────────────────────────────────────────────────────────────

async def _download(bot: Bot, file_id: str) -> bytes:
    try:
        tg_file = await bot.get_file(file_id)
        return bytes(await tg_file.download_as_bytearray())
    except TelegramError as exc:
        logger.error("Download of %s failed: %s", file_id, exc)
        raise CaptureError("Couldn't download the image from Telegram") from exc


async def download_photo(message: Message, bot: Bot) -> ImagePayload:
    # Last size is the largest (native resolution)
    photo = message.photo[-1]
    return from_photo(await _download(bot, photo.file_id))


async def download_document(message: Message, bot: Bot) -> ImagePayload:
    doc = message.document
    # Check the type first so non-images are never downloaded
    if doc.mime_type and not doc.mime_type.startswith("image/"):
        raise CaptureError(f"{doc.file_name or 'This file'} is not an image")
    return from_document(await _download(bot, doc.file_id), doc.mime_type, doc.file_name)
