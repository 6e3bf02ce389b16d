"""
Anthropic recognition provider — supports the Claude vision models.

Anthropic only accepts jpeg, png, gif and webp images; anything else is
rejected before the call so the user gets a clear error message.
"""
from __future__ import annotations

import time
import logging

import anthropic

from models import RecognitionResult
from providers.base import (
    SYSTEM_PROMPT, RecognitionProvider, RecognitionRequest, parse_result,
)

logger = logging.getLogger(__name__)

_SUPPORTED_MEDIA_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}


class AnthropicProvider(RecognitionProvider):

    def __init__(self, api_key: str, model: str = "claude-3-5-haiku-latest", language: str = "English"):
        self.name = "anthropic"
        self.model_id = model
        self.language = language
        self._client = anthropic.AsyncAnthropic(api_key=api_key)

    async def recognise(self, request: RecognitionRequest) -> RecognitionResult:
        if request.media_type not in _SUPPORTED_MEDIA_TYPES:
            raise ValueError(f"[{self.full_name}] Unsupported image type: {request.media_type}")

        t0 = time.monotonic()

        message = await self._client.messages.create(
            model=self.model_id,
            max_tokens=2048,
            system=SYSTEM_PROMPT,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "image",
                            "source": {
                                "type": "base64",
                                "media_type": request.media_type,
                                "data": request.image_base64,
                            },
                        },
                        {"type": "text", "text": request.user_prompt(self.language)},
                    ],
                }
            ],
        )

        latency_ms = int((time.monotonic() - t0) * 1000)
        logger.info("[%s] answered in %dms", self.full_name, latency_ms)

        return parse_result(message.content[0].text, self.full_name)
