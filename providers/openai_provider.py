"""
OpenAI recognition provider — supports gpt-4o and gpt-4o-mini.
"""
from __future__ import annotations

import time
import logging

from openai import AsyncOpenAI

from models import RecognitionResult
from providers.base import (
    SYSTEM_PROMPT, RecognitionProvider, RecognitionRequest, parse_result,
)

logger = logging.getLogger(__name__)


class OpenAIProvider(RecognitionProvider):

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", language: str = "English"):
        self.name = "openai"
        self.model_id = model
        self.language = language
        self._client = AsyncOpenAI(api_key=api_key)

    async def recognise(self, request: RecognitionRequest) -> RecognitionResult:
        t0 = time.monotonic()

        response = await self._client.chat.completions.create(
            model=self.model_id,
            max_tokens=2048,
            temperature=0.2,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "image_url",
                            "image_url": {"url": request.image.data_url, "detail": "high"},
                        },
                        {"type": "text", "text": request.user_prompt(self.language)},
                    ],
                },
            ],
        )

        latency_ms = int((time.monotonic() - t0) * 1000)
        logger.info("[%s] answered in %dms", self.full_name, latency_ms)

        return parse_result(response.choices[0].message.content, self.full_name)
