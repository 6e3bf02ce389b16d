"""
Google Gemini recognition provider — uses the google-genai SDK (v1 API).

Gemini is the default provider: cheap, fast, and good at reading text
inside images.
"""
from __future__ import annotations

import time
import logging

from google import genai
from google.genai import types as genai_types

from models import RecognitionResult
from providers.base import (
    SYSTEM_PROMPT, RecognitionProvider, RecognitionRequest, parse_result,
)

logger = logging.getLogger(__name__)


class GeminiProvider(RecognitionProvider):

    def __init__(self, api_key: str, model: str = "gemini-2.0-flash", language: str = "English"):
        self.name     = "google"
        self.model_id = model
        self.language = language
        # Force v1 (stable) API
        self._client  = genai.Client(api_key=api_key, http_options={"api_version": "v1"})

    async def recognise(self, request: RecognitionRequest) -> RecognitionResult:
        gen_config = genai_types.GenerateContentConfig(
            system_instruction=SYSTEM_PROMPT,
            temperature=0.2,
            max_output_tokens=2048,
        )

        t0 = time.monotonic()

        response = await self._client.aio.models.generate_content(
            model=self.model_id,
            contents=[
                genai_types.Part.from_bytes(data=request.image.data, mime_type=request.media_type),
                request.user_prompt(self.language),
            ],
            config=gen_config,
        )

        latency_ms = int((time.monotonic() - t0) * 1000)
        logger.info("[%s] answered in %dms", self.full_name, latency_ms)

        return parse_result(response.text, self.full_name)
