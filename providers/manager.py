"""
Provider Manager — initialises the enabled recognition providers and
routes every recognition call to exactly one of them.

Selection (config.VISION_PROVIDER):
  auto                    — first available in order google → openai → anthropic
  google/gemini-2.0-flash — only the provider with that full name

Per-model enable/disable via environment variables (all default to true):
  ENABLE_GEMINI_2_0_FLASH=true/false
  ENABLE_GEMINI_1_5_FLASH=true/false
  ENABLE_GPT_4O_MINI=true/false
  ENABLE_GPT_4O=true/false
  ENABLE_CLAUDE_3_5_HAIKU=true/false
"""
from __future__ import annotations

import logging
import os

import config
from models import RecognitionResult
from providers.base import RecognitionProvider, RecognitionRequest

logger = logging.getLogger(__name__)

# Module-level cache, built on first use
_providers: dict[str, RecognitionProvider] = {}


def _model_enabled(env_key: str, default: bool = True) -> bool:
    """
    Check whether a specific model is enabled via an environment variable.
    Default is True for most models; pass default=False to require explicit opt-in.
    """
    raw = os.getenv(env_key, "true" if default else "false")
    return raw.strip().lower() not in ("false", "0", "no")


def _build_providers() -> dict[str, RecognitionProvider]:
    """
    Instantiate every provider whose API key is configured AND whose
    per-model toggle is enabled.
    Returns dict keyed by full_name, in preference order.
    """
    providers: dict[str, RecognitionProvider] = {}
    language = config.RESPONSE_LANGUAGE

    # ── Google ────────────────────────────────────────────────────────────────
    if config.GOOGLE_API_KEY:
        from providers.gemini_provider import GeminiProvider
        for model, env_flag in [
            ("gemini-2.0-flash", "ENABLE_GEMINI_2_0_FLASH"),
            ("gemini-1.5-flash", "ENABLE_GEMINI_1_5_FLASH"),
        ]:
            if _model_enabled(env_flag):
                p = GeminiProvider(config.GOOGLE_API_KEY, model, language=language)
                providers[p.full_name] = p
                logger.info("Loaded provider: %s", p.full_name)
            else:
                logger.info("Skipped provider google/%s (disabled by %s)", model, env_flag)

    # ── OpenAI ────────────────────────────────────────────────────────────────
    if config.OPENAI_API_KEY:
        from providers.openai_provider import OpenAIProvider
        for model, env_flag in [
            ("gpt-4o-mini", "ENABLE_GPT_4O_MINI"),
            ("gpt-4o",      "ENABLE_GPT_4O"),
        ]:
            if _model_enabled(env_flag):
                p = OpenAIProvider(config.OPENAI_API_KEY, model, language=language)
                providers[p.full_name] = p
                logger.info("Loaded provider: %s", p.full_name)
            else:
                logger.info("Skipped provider openai/%s (disabled by %s)", model, env_flag)

    # ── Anthropic ─────────────────────────────────────────────────────────────
    if config.ANTHROPIC_API_KEY:
        from providers.anthropic_provider import AnthropicProvider
        model, env_flag = "claude-3-5-haiku-latest", "ENABLE_CLAUDE_3_5_HAIKU"
        if _model_enabled(env_flag):
            p = AnthropicProvider(config.ANTHROPIC_API_KEY, model, language=language)
            providers[p.full_name] = p
            logger.info("Loaded provider: %s", p.full_name)
        else:
            logger.info("Skipped provider anthropic/%s (disabled by %s)", model, env_flag)

    if not providers:
        raise RuntimeError(
            "No recognition providers available. "
            "Set GOOGLE_API_KEY, OPENAI_API_KEY or ANTHROPIC_API_KEY."
        )

    return providers


def get_providers() -> dict[str, RecognitionProvider]:
    global _providers
    if not _providers:
        _providers = _build_providers()
    return _providers


def select_provider(choice: str | None = None) -> RecognitionProvider:
    """Return the provider named by *choice* (default: config.VISION_PROVIDER)."""
    providers = get_providers()
    choice = (choice or config.VISION_PROVIDER).strip()

    if choice == "auto":
        return next(iter(providers.values()))

    if choice not in providers:
        available = ", ".join(providers)
        raise ValueError(f"Provider '{choice}' not available. Available: {available}")
    return providers[choice]


# ── Core recognition function ─────────────────────────────────────────────────

async def recognise(request: RecognitionRequest) -> RecognitionResult:
    """
    Run one recognition call with the configured provider.
    Errors propagate unchanged; the caller turns them into an Error state.
    """
    provider = select_provider()
    logger.info(
        "[%s] recognising %s (corrections=%s, history=%d)",
        provider.full_name, request.image, request.corrections is not None, len(request.history),
    )
    return await provider.recognise(request)
