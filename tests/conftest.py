"""
Shared pytest fixtures.

config.py reads TELEGRAM_BOT_TOKEN at import time, so a dummy token is put
in the environment before any project module is imported. Provider keys
are cleared for every test; tests that need a provider set them explicitly.
"""
from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

# ── Make the project root importable without installing the package ────────────
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

os.environ.setdefault("TELEGRAM_BOT_TOKEN", "123456:TEST-TOKEN")


@pytest.fixture(autouse=True)
def no_provider_keys(monkeypatch):
    """Every test starts with no API keys and the default provider choice."""
    import config
    monkeypatch.setattr(config, "GOOGLE_API_KEY", None)
    monkeypatch.setattr(config, "OPENAI_API_KEY", None)
    monkeypatch.setattr(config, "ANTHROPIC_API_KEY", None)
    monkeypatch.setattr(config, "VISION_PROVIDER", "auto")
    yield
