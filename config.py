"""
Central configuration — reads from .env file.

Everything here is read once at import time. There is no database and no
runtime-editable settings: all state the bot holds lives in memory for
the lifetime of the process.
"""
import os
from dotenv import load_dotenv

load_dotenv()

# ── Telegram ──────────────────────────────────────────────────────────────────
TELEGRAM_BOT_TOKEN: str = os.environ["TELEGRAM_BOT_TOKEN"]

# ── AI Vision providers ────────────────────────────────────────────────────────
# Add keys for whichever providers you have access to.
# Only providers whose keys are present are loaded.
GOOGLE_API_KEY: str | None    = os.getenv("GOOGLE_API_KEY")
OPENAI_API_KEY: str | None    = os.getenv("OPENAI_API_KEY")
ANTHROPIC_API_KEY: str | None = os.getenv("ANTHROPIC_API_KEY")

# Which provider answers recognition calls:
#   auto                    → first available of google, openai, anthropic
#   google/gemini-2.0-flash → force a specific provider (full name)
VISION_PROVIDER: str = os.getenv("VISION_PROVIDER", "auto")

# Language the service should answer in (summary, descriptions, labels…)
RESPONSE_LANGUAGE: str = os.getenv("RESPONSE_LANGUAGE", "English")

# ── Analysis session ──────────────────────────────────────────────────────────
# How many past corrections are fed back to the service
HISTORY_CAPACITY: int = int(os.getenv("HISTORY_CAPACITY", "10"))

# 0 = wait as long as the service takes
ANALYSIS_TIMEOUT_SECS: float = float(os.getenv("ANALYSIS_TIMEOUT_SECS", "0"))

# Shown when a failed call carries no message of its own
DEFAULT_ERROR_MESSAGE: str = os.getenv("DEFAULT_ERROR_MESSAGE", "Analysis failed")

# ── Logging ───────────────────────────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
DATA_DIR: str  = os.getenv("DATA_DIR", "data")
