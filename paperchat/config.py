"""
Process-level configuration for PaperChat.

Values come from the environment (optionally a .env file). Settings the user
edits at runtime (API key, model, history length, system prompt) live in the
key-value store instead, see paperchat.preferences.
"""
import os
from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


# Storage
DATABASE_URL = os.getenv("DATABASE_URL", default="sqlite:///data/paperchat.db")

# Remote model endpoint
GEMINI_API_BASE = os.getenv("GEMINI_API_BASE", default="https://generativelanguage.googleapis.com/v1beta/models")

# Local PDF library used by the bundled host adapter
LIBRARY_DIR = os.getenv("LIBRARY_DIR", default="data/library")
INDEX_CACHE_DIR = os.getenv("INDEX_CACHE_DIR", default="data/fulltext_cache")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", default="INFO")
LOG_FILE = os.getenv("LOG_FILE", default="logs/paperchat.log")

# Per-document prompt ceiling, in estimated tokens (~4 chars each)
MAX_TOKENS_PER_DOCUMENT = _env_int("MAX_TOKENS_PER_DOCUMENT", 100000)

# Preference defaults
DEFAULT_MODEL = "gemini-2.0-flash"
DEFAULT_MAX_HISTORY_LENGTH = 20
DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful research assistant analyzing academic papers. "
    "When referencing specific content, always mention the page number. "
    "Be concise but thorough."
)

# Models offered by the model picker
AVAILABLE_MODELS = [
    "gemini-2.0-flash",
    "gemini-2.5-flash",
    "gemini-2.5-flash-lite",
    "gemini-3-flash-preview",
]
