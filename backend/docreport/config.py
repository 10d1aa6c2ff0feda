"""
config.py — Application Configuration

Loads settings from environment variables (API keys, limits, timeouts)
so nothing secret is hard-coded into the source.

Uses Pydantic's BaseSettings which automatically reads from .env files.
Every provider credential is optional: a blank key means that provider
is simply skipped and the pipeline degrades to the next tier.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

_PLACEHOLDER_SUFFIX = "_here"


def _configured(value: str) -> bool:
    """A credential counts only when it is non-blank and not a template placeholder."""
    value = (value or "").strip()
    return bool(value) and not value.lower().endswith(_PLACEHOLDER_SUFFIX)


class Settings(BaseSettings):
    """
    All configuration for the service lives here.
    Values come from environment variables or the .env file.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # ── App Settings ─────────────────────────────────────────
    APP_NAME: str = "Document Report Synthesizer"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # ── Primary generation provider (Gemini) ─────────────────
    GOOGLE_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.5-flash"

    # ── Secondary generation provider (Groq, OpenAI-compatible)
    GROQ_API_KEY: str = ""
    GROQ_MODEL: str = "llama-3.1-8b-instant"
    GROQ_BASE_URL: str = "https://api.groq.com/openai/v1"

    # ── Web search (SerpAPI) ─────────────────────────────────
    SERP_API_KEY: str = ""
    SERP_ENDPOINT: str = "https://serpapi.com/search.json"

    # ── Pipeline limits ──────────────────────────────────────
    REQUEST_TIMEOUT_SECS: float = 60.0     # one wall-clock budget per request
    EXCERPT_MAX_CHARS: int = 1500          # fallback extraction excerpt
    COMPOSE_DOC_MAX_CHARS: int = 20000     # document text handed to the secondary provider
    SEARCH_RESULTS_PER_QUERY: int = 5
    MAX_REFERENCES: int = 8

    # ── CORS (frontend URLs allowed to call this backend) ────
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]
    # Extra origins from env (comma-separated)
    EXTRA_CORS_ORIGINS: str = ""

    # ── Uploads ──────────────────────────────────────────────
    MAX_FILE_SIZE_MB: int = 50

    @property
    def has_gemini(self) -> bool:
        return _configured(self.GOOGLE_API_KEY)

    @property
    def has_groq(self) -> bool:
        return _configured(self.GROQ_API_KEY)

    @property
    def has_serp(self) -> bool:
        return _configured(self.SERP_API_KEY)


# Single instance used throughout the app
settings = Settings()
