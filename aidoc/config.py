import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

# Load .env as soon as this module is imported (safe to call multiple times)
load_dotenv()

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o-mini"


def _base_url_from_env() -> str:
    base = os.getenv("OPENAI_BASE_URL")
    if base:
        return base.rstrip("/")
    # Older deployments set the full chat-completions URL
    legacy = os.getenv("OPENAI_API_URL")
    if legacy:
        legacy = legacy.rstrip("/")
        if legacy.endswith("/chat/completions"):
            legacy = legacy[: -len("/chat/completions")]
        return legacy
    return DEFAULT_BASE_URL


@dataclass(frozen=True)
class Settings:
    openai_api_key: Optional[str] = None
    openai_base_url: str = DEFAULT_BASE_URL
    openai_model: str = DEFAULT_MODEL
    openai_timeout: float = 60.0  # seconds
    doc_char_limit: int = 12000
    max_page_hints: int = 8
    page_hint_chars: int = 800
    max_upload_bytes: int = 20 * 1024 * 1024
    prompt_path: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_base_url=_base_url_from_env(),
            openai_model=os.getenv("OPENAI_MODEL", DEFAULT_MODEL),
            openai_timeout=float(os.getenv("OPENAI_TIMEOUT", "60")),
            doc_char_limit=int(os.getenv("DOC_CHAR_LIMIT", "12000")),
            max_page_hints=int(os.getenv("MAX_PAGE_HINTS", "8")),
            page_hint_chars=int(os.getenv("PAGE_HINT_CHARS", "800")),
            max_upload_bytes=int(float(os.getenv("MAX_UPLOAD_MB", "20")) * 1024 * 1024),
            prompt_path=os.getenv("DATE_PROMPT_PATH") or None,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """FastAPI dependency; tests override it via app.dependency_overrides."""
    return Settings.from_env()
