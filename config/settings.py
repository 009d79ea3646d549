from __future__ import annotations

import os
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv


load_dotenv()


DEFAULT_ALLOWED_ORIGINS = (
    "https://noamoss.github.io,"
    "http://localhost:5173,"
    "http://localhost:3000"
)


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings:
    """Application settings loaded from environment variables.

    The Gemini API key is not configured here: users enter it in the page
    and it only lives on their in-memory session.
    """

    app_env: str = os.getenv("APP_ENV", "development")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    gemini_model: str = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")
    temperature: float = float(os.getenv("MODEL_TEMPERATURE", "0.4"))
    top_p: float = float(os.getenv("MODEL_TOP_P", "0.95"))
    history_turns: int = int(os.getenv("HISTORY_TURNS", "0"))
    max_upload_bytes: int = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))
    frame_buffer_size: int = int(os.getenv("FRAME_BUFFER_SIZE", "5"))
    session_ttl_seconds: float = float(os.getenv("SESSION_TTL_SECONDS", "3600"))

    speech_rate: float = float(os.getenv("SPEECH_RATE", "0.9"))
    speech_pitch: float = float(os.getenv("SPEECH_PITCH", "1.0"))
    speech_volume: float = float(os.getenv("SPEECH_VOLUME", "1.0"))

    token_service_url: Optional[str] = os.getenv("TOKEN_SERVICE_URL") or None
    token_endpoint_url: str = os.getenv(
        "TOKEN_ENDPOINT_URL",
        "https://generativelanguage.googleapis.com/v1alpha/ephemeralTokens",
    )
    token_ttl_seconds: int = int(os.getenv("TOKEN_TTL_SECONDS", "3600"))
    token_scope: str = os.getenv(
        "TOKEN_SCOPE", "https://www.googleapis.com/auth/generativelanguage.liveapi"
    )
    allowed_origins: List[str] = _split_csv(
        os.getenv("ALLOWED_ORIGINS", DEFAULT_ALLOWED_ORIGINS)
    )
    port: int = int(os.getenv("PORT", "8000"))
    token_service_port: int = int(os.getenv("TOKEN_SERVICE_PORT", "3000"))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
