from decimal import Decimal
from typing import List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # ── AI Providers ──────────────────────────────────────────────────────────
    AI_PROVIDER: str = "gemini"

    @field_validator("AI_PROVIDER")
    @classmethod
    def validate_ai_provider(cls, v: str) -> str:
        allowed = {"hybrid", "groq", "gemini"}
        if v.lower() not in allowed:
            raise ValueError(f"AI_PROVIDER must be one of {allowed}, got '{v}'")
        return v.lower()

    # Groq (Llama 3 - High Speed)
    GROQ_API_KEY: Optional[str] = None
    GROQ_MODEL: str = "llama-3.3-70b-versatile"

    # Google (Gemini)
    GOOGLE_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-2.0-flash"
    GEMINI_VISION_MODEL: str = "gemini-2.0-flash"

    AI_TIMEOUT_SECONDS: int = 120  # per oracle call

    # ── Documents ─────────────────────────────────────────────────────────────
    MAX_FILE_SIZE_MB: int = 20
    MAX_PDF_PAGES: int = 50
    MIN_TEXT_PDF_CHARS: int = 100
    MAX_OCR_PAGES: int = 5

    # ── Generation ────────────────────────────────────────────────────────────
    MIN_QUESTIONS: int = 5
    MAX_QUESTIONS: int = 100
    QUESTIONS_PER_ROUND: int = 20
    MAX_CLEAR_UP_SEGMENTS: int = 10
    ROUND_MAX_ATTEMPTS: int = 1  # 1 = a malformed round is never re-issued

    @field_validator("ROUND_MAX_ATTEMPTS", "QUESTIONS_PER_ROUND")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    # ── Credits ───────────────────────────────────────────────────────────────
    CREDITS_PER_PAGE_TEXT: Decimal = Decimal("0.10")
    CREDITS_PER_PAGE_IMAGE: Decimal = Decimal("0.50")
    CREDITS_PER_QUESTION: Decimal = Decimal("0.05")

    # ── Storage ───────────────────────────────────────────────────────────────
    DATABASE_URL: str = "sqlite:///./quizsmith.db"
    HISTORY_PAGE_SIZE: int = 10

    # ── Core ──────────────────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


settings = Settings()
