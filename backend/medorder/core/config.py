"""Application configuration.

Environment variables override all defaults. A `.env` file next to the
backend directory is loaded for local development.
"""

import logging
import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv

_BACKEND_DIR = Path(__file__).resolve().parents[2]
load_dotenv(dotenv_path=_BACKEND_DIR / ".env", override=False)


class Settings:
    # Database Configuration
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./medorder.db")

    # Telegram Bot (Must be set via .env, never in code)
    TELEGRAM_BOT_TOKEN: str = os.getenv("TELEGRAM_BOT_TOKEN", "")
    # Webhook mode when set (e.g. https://example.com/api/webhook), polling otherwise
    TELEGRAM_WEBHOOK_URL: str = os.getenv("TELEGRAM_WEBHOOK_URL", "")

    # Groq API Key for the admin insights endpoint
    GROQ_API_KEY: str = os.getenv("GROQ_API_KEY", "")

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Admin API bearer token
    ADMIN_API_TOKEN: str = os.getenv("ADMIN_API_TOKEN", "")
    if not ADMIN_API_TOKEN and ENVIRONMENT == "production":
        raise ValueError(
            "⛔ CRITICAL: ADMIN_API_TOKEN must be set in production environment. "
            "Generate with: python -c 'import secrets; print(secrets.token_urlsafe(32))'"
        )

    # Order intake
    LOW_STOCK_THRESHOLD: int = int(os.getenv("LOW_STOCK_THRESHOLD", "10"))
    FUZZY_SCORE_CUTOFF: float = float(os.getenv("FUZZY_SCORE_CUTOFF", "60"))
    HISTORY_LIMIT: int = int(os.getenv("HISTORY_LIMIT", "10"))

    # Daily reminder sweep
    REMINDER_HOUR: int = int(os.getenv("REMINDER_HOUR", "22"))
    REMINDER_MINUTE: int = int(os.getenv("REMINDER_MINUTE", "0"))
    REMINDER_TIMEZONE: str = os.getenv("REMINDER_TIMEZONE", "Asia/Kolkata")

    # CORS (specific origins only, no wildcards)
    CORS_ORIGINS: List[str] = [
        origin.strip()
        for origin in os.getenv(
            "CORS_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000",
        ).split(",")
        if origin.strip()
    ]


settings = Settings()

if not settings.ADMIN_API_TOKEN:
    logging.getLogger(__name__).warning(
        "⚠️  ADMIN_API_TOKEN not set. Admin API is open in %s mode. "
        "Set ADMIN_API_TOKEN in .env before deploying.",
        settings.ENVIRONMENT,
    )
