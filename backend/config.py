import os
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

REPO_ROOT = Path(__file__).resolve().parents[1]


def load_environment() -> str:
    """Load ``.env.<ENVIRONMENT>`` (or ``.env``) from the repo root; process env wins last."""
    environment = os.getenv("ENVIRONMENT", "development")
    for candidate in (REPO_ROOT / f".env.{environment}", REPO_ROOT / ".env"):
        if candidate.exists():
            load_dotenv(candidate, override=True)
            break
    load_dotenv()
    return environment


def _csv(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    return [item.strip() for item in raw.split(",") if item.strip()]


ENVIRONMENT = load_environment()


class Config:
    ENVIRONMENT = ENVIRONMENT
    SECRET_KEY = os.getenv("FLASK_SECRET_KEY") or "dev-secret-key-change-in-production"

    # JWT: bearer header only; the role travels as an additional claim
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY") or SECRET_KEY
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=int(os.getenv("JWT_EXPIRES_HOURS", "24")))
    JWT_TOKEN_LOCATION = ["headers"]
    JWT_HEADER_NAME = "Authorization"
    JWT_HEADER_TYPE = "Bearer"

    CORS_ORIGINS = _csv("CORS_ORIGINS", ["http://localhost:5173", "http://localhost:3000"])

    # Wallet return urls and the post-payment redirect are built from these
    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173").rstrip("/")
    PUBLIC_API_URL = os.getenv("PUBLIC_API_URL", "http://localhost:5000").rstrip("/")
    GOOGLE_REDIRECT_URI = os.getenv("GOOGLE_REDIRECT_URI", f"{FRONTEND_URL}/google-callback")

    MEETING_DURATION_MINUTES = int(os.getenv("MEETING_DURATION_MINUTES", "60"))
    READ_NOTIFICATION_LIMIT = int(os.getenv("READ_NOTIFICATION_LIMIT", "10"))
    DB_POOL_MAX = int(os.getenv("DB_POOL_MAX", "20"))
    DB_POOL_TIMEOUT = float(os.getenv("DB_POOL_TIMEOUT", "30"))
