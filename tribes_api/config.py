from __future__ import annotations

import logging
import os
from pathlib import Path

# ---- Paths
BASE_DIR = Path(__file__).resolve().parent


def _env_bool(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _database_url() -> str:
    url = os.environ.get("DATABASE_URL", "").strip()
    if not url:
        return f"sqlite:///{(BASE_DIR / 'tribes.db').as_posix()}"
    if url.startswith("postgres://"):
        return "postgresql+psycopg://" + url[len("postgres://"):]
    return url


# ---- Settings
DATABASE_URL = _database_url()
DATABASE_ECHO = _env_bool("DATABASE_ECHO")

JWT_SECRET = os.environ.get("JWT_SECRET", "dev-only-secret-change-me-in-production")
JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
# tribe uuid claims older than this are rejected when freshness is checked
TRIBE_UUID_MAX_AGE_SECONDS = int(os.environ.get("TRIBE_UUID_MAX_AGE_SECONDS", "300"))

CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("CORS_ORIGINS", "*").split(",")
    if origin.strip()
]
REQUEST_TIMEOUT_SECONDS = float(os.environ.get("REQUEST_TIMEOUT_SECONDS", "60"))

TRIBES_HOST = os.environ.get("TRIBES_HOST", "tribes.sphinx.chat")
PORT = int(os.environ.get("PORT", "5002"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()


def configure_logging(level: str | None = None) -> None:
    """Install a single stream handler on the root logger."""
    logging.basicConfig(
        level=level or LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
