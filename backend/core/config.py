"""Application settings for the polyglot-chat backend."""
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw else default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    return float(raw) if raw else default


@dataclass(frozen=True)
class Settings:
    app_name: str = "Polyglot Chat API"
    allow_origins: tuple[str, ...] = ("*",)  # demo; lock down in production
    max_history_turns: int = 30
    upload_dir: Path = field(default_factory=lambda: Path(os.getenv("UPLOAD_DIR", "uploads")))
    saved_chats_dir: Path = field(default_factory=lambda: Path(os.getenv("SAVED_CHATS_DIR", "saved-chats")))
    max_files: int = field(default_factory=lambda: _env_int("MAX_UPLOAD_FILES", 10))
    max_upload_bytes: int = field(default_factory=lambda: _env_int("MAX_UPLOAD_BYTES", 20 * 1024 * 1024))
    rate_limit_retries: int = field(default_factory=lambda: _env_int("RATE_LIMIT_RETRIES", 3))
    retry_base_delay: float = field(default_factory=lambda: _env_float("RETRY_BASE_DELAY", 1.0))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

settings = Settings()
