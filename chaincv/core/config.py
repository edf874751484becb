from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


def _get_env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def _get_env_bool(name: str, default: bool) -> bool:
    raw = _get_env(name, None)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _get_env_int(name: str, default: int) -> int:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_env_float(name: str, default: float) -> float:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_env_list(name: str, default: list[str]) -> tuple[str, ...]:
    raw = _get_env(name, None)
    if raw is None:
        return tuple(default)
    values = [item.strip() for item in raw.split(",")]
    clean = [item for item in values if item]
    return tuple(clean) if clean else tuple(default)


@dataclass(frozen=True)
class Settings:
    log_level: str = "INFO"
    sentry_dsn: str | None = None
    rate_limit: str = "10/minute"
    rate_limit_enabled: bool = True
    cors_allowed_origins: tuple[str, ...] = ("http://localhost:3000", "http://localhost:5173")
    upload_dir: str = "data/uploads"
    lifecycle_db_path: str = "data/chaincv.db"
    max_upload_mb: int = 10
    worker_enabled: bool = True
    worker_concurrency: int = 5
    worker_poll_interval_ms: int = 100
    ai_provider: str = "openai"
    ai_model: str = "gpt-4o-mini"
    openai_api_key: str | None = None
    openai_base_url: str | None = None
    openai_timeout_s: float = 30.0
    openai_max_retries: int = 2
    ai_temperature: float = 0.1
    ai_max_output_tokens: int = 2048
    resume_text_max_chars: int = 15000

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024

    @property
    def worker_poll_interval_s(self) -> float:
        return max(0, self.worker_poll_interval_ms) / 1000.0


def load_settings() -> Settings:
    """Build settings from the process environment (and a local .env file, if any)."""
    load_dotenv()
    settings = Settings(
        log_level=_get_env("LOG_LEVEL", "INFO") or "INFO",
        sentry_dsn=_get_env("SENTRY_DSN"),
        rate_limit=_get_env("RATE_LIMIT", "10/minute") or "10/minute",
        rate_limit_enabled=_get_env_bool("RATE_LIMIT_ENABLED", True),
        cors_allowed_origins=_get_env_list(
            "CORS_ALLOWED_ORIGINS",
            ["http://localhost:3000", "http://localhost:5173"],
        ),
        upload_dir=_get_env("UPLOAD_DIR", "data/uploads") or "data/uploads",
        lifecycle_db_path=_get_env("LIFECYCLE_DB_PATH", "data/chaincv.db") or "data/chaincv.db",
        max_upload_mb=_get_env_int("MAX_UPLOAD_MB", 10),
        worker_enabled=_get_env_bool("WORKER_ENABLED", True),
        worker_concurrency=_get_env_int("WORKER_CONCURRENCY", 5),
        worker_poll_interval_ms=_get_env_int("WORKER_POLL_INTERVAL_MS", 100),
        ai_provider=(_get_env("AI_PROVIDER", "openai") or "openai").strip().lower(),
        ai_model=(_get_env("AI_MODEL", "gpt-4o-mini") or "gpt-4o-mini").strip(),
        openai_api_key=_get_env("OPENAI_API_KEY"),
        openai_base_url=_get_env("OPENAI_BASE_URL"),
        openai_timeout_s=_get_env_float("OPENAI_TIMEOUT_S", 30.0),
        openai_max_retries=_get_env_int("OPENAI_MAX_RETRIES", 2),
        ai_temperature=_get_env_float("AI_TEMPERATURE", 0.1),
        ai_max_output_tokens=_get_env_int("AI_MAX_OUTPUT_TOKENS", 2048),
        resume_text_max_chars=_get_env_int("RESUME_TEXT_MAX_CHARS", 15000),
    )

    if settings.worker_concurrency < 1:
        raise RuntimeError("WORKER_CONCURRENCY must be at least 1.")

    return settings
