from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]


def _getenv(name: str, default: str) -> str:
    # Centralize env access so it’s easy to extend later (type casting, required vars)
    return os.environ.get(name, default).strip()


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    jwt_public_key: str | None
    jwt_issuer: str
    jwt_audience: str
    allowed_origins: tuple[str, ...]
    progress_cache_ttl: int

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    log_json_raw = _getenv("LOG_JSON", "false").lower()
    port_raw = _getenv("PORT", "8000")
    ttl_raw = _getenv("PROGRESS_CACHE_TTL", "300")

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    port = _parse_int("PORT", port_raw)
    progress_cache_ttl = _parse_int("PROGRESS_CACHE_TTL", ttl_raw)
    if progress_cache_ttl < 0:
        raise ValueError(
            f"PROGRESS_CACHE_TTL must be >= 0 (got {progress_cache_ttl})"
        )

    database_url = _getenv("DATABASE_URL", "") or None
    redis_url = _getenv("REDIS_URL", "") or None

    # PEM keys arrive through env vars with escaped newlines.
    jwt_public_key = _getenv("JWT_PUBLIC_KEY", "").replace("\\n", "\n") or None

    origins = tuple(
        o.strip() for o in _getenv("ALLOWED_ORIGINS", "*").split(",") if o.strip()
    )

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=log_json_raw in ("1", "true", "yes"),
        port=port,
        database_url=database_url,
        redis_url=redis_url,
        jwt_public_key=jwt_public_key,
        jwt_issuer=_getenv("JWT_ISSUER", "lesson-authorizer"),
        jwt_audience=_getenv("JWT_AUDIENCE", "lesson-progress-service"),
        allowed_origins=origins or ("*",),
        progress_cache_ttl=progress_cache_ttl,
    )


# Optional: module-level singleton so imports are cheap
SETTINGS = load_settings()
