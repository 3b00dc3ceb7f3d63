from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Optional

from dotenv import load_dotenv

# Real environment variables always win over .env entries
load_dotenv(override=False)


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables (and an optional .env file).

    Env vars:
    - PERSISTENCE_BACKEND: 'memory' (default) or 'sqlite'
    - SQLITE_DB_PATH: path to sqlite db file. Default './data/tasks.db'
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - OWNER_HEADER: header carrying the authenticated user id. Default 'X-User-Id'
    - ENABLE_BASIC_AUTH: 'true' to resolve the owner from HTTP Basic credentials instead
    - BASIC_AUTH_USERNAME / BASIC_AUTH_PASSWORD: credentials for basic auth mode
    - OPENROUTER_API_KEY: API key for the summarization provider
    - OPENROUTER_BASE_URL: OpenAI-compatible endpoint. Default 'https://openrouter.ai/api/v1'
    - SUMMARY_MODEL, SUMMARY_TIMEOUT_SECONDS, SUMMARY_MAX_TOKENS, SUMMARY_TEMPERATURE
    - APP_REFERER / APP_TITLE: attribution headers sent to the provider
    - RATE_LIMIT_ENABLED: 'true' to enable the in-process request guard
    - RATE_LIMIT_API_MAX / RATE_LIMIT_API_WINDOW_SECONDS: general task routes
    - RATE_LIMIT_AI_MAX / RATE_LIMIT_AI_WINDOW_SECONDS: summarize route
    - LOG_LEVEL: logging level name. Default 'INFO'
    """

    persistence_backend: str
    sqlite_db_path: str
    cors_allow_origins: List[str]
    owner_header: str
    enable_basic_auth: bool
    basic_auth_username: Optional[str]
    basic_auth_password: Optional[str]
    openrouter_api_key: Optional[str]
    openrouter_base_url: str
    summary_model: str
    summary_timeout_seconds: float
    summary_max_tokens: int
    summary_temperature: float
    app_referer: str
    app_title: str
    rate_limit_enabled: bool
    rate_limit_api_max: int
    rate_limit_api_window_seconds: int
    rate_limit_ai_max: int
    rate_limit_ai_window_seconds: int
    log_level: str


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_bool(value: str, default: bool = False) -> bool:
    v = value.strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off"}:
        return False
    return default


def _parse_int(value: str, default: int) -> int:
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _parse_float(value: str, default: float) -> float:
    try:
        parsed = float(value.strip())
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        # Star will be handled in main via allow_origins=["*"]
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    backend = _get_env("PERSISTENCE_BACKEND", "memory").strip().lower()
    if backend not in {"memory", "sqlite"}:
        # Fallback to memory if unsupported
        backend = "memory"

    sqlite_path = _get_env("SQLITE_DB_PATH", "./data/tasks.db").strip()
    origins = _parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*"))

    enable_basic_auth = _parse_bool(_get_env("ENABLE_BASIC_AUTH", "false"), False)
    basic_user = os.getenv("BASIC_AUTH_USERNAME") if enable_basic_auth else None
    basic_pass = os.getenv("BASIC_AUTH_PASSWORD") if enable_basic_auth else None

    api_key = os.getenv("OPENROUTER_API_KEY")

    return Settings(
        persistence_backend=backend,
        sqlite_db_path=sqlite_path,
        cors_allow_origins=origins,
        owner_header=_get_env("OWNER_HEADER", "X-User-Id").strip(),
        enable_basic_auth=enable_basic_auth,
        basic_auth_username=basic_user,
        basic_auth_password=basic_pass,
        openrouter_api_key=api_key.strip() if api_key and api_key.strip() else None,
        openrouter_base_url=_get_env("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1").strip(),
        summary_model=_get_env("SUMMARY_MODEL", "anthropic/claude-3-opus-20240229").strip(),
        summary_timeout_seconds=_parse_float(_get_env("SUMMARY_TIMEOUT_SECONDS", "20"), 20.0),
        summary_max_tokens=_parse_int(_get_env("SUMMARY_MAX_TOKENS", "100"), 100),
        summary_temperature=_parse_float(_get_env("SUMMARY_TEMPERATURE", "0.3"), 0.3),
        app_referer=_get_env("APP_REFERER", "http://localhost:3000").strip(),
        app_title=_get_env("APP_TITLE", "Task Management System").strip(),
        rate_limit_enabled=_parse_bool(_get_env("RATE_LIMIT_ENABLED", "false"), False),
        rate_limit_api_max=_parse_int(_get_env("RATE_LIMIT_API_MAX", "100"), 100),
        rate_limit_api_window_seconds=_parse_int(_get_env("RATE_LIMIT_API_WINDOW_SECONDS", "900"), 900),
        rate_limit_ai_max=_parse_int(_get_env("RATE_LIMIT_AI_MAX", "20"), 20),
        rate_limit_ai_window_seconds=_parse_int(_get_env("RATE_LIMIT_AI_WINDOW_SECONDS", "3600"), 3600),
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
    )
