"""Application configuration utilities for qrsync."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import os
from pathlib import Path
from typing import Any

from qrsync.logging import get_logger

logger = get_logger(__name__)

DEFAULT_NOTION_API_BASE_URL = "https://api.notion.com"
DEFAULT_NOTION_VERSION = "2022-06-28"
DEFAULT_NOTION_TIMEOUT_MS = 30_000
DEFAULT_ID_PROPERTY = "ID"
DEFAULT_UUID_PROPERTY = "UUID"
DEFAULT_QR_PROPERTY = "QR Code"

# Notion allows an average of three requests per second per integration.
DEFAULT_RATE_LIMIT_RESERVOIR = 3
DEFAULT_RATE_LIMIT_REFILL_AMOUNT = 3
DEFAULT_RATE_LIMIT_REFILL_INTERVAL_MS = 1_000
DEFAULT_RATE_LIMIT_MAX_CONCURRENT = 3

DEFAULT_RETRY_MAX_ATTEMPTS = 3
DEFAULT_RETRY_BASE_DELAY_MS = 1_000

DEFAULT_WEBHOOK_PATH = "/api/webhook"
DEFAULT_SIGNATURE_HEADER = "X-Notion-Signature"
DEFAULT_APP_HOST = "0.0.0.0"
DEFAULT_APP_PORT = 8080

_RUNTIME_ENV_CACHE: dict[str, str] | None = None


def _load_env_file(path: Path) -> dict[str, str]:
    try:
        contents = path.read_text(encoding="utf-8")
    except OSError:
        return {}
    env_values: dict[str, str] = {}
    for line in contents.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        key, sep, value = stripped.partition("=")
        if not sep:
            continue
        env_values[key.strip()] = value.strip().strip('"').strip("'")
    return env_values


def load_runtime_env(
    *,
    env_file: str | os.PathLike[str] | None = None,
    base_env: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Load runtime environment values applying .env before explicit environment."""

    env: dict[str, str] = {}
    source = dict(base_env if base_env is not None else os.environ)

    path = Path(env_file) if env_file is not None else Path(".env")
    if path.exists() and path.is_file():
        env.update(_load_env_file(path))

    env.update({key: str(value) for key, value in source.items() if value is not None})
    return env


def get_runtime_env() -> Mapping[str, str]:
    """Return the cached runtime environment mapping."""

    global _RUNTIME_ENV_CACHE
    if _RUNTIME_ENV_CACHE is None:
        _RUNTIME_ENV_CACHE = load_runtime_env()
    return _RUNTIME_ENV_CACHE


def override_runtime_env(runtime_env: Mapping[str, str] | None) -> None:
    """Override the cached runtime environment (primarily for testing)."""

    global _RUNTIME_ENV_CACHE
    if runtime_env is None:
        _RUNTIME_ENV_CACHE = None
    else:
        _RUNTIME_ENV_CACHE = dict(runtime_env)


def get_env(name: str, default: str | None = None) -> str | None:
    """Return an environment variable honoring ENV > .env > defaults."""

    env = get_runtime_env()
    return env.get(name, default)


@dataclass(slots=True, frozen=True)
class NotionConfig:
    token: str
    database_id: str
    base_url: str = DEFAULT_NOTION_API_BASE_URL
    version: str = DEFAULT_NOTION_VERSION
    timeout_ms: int = DEFAULT_NOTION_TIMEOUT_MS
    id_property: str = DEFAULT_ID_PROPERTY
    uuid_property: str = DEFAULT_UUID_PROPERTY
    qr_property: str = DEFAULT_QR_PROPERTY


@dataclass(slots=True, frozen=True)
class RateLimitConfig:
    reservoir: int = DEFAULT_RATE_LIMIT_RESERVOIR
    refill_amount: int = DEFAULT_RATE_LIMIT_REFILL_AMOUNT
    refill_interval_ms: int = DEFAULT_RATE_LIMIT_REFILL_INTERVAL_MS
    max_concurrent: int = DEFAULT_RATE_LIMIT_MAX_CONCURRENT


@dataclass(slots=True, frozen=True)
class RetryConfig:
    max_attempts: int = DEFAULT_RETRY_MAX_ATTEMPTS
    base_delay_ms: int = DEFAULT_RETRY_BASE_DELAY_MS


@dataclass(slots=True, frozen=True)
class WebhookConfig:
    verification_token: str
    signature_header: str = DEFAULT_SIGNATURE_HEADER
    path: str = DEFAULT_WEBHOOK_PATH


@dataclass(slots=True, frozen=True)
class ServerConfig:
    host: str = DEFAULT_APP_HOST
    port: int = DEFAULT_APP_PORT


@dataclass(slots=True, frozen=True)
class LoggingConfig:
    level: str = "INFO"
    file: str | None = None


@dataclass(slots=True, frozen=True)
class AppConfig:
    notion: NotionConfig
    rate_limit: RateLimitConfig
    retry: RetryConfig
    webhook: WebhookConfig
    server: ServerConfig
    logging: LoggingConfig


def _env_value(env: Mapping[str, Any], key: str) -> str | None:
    value = env.get(key)
    if value is None:
        return None
    return str(value)


def _env_text(env: Mapping[str, Any], key: str, default: str) -> str:
    value = (_env_value(env, key) or "").strip()
    return value or default


def _coerce_int(value: Any, *, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _bounded_int(
    value: Any,
    *,
    default: int,
    minimum: int | None = None,
    maximum: int | None = None,
) -> int:
    resolved = _coerce_int(value, default=default)
    if minimum is not None:
        resolved = max(minimum, resolved)
    if maximum is not None:
        resolved = min(maximum, resolved)
    return resolved


def _load_rate_limit_config(env: Mapping[str, Any]) -> RateLimitConfig:
    reservoir = _bounded_int(
        env.get("RATE_LIMIT_RESERVOIR"),
        default=DEFAULT_RATE_LIMIT_RESERVOIR,
        minimum=1,
    )
    return RateLimitConfig(
        reservoir=reservoir,
        refill_amount=_bounded_int(
            env.get("RATE_LIMIT_REFILL_AMOUNT"),
            default=min(reservoir, DEFAULT_RATE_LIMIT_REFILL_AMOUNT),
            minimum=1,
            maximum=reservoir,
        ),
        refill_interval_ms=_bounded_int(
            env.get("RATE_LIMIT_REFILL_INTERVAL_MS"),
            default=DEFAULT_RATE_LIMIT_REFILL_INTERVAL_MS,
            minimum=10,
        ),
        max_concurrent=_bounded_int(
            env.get("RATE_LIMIT_MAX_CONCURRENT"),
            default=DEFAULT_RATE_LIMIT_MAX_CONCURRENT,
            minimum=1,
        ),
    )


def load_config(runtime_env: Mapping[str, Any] | None = None) -> AppConfig:
    """Build the application configuration from the runtime environment."""

    env = runtime_env if runtime_env is not None else get_runtime_env()

    notion = NotionConfig(
        token=(_env_value(env, "NOTION_TOKEN") or "").strip(),
        database_id=(_env_value(env, "NOTION_DATABASE_ID") or "").strip(),
        base_url=_env_text(env, "NOTION_API_BASE_URL", DEFAULT_NOTION_API_BASE_URL),
        version=_env_text(env, "NOTION_VERSION", DEFAULT_NOTION_VERSION),
        timeout_ms=_bounded_int(
            env.get("NOTION_TIMEOUT_MS"),
            default=DEFAULT_NOTION_TIMEOUT_MS,
            minimum=100,
        ),
        id_property=_env_text(env, "NOTION_ID_PROPERTY", DEFAULT_ID_PROPERTY),
        uuid_property=_env_text(env, "NOTION_UUID_PROPERTY", DEFAULT_UUID_PROPERTY),
        qr_property=_env_text(env, "NOTION_QR_PROPERTY", DEFAULT_QR_PROPERTY),
    )

    retry = RetryConfig(
        max_attempts=_bounded_int(
            env.get("RETRY_MAX_ATTEMPTS"),
            default=DEFAULT_RETRY_MAX_ATTEMPTS,
            minimum=1,
            maximum=10,
        ),
        base_delay_ms=_bounded_int(
            env.get("RETRY_BASE_DELAY_MS"),
            default=DEFAULT_RETRY_BASE_DELAY_MS,
            minimum=0,
        ),
    )

    webhook = WebhookConfig(
        verification_token=(_env_value(env, "NOTION_VERIFICATION_TOKEN") or "").strip(),
        signature_header=_env_text(env, "WEBHOOK_SIGNATURE_HEADER", DEFAULT_SIGNATURE_HEADER),
        path=_env_text(env, "WEBHOOK_PATH", DEFAULT_WEBHOOK_PATH),
    )

    server = ServerConfig(
        host=_env_text(env, "APP_HOST", DEFAULT_APP_HOST),
        port=_bounded_int(
            env.get("APP_PORT"),
            default=DEFAULT_APP_PORT,
            minimum=1,
            maximum=65535,
        ),
    )

    logging_config = LoggingConfig(
        level=_env_text(env, "LOG_LEVEL", "INFO").upper(),
        file=(_env_value(env, "LOG_FILE") or "").strip() or None,
    )

    if not notion.token:
        logger.warning("NOTION_TOKEN is not configured; Notion calls will be rejected")

    return AppConfig(
        notion=notion,
        rate_limit=_load_rate_limit_config(env),
        retry=retry,
        webhook=webhook,
        server=server,
        logging=logging_config,
    )


__all__ = [
    "AppConfig",
    "LoggingConfig",
    "NotionConfig",
    "RateLimitConfig",
    "RetryConfig",
    "ServerConfig",
    "WebhookConfig",
    "get_env",
    "get_runtime_env",
    "load_config",
    "load_runtime_env",
    "override_runtime_env",
]
