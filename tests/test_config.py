from __future__ import annotations

from pathlib import Path

from qrsync.config import (
    DEFAULT_NOTION_VERSION,
    get_env,
    load_config,
    load_runtime_env,
    override_runtime_env,
)


def test_load_config_defaults() -> None:
    config = load_config({"NOTION_TOKEN": "secret", "NOTION_DATABASE_ID": "db-1"})

    assert config.notion.token == "secret"
    assert config.notion.database_id == "db-1"
    assert config.notion.base_url == "https://api.notion.com"
    assert config.notion.version == DEFAULT_NOTION_VERSION == "2022-06-28"
    assert (config.notion.id_property, config.notion.uuid_property, config.notion.qr_property) == (
        "ID",
        "UUID",
        "QR Code",
    )
    assert config.rate_limit.reservoir == 3
    assert config.rate_limit.refill_amount == 3
    assert config.rate_limit.refill_interval_ms == 1000
    assert config.rate_limit.max_concurrent == 3
    assert config.retry.max_attempts == 3
    assert config.retry.base_delay_ms == 1000
    assert config.webhook.path == "/api/webhook"
    assert config.webhook.signature_header == "X-Notion-Signature"
    assert config.webhook.verification_token == ""
    assert config.server.port == 8080
    assert config.logging.level == "INFO"
    assert config.logging.file is None


def test_load_config_bounds_integers() -> None:
    config = load_config(
        {
            "RATE_LIMIT_RESERVOIR": "2",
            "RATE_LIMIT_REFILL_AMOUNT": "50",
            "RATE_LIMIT_REFILL_INTERVAL_MS": "1",
            "RATE_LIMIT_MAX_CONCURRENT": "0",
            "RETRY_MAX_ATTEMPTS": "99",
            "RETRY_BASE_DELAY_MS": "-5",
            "NOTION_TIMEOUT_MS": "abc",
            "APP_PORT": "70000",
        }
    )

    assert config.rate_limit.reservoir == 2
    assert config.rate_limit.refill_amount == 2
    assert config.rate_limit.refill_interval_ms == 10
    assert config.rate_limit.max_concurrent == 1
    assert config.retry.max_attempts == 10
    assert config.retry.base_delay_ms == 0
    assert config.notion.timeout_ms == 30_000
    assert config.server.port == 65535


def test_load_config_reads_overrides() -> None:
    config = load_config(
        {
            "NOTION_QR_PROPERTY": "Badge",
            "WEBHOOK_PATH": "/hooks/notion",
            "NOTION_VERIFICATION_TOKEN": " whsec ",
            "LOG_LEVEL": "debug",
            "LOG_FILE": "qrsync.log",
        }
    )

    assert config.notion.qr_property == "Badge"
    assert config.webhook.path == "/hooks/notion"
    assert config.webhook.verification_token == "whsec"
    assert config.logging.level == "DEBUG"
    assert config.logging.file == "qrsync.log"


def test_runtime_env_prefers_process_environment_over_env_file(tmp_path: Path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text(
        "# comment\nNOTION_TOKEN=from-file\nNOTION_DATABASE_ID='db-file'\nBROKEN LINE\n",
        encoding="utf-8",
    )

    env = load_runtime_env(env_file=env_file, base_env={"NOTION_TOKEN": "from-env"})

    assert env["NOTION_TOKEN"] == "from-env"
    assert env["NOTION_DATABASE_ID"] == "db-file"
    assert "BROKEN LINE" not in env


def test_get_env_uses_overridden_runtime_env() -> None:
    override_runtime_env({"NOTION_VERSION": "2025-01-01"})

    assert get_env("NOTION_VERSION") == "2025-01-01"
    assert get_env("MISSING", "fallback") == "fallback"
    assert load_config().notion.version == "2025-01-01"
