from __future__ import annotations

from typing import Iterator

import pytest

from qrsync.config import AppConfig, load_config, override_runtime_env
from qrsync.dependencies import Pipeline, build_pipeline, get_app_config
from qrsync.integrations.notion_client import NotionHttpClient
from qrsync.utils.rate_budget import RateBudget
from tests.support.notion import FakeNotion

TEST_ENV = {
    "NOTION_TOKEN": "secret-token",
    "NOTION_DATABASE_ID": "db-123",
    "NOTION_VERIFICATION_TOKEN": "whsec-test",
    "RETRY_BASE_DELAY_MS": "0",
    "RATE_LIMIT_RESERVOIR": "1000",
    "RATE_LIMIT_REFILL_AMOUNT": "1000",
}


@pytest.fixture(autouse=True)
def _isolated_runtime_env() -> Iterator[None]:
    override_runtime_env(dict(TEST_ENV))
    get_app_config.cache_clear()
    try:
        yield
    finally:
        override_runtime_env(None)
        get_app_config.cache_clear()


@pytest.fixture()
def app_config() -> AppConfig:
    return load_config(dict(TEST_ENV))


@pytest.fixture()
def fake_notion() -> FakeNotion:
    return FakeNotion(database_id=TEST_ENV["NOTION_DATABASE_ID"])


@pytest.fixture()
def budget(app_config: AppConfig) -> RateBudget:
    return RateBudget.from_config(app_config.rate_limit)


@pytest.fixture()
def notion_client(
    app_config: AppConfig, budget: RateBudget, fake_notion: FakeNotion
) -> NotionHttpClient:
    return NotionHttpClient.from_config(
        app_config.notion,
        app_config.retry,
        budget=budget,
        transport=fake_notion.transport(),
    )


@pytest.fixture()
def pipeline(app_config: AppConfig, budget: RateBudget, fake_notion: FakeNotion) -> Pipeline:
    return build_pipeline(app_config, budget=budget, transport=fake_notion.transport())
