"""Pytest fixtures for webhook-mirror tests."""

import json
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from src.config.settings import Settings
from src.config.sources import SourceConfig
from src.mirror.schemas import SourceState, UpdateResult
from src.mirror.state_store import StateStore

WEBHOOK_URL = "https://discord.test/api/webhooks/123/token"
WEBHOOK_HOST = "discord.test"
WEBHOOK_PATH = "/api/webhooks/123/token"
DOC_URL = "https://docs.test/rules.md"


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings configured for testing."""
    return Settings(
        environment="development",
        log_level="DEBUG",
        config_path=str(tmp_path / "config.json"),
        state_path=str(tmp_path / "state.json"),
        error_log_path=str(tmp_path / "error.log"),
        poll_interval_seconds=0.01,
        check_host_reachability=False,
    )


@pytest.fixture
def sample_source() -> SourceConfig:
    """A single configured source."""
    return SourceConfig(name="rules", markdownURL=DOC_URL, webhookURL=WEBHOOK_URL)


@pytest.fixture
def second_source() -> SourceConfig:
    """Another source pointing at a different document and webhook."""
    return SourceConfig(
        name="faq",
        markdownURL="https://docs.test/faq.md",
        webhookURL="https://discord.test/api/webhooks/456/other",
    )


@pytest.fixture
def state_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "state.json"


@pytest.fixture
def store(state_path: Path) -> StateStore:
    """Empty state store backed by a temp file."""
    return StateStore(state_path)


@pytest.fixture
def store_with_message(state_path: Path) -> StateStore:
    """State store that already tracks message 42 for 'rules'."""
    return StateStore(
        state_path,
        {"rules": SourceState(message_id="42", last_content="Hello")},
    )


@pytest.fixture
def mock_fetcher() -> AsyncMock:
    """Mock ContentFetcher returning 'Hello'."""
    fetcher = AsyncMock()
    fetcher.fetch = AsyncMock(return_value="Hello")
    return fetcher


@pytest.fixture
def mock_gateway() -> AsyncMock:
    """Mock MessageGateway where every call succeeds."""
    gateway = AsyncMock()
    gateway.validate_existing = AsyncMock(return_value=True)
    gateway.create_message = AsyncMock(return_value="1001")
    gateway.update_message = AsyncMock(return_value=UpdateResult.UPDATED)
    return gateway


def write_json(path: Path, data: object) -> Path:
    """Write ``data`` as JSON to ``path``, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path
