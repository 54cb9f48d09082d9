import os

import pytest
from dotenv import load_dotenv

from sentiment_aggregator.config.settings import PROJECT_ROOT_DIR, Settings
from sentiment_aggregator.storage.memory_store import InMemoryStore

# Load test environment variables from .env.test in the project root
dotenv_path = os.path.join(PROJECT_ROOT_DIR, ".env.test")
if os.path.exists(dotenv_path):
    load_dotenv(dotenv_path=dotenv_path)


@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings isolated from the developer's .env and YAML, storing under tmp_path."""
    return Settings(
        _env_file=None,
        STORE_BACKEND="memory",
        STORE_JSON_PATH=str(tmp_path / "sentiment-data.json"),
        DATABASE_URL=f"sqlite:///{tmp_path / 'sentiment.db'}",
        TWITTER_ENABLED=False,
        RUN_ON_STARTUP=False,
    )
