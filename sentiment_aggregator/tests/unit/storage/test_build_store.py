"""Tests for the store factory."""

from sentiment_aggregator.storage import JsonFileStore, SQLAlchemyStore, build_store
from sentiment_aggregator.storage.memory_store import InMemoryStore


def test_memory_backend(test_settings):
    store = build_store(test_settings)
    assert type(store) is InMemoryStore


def test_json_backend(test_settings):
    test_settings.STORE_BACKEND = "json"
    store = build_store(test_settings)
    assert isinstance(store, JsonFileStore)
    assert str(store.path) == test_settings.STORE_JSON_PATH


def test_sqlalchemy_backend(test_settings):
    test_settings.STORE_BACKEND = "sqlalchemy"
    store = build_store(test_settings)
    try:
        assert isinstance(store, SQLAlchemyStore)
        assert store.counts() == {"readings": 0, "aggregates": 0, "alerts": 0}
    finally:
        store.close()
