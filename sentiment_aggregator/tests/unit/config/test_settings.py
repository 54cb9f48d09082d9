"""Tests for the settings module."""

import pytest
from pydantic import ValidationError

from sentiment_aggregator.config.settings import Settings


def make_settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def test_csv_fields_are_split():
    settings = make_settings(TICKERS="SPY, QQQ,,ES_F ", CORS_ORIGINS="http://a,http://b")
    assert settings.TICKERS == ["SPY", "QQQ", "ES_F"]
    assert settings.CORS_ORIGINS == ["http://a", "http://b"]


def test_list_fields_accept_lists():
    settings = make_settings(SUBREDDITS=["stocks"])
    assert settings.SUBREDDITS == ["stocks"]


def test_defaults():
    settings = make_settings()
    assert settings.EXTREME_THRESHOLD_PCT == 90.0
    assert settings.HIGH_THRESHOLD_PCT == 75.0
    assert settings.SCRAPE_INTERVAL_MINUTES == 15.0
    assert settings.ALERT_DEDUP_POLICY == "always"
    assert "wallstreetbets" in settings.SUBREDDITS


def test_dedup_policy_normalised_and_validated():
    assert make_settings(ALERT_DEDUP_POLICY=" Unacknowledged ").ALERT_DEDUP_POLICY == "unacknowledged"
    with pytest.raises(ValidationError):
        make_settings(ALERT_DEDUP_POLICY="never")


def test_store_backend_validated():
    assert make_settings(STORE_BACKEND="SQLAlchemy").STORE_BACKEND == "sqlalchemy"
    with pytest.raises(ValidationError):
        make_settings(STORE_BACKEND="redis")


def test_threshold_range_validated():
    with pytest.raises(ValidationError):
        make_settings(EXTREME_THRESHOLD_PCT=150)


def test_high_threshold_above_extreme_rejected():
    with pytest.raises(ValueError):
        make_settings(HIGH_THRESHOLD_PCT=95, EXTREME_THRESHOLD_PCT=90)


def test_twitter_credentials_configured():
    assert not make_settings(AUTH_TOKEN="a").twitter_credentials_configured
    assert make_settings(AUTH_TOKEN="a", CT0="b").twitter_credentials_configured


def test_load_from_yaml(tmp_path, monkeypatch):
    monkeypatch.delenv("API_PORT", raising=False)
    monkeypatch.setenv("REDDIT_POST_LIMIT", "7")
    config_file = tmp_path / "app_config.yaml"
    config_file.write_text(
        "api_port: 4000\n"
        "TICKERS: [SPY, IWM]\n"
        "REDDIT_POST_LIMIT: 99\n"
        "UNKNOWN_KEY: 1\n",
        encoding="utf-8",
    )

    settings = Settings.load_from_yaml(config_file, _env_file=None)

    assert settings.API_PORT == 4000
    assert settings.TICKERS == ["SPY", "IWM"]
    # the environment wins over the YAML file
    assert settings.REDDIT_POST_LIMIT == 7


def test_load_from_missing_yaml_uses_defaults(tmp_path):
    settings = Settings.load_from_yaml(tmp_path / "missing.yaml", _env_file=None, STORE_BACKEND="memory")
    assert settings.STORE_BACKEND == "memory"
