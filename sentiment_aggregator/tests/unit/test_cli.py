"""Tests for the command-line interface."""

import json
from datetime import datetime, timedelta, timezone

import pytest
from typer.testing import CliRunner

from sentiment_aggregator import cli
from sentiment_aggregator.exceptions import StoreError
from sentiment_aggregator.models.dtos import AggregateSnapshot, Alert, AlertType
from sentiment_aggregator.storage.memory_store import InMemoryStore
from sentiment_aggregator.tests.stubs.adapter_stub import StubAdapter, tally

runner = CliRunner()


@pytest.fixture
def store(mocker) -> InMemoryStore:
    store = InMemoryStore()
    mocker.patch("sentiment_aggregator.cli.build_store", return_value=store)
    mocker.patch("sentiment_aggregator.cli.setup_logging")
    return store


def test_scrape_prints_result(store, mocker):
    mocker.patch(
        "sentiment_aggregator.cli.build_adapters",
        return_value=[StubAdapter("reddit", [tally("reddit", 3, 1, 0)])],
    )
    result = runner.invoke(cli.app, ["scrape"])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["total_posts"] == 4
    assert payload["sources"] == ["reddit"]
    assert store.counts()["aggregates"] == 1


def test_scrape_without_data_exits_2(store, mocker):
    mocker.patch("sentiment_aggregator.cli.build_adapters", return_value=[StubAdapter("reddit")])
    result = runner.invoke(cli.app, ["scrape"])
    assert result.exit_code == 2


def test_scrape_store_failure_exits_1(mocker):
    mocker.patch("sentiment_aggregator.cli.setup_logging")
    mocker.patch("sentiment_aggregator.cli.build_store", side_effect=StoreError("corrupt"))
    result = runner.invoke(cli.app, ["scrape"])
    assert result.exit_code == 1


def test_alerts_and_ack(store):
    alert = store.append_alert(Alert(alert_type=AlertType.EXTREME_BULLISH, sentiment_pct=93.0, message="m"))

    result = runner.invoke(cli.app, ["alerts"])
    assert result.exit_code == 0
    assert [a["id"] for a in json.loads(result.stdout)] == [alert.id]

    result = runner.invoke(cli.app, ["ack", str(alert.id)])
    assert result.exit_code == 0
    assert f"Alert {alert.id} acknowledged" in result.stdout
    assert store.active_alerts() == []

    result = runner.invoke(cli.app, ["ack", "999"])
    assert result.exit_code == 0
    assert "No alert with id 999" in result.stdout


def test_history(store):
    now = datetime.now(timezone.utc)
    store.append_aggregate(AggregateSnapshot(timestamp=now - timedelta(hours=5), total_posts=1))
    store.append_aggregate(AggregateSnapshot(timestamp=now - timedelta(minutes=10), total_posts=2))

    result = runner.invoke(cli.app, ["history", "--hours", "1"])
    assert result.exit_code == 0
    assert [s["total_posts"] for s in json.loads(result.stdout)] == [2]

    result = runner.invoke(cli.app, ["history", "--hours", "0"])
    assert result.exit_code == 0
    assert [s["total_posts"] for s in json.loads(result.stdout)] == [1, 2]
