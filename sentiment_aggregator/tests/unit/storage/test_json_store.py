"""Tests for the JSON file store."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from sentiment_aggregator.core.aggregator import SentimentAggregator
from sentiment_aggregator.exceptions import StoreError
from sentiment_aggregator.models.dtos import AggregateSnapshot, Alert, AlertType, ExtremeSignal, Reading, SourceTally
from sentiment_aggregator.storage.json_store import JsonFileStore
from sentiment_aggregator.tests.stubs.adapter_stub import StubAdapter, tally

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "data" / "sentiment-data.json"


def test_persists_and_reloads(store_path):
    store = JsonFileStore(store_path)
    store.append_reading(Reading.from_tally(SourceTally.from_counts("stocktwits", 3, 1, 0, ticker="SPY"), NOW))
    store.append_aggregate(AggregateSnapshot(
        timestamp=NOW, bullish_pct=75.0, bearish_pct=25.0, total_posts=4,
        extreme_signal=ExtremeSignal.HIGH_BULLISH,
    ))
    alert = store.append_alert(Alert(
        timestamp=NOW, alert_type=AlertType.EXTREME_BULLISH, sentiment_pct=95.0, message="fade it",
    ))
    store.acknowledge_alert(alert.id)

    reloaded = JsonFileStore(store_path)

    readings = reloaded.recent_readings()
    assert len(readings) == 1
    assert readings[0].ticker == "SPY"
    assert readings[0].timestamp == NOW
    latest = reloaded.latest_aggregate()
    assert latest.extreme_signal == ExtremeSignal.HIGH_BULLISH
    assert latest.timestamp == NOW
    assert reloaded.active_alerts() == []
    assert reloaded.aggregates_since(timedelta(hours=1), now=NOW + timedelta(minutes=5))[0].id == 1


def test_file_layout(store_path):
    store = JsonFileStore(store_path)
    store.append_aggregate(AggregateSnapshot(timestamp=NOW, total_posts=2))

    data = json.loads(store_path.read_text(encoding="utf-8"))
    assert set(data) == {"readings", "aggregate", "alerts", "next_ids"}
    assert data["aggregate"][0]["id"] == 1
    assert data["next_ids"]["aggregates"] == 2


def test_ids_continue_after_reload_and_eviction(store_path):
    store = JsonFileStore(store_path, max_aggregates=2)
    for _ in range(3):
        store.append_aggregate(AggregateSnapshot(timestamp=NOW))

    reloaded = JsonFileStore(store_path, max_aggregates=2)
    assert reloaded.append_aggregate(AggregateSnapshot(timestamp=NOW)).id == 4


def test_batch_writes_file_once(store_path, mocker):
    store = JsonFileStore(store_path)
    persist = mocker.spy(store, "_persist")

    with store.batch():
        store.append_reading(Reading.from_tally(SourceTally.from_counts("reddit", 1, 0, 0), NOW))
        store.append_aggregate(AggregateSnapshot(timestamp=NOW))

    assert persist.call_count == 1


def test_corrupt_file_raises_store_error(store_path):
    store_path.parent.mkdir(parents=True)
    store_path.write_text("{not json", encoding="utf-8")
    with pytest.raises(StoreError):
        JsonFileStore(store_path)


def test_write_failure_raises_store_error(store_path, mocker):
    store = JsonFileStore(store_path)
    mocker.patch("sentiment_aggregator.storage.json_store.os.replace", side_effect=OSError("read-only"))
    with pytest.raises(StoreError):
        store.append_aggregate(AggregateSnapshot(timestamp=NOW))
    assert not list(store_path.parent.glob(".sentiment-data.json.*"))


@pytest.mark.asyncio
async def test_failed_cycle_write_leaves_no_trace(store_path, mocker):
    store = JsonFileStore(store_path)
    store.append_aggregate(AggregateSnapshot(timestamp=NOW, total_posts=7))
    adapter = StubAdapter("stocktwits", [tally("stocktwits", 95, 3, 2, ticker="SPY")])
    aggregator = SentimentAggregator([adapter], store, clock=lambda: NOW)

    mocker.patch("sentiment_aggregator.storage.json_store.os.replace", side_effect=OSError("disk full"))
    with pytest.raises(StoreError):
        await aggregator.aggregate_sentiment()

    assert store.counts() == {"readings": 0, "aggregates": 1, "alerts": 0}
    assert store.latest_aggregate().total_posts == 7
    assert store.active_alerts() == []

    mocker.stopall()
    assert store.append_aggregate(AggregateSnapshot(timestamp=NOW)).id == 2
    on_disk = json.loads(store_path.read_text(encoding="utf-8"))
    assert on_disk["readings"] == []
    assert [s["id"] for s in on_disk["aggregate"]] == [1, 2]


def test_failed_acknowledge_is_rolled_back(store_path, mocker):
    store = JsonFileStore(store_path)
    alert = store.append_alert(Alert(timestamp=NOW, alert_type=AlertType.EXTREME_BEARISH, sentiment_pct=93.0, message="m"))

    mocker.patch("sentiment_aggregator.storage.json_store.os.replace", side_effect=OSError("read-only"))
    with pytest.raises(StoreError):
        store.acknowledge_alert(alert.id)

    assert [a.id for a in store.active_alerts()] == [alert.id]
