"""Tests for stale entry eviction."""

from datetime import timedelta

import pytest

from biboop.pin_store import Entry, PinStore, utcnow
from biboop.services.sweeper import StaleSweeper, sweep

MAX_AGE = timedelta(minutes=10)


def _entry(pin: str, age: timedelta, result=None) -> Entry:
    return Entry(timestamp=utcnow() - age, pin=pin, result=result)


def test_sweep_evicts_only_stale_entries(store: PinStore) -> None:
    store.insert("ns:OLD1", _entry("OLD1", timedelta(minutes=11)))
    store.insert("ns:OLD2", _entry("OLD2", timedelta(hours=1), {"x": 1}))
    store.insert("ns:NEW1", _entry("NEW1", timedelta(minutes=1)))

    evicted = sweep(store, MAX_AGE)

    assert sorted(evicted) == ["ns:OLD1", "ns:OLD2"]
    assert [key for key, _ in store.snapshot()] == ["ns:NEW1"]


def test_entry_at_threshold_is_kept(store: PinStore) -> None:
    now = utcnow()
    store.insert("ns:EDGE", Entry(timestamp=now - MAX_AGE, pin="EDGE"))
    assert sweep(store, MAX_AGE, now=now) == []
    assert sweep(store, MAX_AGE, now=now + timedelta(seconds=1)) == ["ns:EDGE"]
    assert not store.exists("ns:EDGE")


def test_sweep_on_empty_store(store: PinStore) -> None:
    assert sweep(store, MAX_AGE) == []


def test_sweep_logs_evicted_keys(store: PinStore, caplog: pytest.LogCaptureFixture) -> None:
    store.insert("ns:OLD1", _entry("OLD1", timedelta(minutes=30)))
    with caplog.at_level("INFO", logger="biboop.services.sweeper"):
        sweep(store, MAX_AGE)
    assert "Cleaning up stale key ns:OLD1" in caplog.text


class TestStaleSweeper:
    def test_run_once_sweeps(self, store: PinStore) -> None:
        store.insert("ns:OLD1", _entry("OLD1", timedelta(minutes=30)))
        StaleSweeper(store, MAX_AGE).run_once()
        assert len(store) == 0

    def test_run_once_swallows_errors(self, store: PinStore, monkeypatch, caplog) -> None:
        def broken_snapshot():
            raise RuntimeError("boom")

        monkeypatch.setattr(store, "snapshot", broken_snapshot)
        with caplog.at_level("ERROR", logger="biboop.services.sweeper"):
            StaleSweeper(store, MAX_AGE).run_once()
        assert "Sweep cycle failed" in caplog.text

    def test_start_and_stop_are_idempotent(self, store: PinStore) -> None:
        sweeper = StaleSweeper(store, MAX_AGE, interval_seconds=60)
        assert not sweeper.running
        sweeper.start()
        sweeper.start()
        try:
            assert sweeper.running
        finally:
            sweeper.stop()
        sweeper.stop()
        assert not sweeper.running


def test_entry_refreshed_after_snapshot_is_not_reported(
    store: PinStore, monkeypatch, caplog: pytest.LogCaptureFixture
) -> None:
    store.insert("ns:AAAA", _entry("AAAA", timedelta(minutes=30)))
    store.insert("ns:BBBB", _entry("BBBB", timedelta(minutes=30)))
    stale_view = store.snapshot()
    # a submit lands between the sweeper's snapshot and its removal
    store.update("ns:BBBB", Entry.fresh("BBBB", {"x": 1}))
    monkeypatch.setattr(store, "snapshot", lambda: stale_view)

    with caplog.at_level("INFO", logger="biboop.services.sweeper"):
        evicted = sweep(store, MAX_AGE)

    assert evicted == ["ns:AAAA"]
    assert store.get("ns:BBBB").result == {"x": 1}
    assert "ns:AAAA" in caplog.text
    assert "ns:BBBB" not in caplog.text
