import pytest

from database import SampleStore
from errors import InvalidSample, StoreUnavailable
from schemas import Sample, Status

DAY_MS = 86_400_000


def _sample(timestamp, latency_ms=80, entity_id="binance-tokyo"):
    return Sample(entity_id=entity_id, timestamp=timestamp, latency_ms=latency_ms, status=Status.SUCCESS)


def test_range_query_orders_out_of_order_writes(store, clock):
    now = clock.now
    for offset in (3000, 1000, 2000):
        store.append("binance-tokyo", _sample(now - offset, latency_ms=offset // 10))

    samples = store.range_query("binance-tokyo", now - 10_000, now)
    assert [s.timestamp for s in samples] == [now - 3000, now - 2000, now - 1000]
    assert all(s.entity_id == "binance-tokyo" for s in samples)


def test_range_query_breaks_timestamp_ties_by_arrival(store, clock):
    ts = clock.now - 500
    for latency in (70, 30, 50):
        store.append("binance-tokyo", _sample(ts, latency_ms=latency))

    samples = store.range_query("binance-tokyo", ts, ts)
    assert [s.latency_ms for s in samples] == [70, 30, 50]


def test_range_query_bounds_are_inclusive(store, clock):
    now = clock.now
    for ts in (now - 2000, now - 1000, now):
        store.append("binance-tokyo", _sample(ts))

    samples = store.range_query("binance-tokyo", now - 2000, now - 1000)
    assert [s.timestamp for s in samples] == [now - 2000, now - 1000]


def test_range_query_unknown_entity_is_empty(store, clock):
    assert store.range_query("nobody", 0, clock.now) == []


def test_series_are_isolated(store, clock):
    store.append("a", _sample(clock.now, entity_id="a"))
    store.append("b", _sample(clock.now, entity_id="b"))
    assert len(store.range_query("a", 0, clock.now)) == 1


def test_append_rejects_missing_fields(store, clock):
    with pytest.raises(InvalidSample):
        store.append("", _sample(clock.now))
    with pytest.raises(InvalidSample):
        store.append("binance-tokyo", None)


def test_prune_removes_only_older_samples(store, clock):
    now = clock.now
    for ts in (now - 3000, now - 2000, now - 1000):
        store.append("binance-tokyo", _sample(ts))

    assert store.prune("binance-tokyo", now - 2000) == 1
    remaining = store.range_query("binance-tokyo", 0, now)
    assert [s.timestamp for s in remaining] == [now - 2000, now - 1000]


def test_series_expires_after_retention(store, clock):
    store.append("binance-tokyo", _sample(clock.now))
    clock.now += 29 * DAY_MS
    assert len(store.range_query("binance-tokyo", 0, clock.now)) == 1

    clock.now += 2 * DAY_MS
    assert store.range_query("binance-tokyo", 0, clock.now) == []


def test_write_refreshes_expiry(store, clock):
    start = clock.now
    store.append("binance-tokyo", _sample(start))
    clock.now += 20 * DAY_MS
    store.append("binance-tokyo", _sample(clock.now))
    clock.now += 20 * DAY_MS

    assert len(store.range_query("binance-tokyo", 0, clock.now)) == 2


def test_downsample_averages_buckets_and_skips_failures(store):
    bucket = 60_000
    base = 1_700_000_040_000  # aligned to the minute
    store.append("binance-tokyo", _sample(base + 1000, latency_ms=40))
    store.append("binance-tokyo", _sample(base + 2000, latency_ms=60))
    store.append("binance-tokyo", Sample(
        entity_id="binance-tokyo", timestamp=base + 3000, latency_ms=-1, status=Status.ERROR,
    ))
    store.append("binance-tokyo", _sample(base + bucket + 5, latency_ms=100))

    buckets = store.downsample("binance-tokyo", base, base + 2 * bucket, bucket)
    assert buckets == [
        {"timestamp": base, "latency": 50.0},
        {"timestamp": base + bucket, "latency": 100.0},
    ]


def test_unreachable_store_fails_on_use_not_construction(tmp_path):
    store = SampleStore(str(tmp_path / "missing" / "latency.db"))
    with pytest.raises(StoreUnavailable):
        store.range_query("binance-tokyo", 0, 1)
    with pytest.raises(StoreUnavailable):
        store.init_db()
