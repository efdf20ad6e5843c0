import math
import random

import pytest

from aggregation import (
    by_provider,
    by_region,
    distribution,
    region_from_location,
    rendered_distribution,
    round_half_up,
    summarize,
    summarize_extended,
    top_n,
    valid_latencies,
    zero_summary,
)
from errors import NoData
from schemas import Sample, Status


def _sample(entity_id, latency_ms, timestamp=0):
    status = Status.ERROR if latency_ms == -1 else Status.SUCCESS
    return Sample(entity_id=entity_id, timestamp=timestamp, latency_ms=latency_ms, status=status)


def test_summarize_basic():
    stats = summarize([50, 150, 300])
    assert stats.min == 50
    assert stats.max == 300
    assert stats.avg == 167


def test_summarize_empty_raises_no_data():
    with pytest.raises(NoData):
        summarize([])
    with pytest.raises(NoData):
        summarize_extended([])


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(166.5) == 167
    assert round_half_up(166.49) == 166


def test_valid_latencies_drops_failed_probes():
    samples = [_sample("a", 40), _sample("a", -1), _sample("a", 90)]
    assert valid_latencies(samples) == [40, 90]


def test_nearest_rank_percentiles():
    stats = summarize_extended([40, 10, 30, 20])
    assert stats.median == 30
    assert stats.p25 == 20
    assert stats.p75 == 40
    assert stats.p95 == 40
    assert stats.count == 4
    assert stats.avg == 25


def test_single_sample_summary():
    stats = summarize_extended([77])
    assert stats.min == stats.max == stats.median == stats.p25 == stats.p95 == 77
    assert stats.variance == 0
    assert stats.std_dev == 0


def test_population_variance():
    stats = summarize_extended([2, 4, 4, 4, 5, 5, 7, 9])
    assert stats.avg == 5
    assert stats.variance == 4
    assert stats.std_dev == 2


@pytest.mark.parametrize("seed", [1, 2, 3, 4, 5])
def test_order_statistics_are_monotonic(seed):
    rng = random.Random(seed)
    latencies = [rng.randint(1, 500) for _ in range(rng.randint(1, 60))]
    stats = summarize_extended(latencies)
    assert stats.min <= stats.p25 <= stats.median <= stats.p75 <= stats.p95 <= stats.max
    assert stats.min <= stats.avg <= stats.max
    assert stats.variance >= 0
    assert stats.std_dev == math.sqrt(stats.variance)


def test_summary_ignores_input_order():
    latencies = [120, 35, 88, 240, 61, 61, 199]
    shuffled = list(reversed(latencies))
    assert summarize_extended(latencies) == summarize_extended(shuffled)
    assert summarize(latencies) == summarize(shuffled)


def test_zero_summary():
    stats = zero_summary()
    assert stats.count == 0
    assert stats.avg == 0


def test_distribution_boundaries():
    counts = distribution([49, 50, 99, 100, 199, 200])
    assert counts == {"excellent": 1, "good": 2, "moderate": 2, "poor": 1}


def test_distribution_keeps_empty_buckets():
    counts = distribution([50, 150, 300])
    assert counts == {"excellent": 0, "good": 1, "moderate": 1, "poor": 1}
    assert sum(counts.values()) == 3


def test_rendered_distribution_omits_empty_buckets():
    buckets = rendered_distribution([50, 150, 300])
    assert [b.name for b in buckets] == ["good", "moderate", "poor"]
    assert all(b.count == 1 for b in buckets)


@pytest.mark.parametrize("location,region", [
    ("Tokyo, Japan", "Japan"),
    ("Singapore", "Singapore"),
    ("Portland, Oregon, USA", "Oregon"),
    ("Nowhere,", "Nowhere,"),
])
def test_region_from_location(location, region):
    assert region_from_location(location) == region


def test_by_provider_skips_failed_and_unknown():
    providers = {"a": "AWS", "b": "AWS", "c": "GCP"}
    samples = [_sample("a", 40), _sample("b", 60), _sample("b", -1), _sample("c", 100), _sample("z", 10)]
    groups = {g.key: g for g in by_provider(samples, providers.get)}
    assert set(groups) == {"AWS", "GCP"}
    assert groups["AWS"].count == 2
    assert groups["AWS"].min == 40
    assert groups["AWS"].max == 60
    assert groups["AWS"].avg == 50
    assert groups["GCP"].count == 1


def test_by_region_sorted_by_average():
    locations = {"a": "Tokyo, Japan", "b": "Singapore", "c": "Osaka, Japan"}
    samples = [_sample("a", 90), _sample("b", 30), _sample("c", 50)]
    groups = by_region(samples, locations.get)
    assert [g.key for g in groups] == ["Singapore", "Japan"]
    assert groups[1].count == 2
    assert groups[1].avg == 70


def test_top_n_is_stable_on_ties():
    samples = [_sample("a", 50), _sample("b", 20), _sample("c", 50), _sample("d", 20), _sample("e", 90)]
    assert [s.entity_id for s in top_n(samples, 4)] == ["b", "d", "a", "c"]
    assert top_n(samples, 0) == []
