"""
Statistics over latency samples.

Everything here is pure and synchronous: callers fetch samples first and pass
them in. Failed probes must be filtered out with `valid_latencies` before
calling `summarize` or `summarize_extended`.

Percentiles use the nearest-rank method on the ascending sample,
`sorted[floor(n * q)]`, with no interpolation between ranks. Downstream
consumers depend on these exact boundaries.
"""
import math
from collections import OrderedDict
from typing import Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

from errors import NoData
from schemas import (
    DistributionBucket,
    ExtendedStats,
    GroupSummary,
    Sample,
    StatSummary,
)

T = TypeVar("T")

# (name, label, lower bound inclusive, upper bound exclusive)
BUCKETS = [
    ("excellent", "<50ms", None, 50),
    ("good", "50-100ms", 50, 100),
    ("moderate", "100-200ms", 100, 200),
    ("poor", ">=200ms", 200, None),
]


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives, matching what the dashboard displays."""
    return int(math.floor(value + 0.5))


def valid_latencies(samples: Iterable[Sample]) -> List[int]:
    """Latencies of samples whose probe succeeded."""
    return [s.latency_ms for s in samples if not s.outcome.is_failed]


def summarize(latencies: Sequence[int]) -> StatSummary:
    """Basic {min, max, avg} summary. Raises NoData on an empty input."""
    if not latencies:
        raise NoData("No latency samples to summarize")
    return StatSummary(
        min=min(latencies),
        max=max(latencies),
        avg=round_half_up(sum(latencies) / len(latencies)),
    )


def _nearest_rank(sorted_values: Sequence[int], q: float) -> int:
    return sorted_values[math.floor(len(sorted_values) * q)]


def summarize_extended(latencies: Sequence[int]) -> ExtendedStats:
    """
    Full summary with order statistics and spread.

    Args:
        latencies: Successful probe latencies in milliseconds

    Returns:
        ExtendedStats: min/max/avg, nearest-rank median and percentiles,
        population variance and its square root

    Raises:
        NoData: if latencies is empty
    """
    if not latencies:
        raise NoData("No latency samples to summarize")

    # Sort once; every order statistic reads from this copy
    ordered = sorted(latencies)
    n = len(ordered)
    avg = sum(ordered) / n
    variance = sum((x - avg) ** 2 for x in ordered) / n

    return ExtendedStats(
        min=ordered[0],
        max=ordered[-1],
        avg=avg,
        median=ordered[n // 2],
        p25=_nearest_rank(ordered, 0.25),
        p75=_nearest_rank(ordered, 0.75),
        p95=_nearest_rank(ordered, 0.95),
        std_dev=math.sqrt(variance),
        variance=variance,
        count=n,
    )


def zero_summary() -> ExtendedStats:
    """Summary reported for an empty live snapshot."""
    return ExtendedStats(
        min=0, max=0, avg=0.0, median=0, p25=0, p75=0, p95=0,
        std_dev=0.0, variance=0.0, count=0,
    )


def bucket_for(latency: int) -> str:
    for name, _label, low, high in BUCKETS:
        if (low is None or latency >= low) and (high is None or latency < high):
            return name
    raise ValueError(f"No bucket for latency {latency}")


def distribution(latencies: Iterable[int]) -> Dict[str, int]:
    """Count of latencies per band, zero-count bands included."""
    counts: Dict[str, int] = OrderedDict((name, 0) for name, _, _, _ in BUCKETS)
    for latency in latencies:
        counts[bucket_for(latency)] += 1
    return counts


def rendered_distribution(latencies: Iterable[int]) -> List[DistributionBucket]:
    """Bands for display: same counts as `distribution`, empty bands dropped."""
    counts = distribution(latencies)
    return [
        DistributionBucket(name=name, label=label, count=counts[name])
        for name, label, _, _ in BUCKETS
        if counts[name] > 0
    ]


def region_from_location(location: str) -> str:
    """
    Region key for a location label like "Tokyo, Japan" -> "Japan".

    Takes the text after the first comma; a label with no comma, or with
    nothing after it, is its own region ("Singapore" -> "Singapore").
    """
    parts = location.split(",")
    if len(parts) > 1:
        region = parts[1].strip()
        if region:
            return region
    return location


def rollup(samples: Iterable[Sample], key_for: Callable[[str], Optional[str]]) -> List[GroupSummary]:
    """
    Group successful samples by an external dimension and summarize each group.

    Args:
        samples: Samples to group; failed probes are skipped
        key_for: Maps an entity id to its group key, or None to leave it out

    Returns:
        list: One GroupSummary per key, in first-seen order
    """
    groups: Dict[str, List[int]] = OrderedDict()
    for sample in samples:
        if sample.outcome.is_failed:
            continue
        key = key_for(sample.entity_id)
        if key is None:
            continue
        groups.setdefault(key, []).append(sample.latency_ms)

    result = []
    for key, latencies in groups.items():
        stats = summarize(latencies)
        result.append(GroupSummary(key=key, min=stats.min, max=stats.max, avg=stats.avg, count=len(latencies)))
    return result


def by_provider(samples: Iterable[Sample], provider_of: Callable[[str], Optional[str]]) -> List[GroupSummary]:
    return rollup(samples, provider_of)


def by_region(samples: Iterable[Sample], location_of: Callable[[str], Optional[str]]) -> List[GroupSummary]:
    """Rollup by region derived from each entity's location label, lowest average first."""
    def region_of(entity_id: str) -> Optional[str]:
        location = location_of(entity_id)
        return region_from_location(location) if location is not None else None

    return sorted(rollup(samples, region_of), key=lambda g: g.avg)


def top_n(samples: Iterable[T], n: int, latency_of: Callable[[T], int] = lambda s: s.latency_ms) -> List[T]:
    """The n lowest-latency items; equal latencies keep their input order."""
    return sorted(samples, key=latency_of)[:n]
