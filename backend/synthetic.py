"""Fabricated history returned when the store has nothing usable for a window."""
import math
import random
from typing import Optional

from aggregation import round_half_up, summarize
from granularity import HOUR_MS, now_ms
from schemas import DataPoint, HistoricalResponse, Status

DEFAULT_POINTS = 100


def generate(
    entity_id: str,
    hours: int,
    now: Optional[int] = None,
    rng: Optional[random.Random] = None,
    points: int = DEFAULT_POINTS,
) -> HistoricalResponse:
    """
    Build a plausible latency series spanning the last `hours` hours.

    Points are evenly spaced and end one interval before `now`; values follow a
    slow sine wave around a randomized base between 50 and 150ms. The result is
    never written to the store.
    """
    now = now_ms() if now is None else now
    rng = rng or random
    interval = hours * HOUR_MS / points

    data = []
    for i in range(points):
        timestamp = int(now - (points - i) * interval)
        base = 50 + rng.uniform(0, 100)
        latency = round_half_up(base + math.sin(i / 10) * 20)
        data.append(DataPoint(
            timestamp=timestamp,
            latency_ms=latency,
            status=Status.WARNING if latency > 200 else Status.SUCCESS,
        ))

    stats = summarize([p.latency_ms for p in data])
    return HistoricalResponse(entity_id=entity_id, data=data, stats=stats, synthetic=True)
