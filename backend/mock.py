"""Simulated probe readings, one per catalog entity."""
import random
from typing import List, Optional

from aggregation import round_half_up
from catalog import ENTITIES, Entity
from granularity import now_ms
from ingestion import classify_status
from schemas import LatencyReading, Outcome

JITTER_RATIO = 0.2
SPIKE_PROBABILITY = 0.05
SPIKE_RATIO = 0.5
FAILURE_PROBABILITY = 0.05


def realistic_latency(base_latency: int, rng=random) -> int:
    variation = base_latency * JITTER_RATIO
    spike = base_latency * SPIKE_RATIO if rng.random() < SPIKE_PROBABILITY else 0
    return round_half_up(base_latency + (rng.random() - 0.5) * variation + spike)


def generate_reading(entity: Entity, timestamp: int, rng=random) -> LatencyReading:
    latency = realistic_latency(entity.base_latency_ms, rng)
    outcome = Outcome.failed() if rng.random() < FAILURE_PROBABILITY else Outcome.ok(latency)
    return LatencyReading(
        entity_id=entity.id,
        latency_ms=outcome.as_sentinel(),
        timestamp=timestamp,
        status=classify_status(outcome),
    )


def generate_batch(
    entities: Optional[List[Entity]] = None,
    now: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> List[LatencyReading]:
    """One reading per entity, all sharing the same timestamp."""
    entities = ENTITIES if entities is None else entities
    timestamp = now_ms() if now is None else now
    rng = rng or random
    return [generate_reading(e, timestamp, rng) for e in entities]
