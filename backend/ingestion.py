import asyncio
import logging
from typing import Iterable, Optional, Union

from config import get_settings
from database import SampleStore
from errors import InvalidSample
from granularity import now_ms
from schemas import IngestAck, LatencyReading, Outcome, Sample, Status

logger = logging.getLogger(__name__)

WARNING_THRESHOLD_MS = 200
MEDIUM_THRESHOLD_MS = 100


def classify_status(value: Union[Outcome, int]) -> Status:
    """Status for a probe result; accepts an Outcome or a wire latency (-1 = failed)."""
    outcome = value if isinstance(value, Outcome) else Outcome.from_wire(value)
    if outcome.is_failed:
        return Status.ERROR
    if outcome.latency_ms > WARNING_THRESHOLD_MS:
        return Status.WARNING
    if outcome.latency_ms > MEDIUM_THRESHOLD_MS:
        return Status.MEDIUM
    return Status.SUCCESS


def retention_horizon(now: int, retention_ms: int) -> int:
    return now - retention_ms


def ingest(
    store: SampleStore,
    entity_id: Optional[str],
    latency_ms: Optional[int],
    timestamp: Optional[int] = None,
    now: Optional[int] = None,
) -> IngestAck:
    """
    Validate and store one sample, then prune the series.

    The prune bound never exceeds the new sample's timestamp, so a sample
    written with a skewed clock survives its own write.

    Raises:
        InvalidSample: entity id empty or latency missing
        StoreUnavailable: the store rejected the write or the prune
    """
    if not entity_id:
        raise InvalidSample("entityId required")
    if latency_ms is None:
        raise InvalidSample("latencyMs required")

    now = now_ms() if now is None else now
    ts = timestamp if timestamp is not None else now
    sample = Sample(
        entity_id=entity_id,
        timestamp=ts,
        latency_ms=latency_ms,
        status=classify_status(latency_ms),
    )
    store.append(entity_id, sample)

    bound = min(retention_horizon(now, store.retention_ms), ts)
    pruned = store.prune(entity_id, bound)

    return IngestAck(entity_id=entity_id, timestamp=ts, status=sample.status, pruned=pruned)


async def seed(
    store: SampleStore,
    readings: Iterable[LatencyReading],
    concurrency: Optional[int] = None,
) -> int:
    """
    Write one sample per reading concurrently; failed probes are not written.

    A failing write is logged and does not affect the others. Returns the
    number of samples stored.
    """
    concurrency = concurrency or get_settings().SEED_CONCURRENCY
    semaphore = asyncio.Semaphore(concurrency)
    pending = [r for r in readings if not r.outcome.is_failed]

    async def write(reading: LatencyReading) -> IngestAck:
        async with semaphore:
            return await asyncio.to_thread(
                ingest, store, reading.entity_id, reading.latency_ms, reading.timestamp
            )

    results = await asyncio.gather(*(write(r) for r in pending), return_exceptions=True)

    stored = 0
    for reading, result in zip(pending, results):
        if isinstance(result, Exception):
            logger.error("Failed to store latency for %s: %s", reading.entity_id, result)
        else:
            stored += 1
    logger.debug("Seeded %d of %d readings", stored, len(pending))
    return stored
