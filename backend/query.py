import asyncio
import logging
from typing import List, Optional

import synthetic
from aggregation import round_half_up, summarize, valid_latencies
from config import get_settings
from database import SampleStore
from errors import NoData, StoreUnavailable
from granularity import HOUR_MS, hours_for_range, now_ms, resolve_granularity
from ingestion import classify_status
from schemas import DataPoint, HistoricalResponse, Sample

logger = logging.getLogger(__name__)


def window(hours: int, now: int):
    return now - hours * HOUR_MS, now


def query(store: SampleStore, entity_id: str, time_range: Optional[str], now: Optional[int] = None) -> List[Sample]:
    """Samples for the window named by time_range ('1h', '24h', '7d', '30d'), oldest first."""
    now = now_ms() if now is None else now
    from_ts, to_ts = window(hours_for_range(time_range), now)
    return store.range_query(entity_id, from_ts, to_ts)


def _fetch(store: SampleStore, entity_id: str, time_range: Optional[str], now: int, bucket_ms: Optional[int]):
    samples = query(store, entity_id, time_range, now)
    buckets = None
    if bucket_ms is not None:
        from_ts, to_ts = window(hours_for_range(time_range), now)
        buckets = store.downsample(entity_id, from_ts, to_ts, bucket_ms)
    return samples, buckets


async def historical(
    store: SampleStore,
    entity_id: str,
    time_range: Optional[str],
    granularity: Optional[str] = None,
    now: Optional[int] = None,
) -> HistoricalResponse:
    """
    Range query plus summary, falling back to synthetic data.

    The fallback is used when the store fails, times out, or has no successful
    samples in the window. Raises ValueError only for an unknown granularity.
    """
    settings = get_settings()
    now = now_ms() if now is None else now
    hours = hours_for_range(time_range)
    gran = resolve_granularity(granularity, hours * HOUR_MS)

    try:
        samples, buckets = await asyncio.wait_for(
            asyncio.to_thread(_fetch, store, entity_id, time_range, now, gran.ms_size if gran else None),
            timeout=settings.STORE_TIMEOUT_SECONDS,
        )
        stats = summarize(valid_latencies(samples))
    except (StoreUnavailable, asyncio.TimeoutError) as e:
        logger.warning("Error fetching historical data for %s, serving synthetic data: %r", entity_id, e)
        return synthetic.generate(entity_id, hours, now=now, points=settings.SYNTHETIC_POINTS)
    except NoData:
        logger.info("No samples for %s in the last %dh, serving synthetic data", entity_id, hours)
        return synthetic.generate(entity_id, hours, now=now, points=settings.SYNTHETIC_POINTS)

    if buckets is not None:
        data = []
        for bucket in buckets:
            latency = round_half_up(bucket["latency"])
            data.append(DataPoint(timestamp=bucket["timestamp"], latency_ms=latency, status=classify_status(latency)))
    else:
        data = [DataPoint(timestamp=s.timestamp, latency_ms=s.latency_ms, status=s.status) for s in samples]

    return HistoricalResponse(
        entity_id=entity_id,
        data=data,
        stats=stats,
        granularity=gran.symbol if gran else None,
    )
