"""
Latest reading per entity, for the live analytics view.

Request handlers never touch the map directly: they publish readings onto a
queue and the snapshot applies pending messages before answering a read.
"""
import asyncio
from collections import Counter
from typing import Dict, List

import aggregation
from catalog import CATALOG, location_of, provider_of
from errors import NoData
from schemas import AnalyticsResponse, LatencyReading, RankedEntity, Sample

FASTEST_COUNT = 5
MAX_PENDING = 256


class LiveSnapshot:
    def __init__(self, max_pending: int = MAX_PENDING):
        self._inbox: "asyncio.Queue[LatencyReading]" = asyncio.Queue(maxsize=max_pending)
        self._latest: Dict[str, LatencyReading] = {}

    def publish(self, reading: LatencyReading) -> None:
        # A full inbox is folded into the snapshot, so pending readings stay bounded
        if self._inbox.full():
            self._drain()
        self._inbox.put_nowait(reading)

    def pending(self) -> int:
        return self._inbox.qsize()

    def _drain(self) -> None:
        while True:
            try:
                reading = self._inbox.get_nowait()
            except asyncio.QueueEmpty:
                return
            current = self._latest.get(reading.entity_id)
            if current is None or reading.timestamp >= current.timestamp:
                self._latest[reading.entity_id] = reading

    def latest(self) -> List[LatencyReading]:
        self._drain()
        return list(self._latest.values())

    def clear(self) -> None:
        self._drain()
        self._latest.clear()

    def analytics(self) -> AnalyticsResponse:
        samples = [Sample.model_validate(r.model_dump()) for r in self.latest()]
        latencies = aggregation.valid_latencies(samples)
        try:
            overall = aggregation.summarize_extended(latencies)
        except NoData:
            overall = aggregation.zero_summary()

        ranked = aggregation.top_n([s for s in samples if not s.outcome.is_failed], FASTEST_COUNT)
        fastest = [
            RankedEntity(
                entity_id=s.entity_id,
                name=CATALOG[s.entity_id].name if s.entity_id in CATALOG else s.entity_id,
                provider=provider_of(s.entity_id) or "unknown",
                latency_ms=s.latency_ms,
            )
            for s in ranked
        ]

        return AnalyticsResponse(
            overall=overall,
            distribution=aggregation.rendered_distribution(latencies),
            by_provider=aggregation.by_provider(samples, provider_of),
            by_region=aggregation.by_region(samples, location_of),
            fastest=fastest,
            status_counts=dict(Counter(s.status.value for s in samples)),
        )
