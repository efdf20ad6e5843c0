"""Live round-trip measurement against each entity's health endpoint."""
import asyncio
import logging
import time
from typing import List, Optional

import httpx

from catalog import ENTITIES, Entity
from config import get_settings
from granularity import now_ms
from ingestion import classify_status
from schemas import LatencyReading, Outcome

logger = logging.getLogger(__name__)


async def measure(client: httpx.AsyncClient, url: str, timeout: Optional[float] = None) -> Outcome:
    """Time one GET; any transport error or timeout is a failed outcome, never an exception."""
    timeout = timeout if timeout is not None else get_settings().PROBE_TIMEOUT_SECONDS
    start = time.perf_counter()
    try:
        await client.get(url, timeout=timeout, headers={"Cache-Control": "no-store"})
    except httpx.HTTPError as e:
        logger.debug("Probe to %s failed: %r", url, e)
        return Outcome.failed()
    return Outcome.ok(round((time.perf_counter() - start) * 1000))


async def probe_entity(client: httpx.AsyncClient, entity: Entity) -> LatencyReading:
    if entity.endpoints:
        outcome = await measure(client, entity.endpoints[0])
    else:
        outcome = Outcome.failed()
    return LatencyReading(
        entity_id=entity.id,
        latency_ms=outcome.as_sentinel(),
        timestamp=now_ms(),
        status=classify_status(outcome),
    )


async def probe_all(client: httpx.AsyncClient, entities: Optional[List[Entity]] = None) -> List[LatencyReading]:
    entities = ENTITIES if entities is None else entities
    return list(await asyncio.gather(*(probe_entity(client, e) for e in entities)))
