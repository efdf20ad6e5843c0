import asyncio
import logging
from typing import AsyncIterator, List, Optional

import httpx
from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, Query, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import mock
import probe
import synthetic
from catalog import get_entity
from config import get_settings
from database import SampleStore, get_store
from errors import InvalidSample, StoreUnavailable, UnknownEntity
from granularity import HOUR_MS, hours_for_range, resolve_granularity
from ingestion import ingest, seed
from live import LiveSnapshot
from query import historical
from schemas import AnalyticsResponse, HistoricalResponse, IngestRequest, LatencyReading

settings = get_settings()
logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Latency Telemetry API")

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Latest live reading per entity, fed by the probe and mock endpoints
live_snapshot = LiveSnapshot()


def get_live_snapshot() -> LiveSnapshot:
    return live_snapshot


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(follow_redirects=True) as client:
        yield client


@app.exception_handler(InvalidSample)
async def invalid_sample_handler(request: Request, exc: InvalidSample):
    return JSONResponse(status_code=400, content={"error": "Invalid data", "detail": str(exc)})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    # Malformed writes get the same 400 as missing fields
    if request.method == "POST" and request.url.path == "/historical":
        return JSONResponse(status_code=400, content={"error": "Invalid data", "detail": str(exc.errors())})
    return await request_validation_exception_handler(request, exc)


@app.exception_handler(StoreUnavailable)
async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
    logger.error("Error storing latency data: %s", exc)
    return JSONResponse(status_code=500, content={"error": "Failed to store data"})


@app.exception_handler(UnknownEntity)
async def unknown_entity_handler(request: Request, exc: UnknownEntity):
    return JSONResponse(status_code=404, content={"error": "Entity not found", "entityId": exc.entity_id})


@app.get("/")
async def root():
    """Root endpoint to check if the API is running."""
    return {"message": "Latency Telemetry API is running"}


@app.get("/historical", response_model=HistoricalResponse)
async def get_historical(
    entity_id: Optional[str] = Query(None, alias="entityId"),
    time_range: Optional[str] = Query(None, alias="timeRange", description="'1h', '24h', '7d' or '30d'"),
    granularity: Optional[str] = Query(None, description="'auto', '1m', '5m', '1h', '6h' or '1d'"),
    store: SampleStore = Depends(get_store),
):
    """
    Latency history for one entity with min/max/avg.
    Unknown time ranges mean 24h. When there is no usable data, or the store
    fails, a synthetic series is returned instead of an error.
    """
    if not entity_id:
        return JSONResponse(status_code=400, content={"error": "entityId required"})

    time_range = time_range or settings.DEFAULT_TIME_RANGE
    hours = hours_for_range(time_range)
    try:
        resolve_granularity(granularity, hours * HOUR_MS)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        return await historical(store, entity_id, time_range, granularity)
    except Exception:
        logger.exception("Error fetching historical data for %s", entity_id)
        return synthetic.generate(entity_id, hours, points=settings.SYNTHETIC_POINTS)


@app.post("/historical")
async def post_historical(body: IngestRequest, store: SampleStore = Depends(get_store)):
    """
    Store one latency sample: {entityId, latencyMs, timestamp?}.
    Missing fields are a 400; a store failure is a 500.
    """
    ack = await asyncio.to_thread(ingest, store, body.entity_id, body.resolved_latency(), body.timestamp)
    return {"success": True, "status": ack.status.value, "timestamp": ack.timestamp}


@app.get("/latency")
async def get_latency(
    entity_id: Optional[str] = Query(None, alias="entityId"),
    client: httpx.AsyncClient = Depends(get_http_client),
    snapshot: LiveSnapshot = Depends(get_live_snapshot),
):
    """Measure round trips now: one entity when entityId is given, otherwise all of them."""
    if entity_id:
        reading = await probe.probe_entity(client, get_entity(entity_id))
        snapshot.publish(reading)
        return reading.model_dump(by_alias=True, mode="json")

    readings = await probe.probe_all(client)
    for reading in readings:
        snapshot.publish(reading)
    return [r.model_dump(by_alias=True, mode="json") for r in readings]


@app.get("/latency/mock", response_model=List[LatencyReading])
async def get_mock_latency(
    background_tasks: BackgroundTasks,
    store: SampleStore = Depends(get_store),
    snapshot: LiveSnapshot = Depends(get_live_snapshot),
):
    """
    One simulated reading per entity.
    Successful readings are written to the store in the background; the batch
    is returned without waiting for those writes.
    """
    readings = mock.generate_batch()
    for reading in readings:
        snapshot.publish(reading)
    background_tasks.add_task(seed, store, readings, settings.SEED_CONCURRENCY)
    return readings


@app.get("/analytics", response_model=AnalyticsResponse)
async def get_analytics(snapshot: LiveSnapshot = Depends(get_live_snapshot)):
    """Summary, distribution and provider/region rollups over the latest live readings."""
    return snapshot.analytics()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
