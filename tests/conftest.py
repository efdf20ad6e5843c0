import httpx
import pytest
from fastapi.testclient import TestClient

from database import SampleStore, get_store
from granularity import now_ms
from live import LiveSnapshot
import main


class Clock:
    """Settable millisecond clock for expiry tests."""

    def __init__(self, now: int):
        self.now = now

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def clock():
    return Clock(now_ms())


@pytest.fixture
def store(tmp_path, clock):
    return SampleStore(str(tmp_path / "latency.db"), clock=clock)


@pytest.fixture
def snapshot():
    return LiveSnapshot()


@pytest.fixture
def probe_handler():
    """Response handler for the stubbed probe transport; tests may replace .handler."""
    class Holder:
        handler = staticmethod(lambda request: httpx.Response(200, json={"ok": True}))
    return Holder


@pytest.fixture
def client(store, snapshot, probe_handler):
    async def stub_http_client():
        transport = httpx.MockTransport(lambda request: probe_handler.handler(request))
        async with httpx.AsyncClient(transport=transport) as http_client:
            yield http_client

    main.app.dependency_overrides[get_store] = lambda: store
    main.app.dependency_overrides[main.get_live_snapshot] = lambda: snapshot
    main.app.dependency_overrides[main.get_http_client] = stub_http_client
    try:
        yield TestClient(main.app)
    finally:
        main.app.dependency_overrides.clear()
