"""Tests for the request-timeout middleware and in-flight request draining."""
import asyncio

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

import app.main as main
from app.main import InFlightRequests, TimeoutMiddleware


@pytest.fixture
async def slow_client():
    slow_app = FastAPI()
    slow_app.add_middleware(TimeoutMiddleware, timeout_seconds=0.05)

    @slow_app.get("/slow")
    async def slow():
        await asyncio.sleep(1)
        return {"status": "done"}

    @slow_app.get("/fast")
    async def fast():
        return {"status": "done"}

    async with AsyncClient(transport=ASGITransport(app=slow_app), base_url="http://test") as c:
        yield c


class TestTimeoutMiddleware:

    async def test_slow_request_times_out(self, slow_client):
        resp = await slow_client.get("/slow")
        assert resp.status_code == 504
        assert resp.json() == {"error": "request timed out"}

    async def test_fast_request_passes_through(self, slow_client):
        resp = await slow_client.get("/fast")
        assert resp.status_code == 200
        assert resp.json() == {"status": "done"}


class TestInFlightRequests:

    def test_track_counts_and_releases(self):
        tracker = InFlightRequests()
        with tracker.track():
            with tracker.track():
                assert tracker.count == 2
            assert tracker.count == 1
        assert tracker.count == 0

    def test_track_releases_on_error(self):
        tracker = InFlightRequests()
        with pytest.raises(ValueError):
            with tracker.track():
                raise ValueError("handler failed")
        assert tracker.count == 0

    async def test_drain_when_idle(self):
        assert await InFlightRequests().drain(timeout=0.1) is True

    async def test_drain_waits_for_request_to_finish(self):
        tracker = InFlightRequests(poll_interval=0.01)

        async def request():
            with tracker.track():
                await asyncio.sleep(0.05)

        task = asyncio.create_task(request())
        await asyncio.sleep(0)
        assert tracker.count == 1

        assert await tracker.drain(timeout=1.0) is True
        await task

    async def test_drain_gives_up_after_timeout(self):
        tracker = InFlightRequests(poll_interval=0.01)
        tracker.count = 1
        assert await tracker.drain(timeout=0.05) is False


class TestRequestTracking:

    async def test_requests_are_released_after_response(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert main.in_flight.count == 0


class TestWarmup:

    async def test_warmup_runs_query(self, monkeypatch, test_engine):
        monkeypatch.setattr(main, "engine", test_engine)
        await main._warm_database_pool()
