"""Unit tests for the webhook rate limiter."""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from src.mp_gateway.middleware.rate_limit import RateLimitMiddleware


@pytest.fixture
async def limited(fake_redis) -> AsyncClient:
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, path_prefixes=("/hooks",), limit=2)

    @app.post("/hooks/pay")
    async def pay() -> dict[str, str]:
        return {"ok": "yes"}

    @app.get("/other")
    async def other() -> dict[str, str]:
        return {"ok": "yes"}

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def test_third_request_in_window_is_rejected(limited, fake_redis) -> None:
    assert (await limited.post("/hooks/pay")).status_code == 200
    assert (await limited.post("/hooks/pay")).status_code == 200
    resp = await limited.post("/hooks/pay")

    assert resp.status_code == 429
    assert resp.json()["code"] == 9001
    assert 0 < int(resp.headers["Retry-After"]) <= 60
    assert list(fake_redis.expiries.values()) == [60]


async def test_clients_are_counted_separately(limited) -> None:
    for _ in range(2):
        await limited.post("/hooks/pay", headers={"X-Forwarded-For": "10.0.0.1"})
    resp = await limited.post("/hooks/pay", headers={"X-Forwarded-For": "10.0.0.2, 10.0.0.9"})
    assert resp.status_code == 200


async def test_other_paths_are_not_counted(limited, fake_redis) -> None:
    for _ in range(5):
        assert (await limited.get("/other")).status_code == 200
    assert fake_redis.counters == {}
