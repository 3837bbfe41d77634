"""Middleware and infrastructure tests: request id, CORS, logging, Redis readiness."""

import json
import logging
from unittest.mock import AsyncMock

import pytest
import redis.asyncio as aioredis
from fastapi import FastAPI
from httpx import AsyncClient

from movibeers import redis_client
from movibeers.config import Settings
from movibeers.middleware.cors import setup_cors
from movibeers.middleware.logging import HANDLER_NAME, build_formatter, setup_logging


@pytest.mark.asyncio
async def test_request_id_generated(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert len(response.headers["x-request-id"]) == 32


@pytest.mark.asyncio
async def test_request_id_preserved(client: AsyncClient) -> None:
    response = await client.get("/health", headers={"X-Request-Id": "test-abc-123"})
    assert response.headers["x-request-id"] == "test-abc-123"


@pytest.mark.asyncio
async def test_oversized_request_id_replaced(client: AsyncClient) -> None:
    response = await client.get("/health", headers={"X-Request-Id": "a" * 100})
    assert response.headers["x-request-id"] != "a" * 100
    assert len(response.headers["x-request-id"]) == 32


@pytest.mark.asyncio
async def test_cors_preflight(client: AsyncClient) -> None:
    """Preflight from a configured origin is answered for authorized requests."""
    response = await client.options(
        "/api/v1/feed",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "GET",
            "Access-Control-Request-Headers": "authorization",
        },
    )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:5173"


@pytest.mark.asyncio
async def test_cors_rejects_unknown_origin(client: AsyncClient) -> None:
    response = await client.options(
        "/api/v1/feed",
        headers={"Origin": "https://elsewhere.example", "Access-Control-Request-Method": "GET"},
    )
    assert response.status_code == 400
    assert "access-control-allow-origin" not in response.headers


def test_no_cors_without_origins() -> None:
    app = FastAPI()
    setup_cors(app, Settings(_env_file=None, cors_origins=[]))
    assert app.user_middleware == []


def test_wildcard_origin_drops_credentials() -> None:
    app = FastAPI()
    setup_cors(app, Settings(_env_file=None, cors_origins=["*"]))
    assert app.user_middleware[0].kwargs["allow_credentials"] is False


def test_stdlib_records_share_structured_shape() -> None:
    formatter = build_formatter(Settings(_env_file=None, log_format="json", environment="test"), component="worker")
    record = logging.LogRecord(
        "movibeers.workers.jobs", logging.INFO, __file__, 1, "Worker started (store backend: %s)", ("memory",), None
    )

    data = json.loads(formatter.format(record))

    assert data["event"] == "Worker started (store backend: memory)"
    assert data["level"] == "info"
    assert data["logger"] == "movibeers.workers.jobs"
    assert data["service"] == "movibeers"
    assert data["component"] == "worker"
    assert data["env"] == "test"
    assert "timestamp" in data


def test_setup_logging_replaces_its_own_handler() -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        settings = Settings(_env_file=None, log_level="WARNING")
        setup_logging(settings)
        setup_logging(settings)

        ours = [h for h in root.handlers if h.get_name() == HANDLER_NAME]
        assert len(ours) == 1
        assert root.level == logging.WARNING
        assert logging.getLogger("uvicorn.access").level == logging.WARNING
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)


@pytest.mark.asyncio
async def test_redis_disabled_without_url() -> None:
    assert await redis_client.init_redis("") is None
    assert await redis_client.redis_status() == "disabled"


@pytest.mark.asyncio
async def test_redis_status_reports_ping(monkeypatch: pytest.MonkeyPatch) -> None:
    pool = AsyncMock()
    monkeypatch.setattr(redis_client, "_pool", pool)
    assert await redis_client.redis_status() == "ok"

    pool.ping.side_effect = aioredis.ConnectionError("refused")
    assert await redis_client.redis_status() == "error: refused"
