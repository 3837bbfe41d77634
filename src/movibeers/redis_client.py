"""Redis for the notification push channel.

Push is optional: with no ``MB_REDIS_URL`` the pool stays unset, notifications
are only stored, and clients poll the unread count instead.
"""

import redis.asyncio as redis
import structlog

logger = structlog.get_logger()

_pool: redis.Redis | None = None


async def init_redis(url: str) -> redis.Redis | None:
    """Open the shared pool. Returns None when push is disabled."""
    global _pool  # noqa: PLW0603
    if not url:
        logger.info("redis_push_disabled")
        return None
    _pool = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=50,
    )
    return _pool


async def close_redis() -> None:
    global _pool  # noqa: PLW0603
    if _pool:
        await _pool.aclose()
        _pool = None


async def redis_status() -> str:
    """Readiness value: ``disabled``, ``ok`` or ``error: <reason>``."""
    if _pool is None:
        return "disabled"
    try:
        await _pool.ping()
    except redis.RedisError as exc:
        return f"error: {exc}"
    return "ok"
