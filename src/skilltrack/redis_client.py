"""Redis connection pool.

The client is created by the application lifespan and kept on
``app.state.redis``; it backs the rate limiter and the readiness check.
"""

from __future__ import annotations

import redis.asyncio as redis
from starlette.requests import Request


def create_redis(url: str, connect_timeout: float = 1.0, socket_timeout: float = 1.0) -> redis.Redis:
    """Build a pooled client. No connection is made until first use.

    Both timeouts are bounded so an unreachable server fails a call quickly.
    """
    return redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=50,
        socket_connect_timeout=connect_timeout,
        socket_timeout=socket_timeout,
    )


async def close_redis(client: redis.Redis | None) -> None:
    if client is not None:
        await client.aclose()


def get_redis(request: Request) -> redis.Redis:
    """Get the Redis client attached to the app."""
    client: redis.Redis | None = getattr(request.app.state, "redis", None)
    if client is None:
        msg = "Redis not initialized. Attach a client to app.state.redis first."
        raise RuntimeError(msg)
    return client
