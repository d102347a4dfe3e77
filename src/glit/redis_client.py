"""Shared Redis client and the key namespace the rewards service writes to.

Redis is optional for the engine: submission rate limits, the per-IP request
cap and user notifications degrade to no-ops when it was never initialised
or stops answering. Durable state lives only in the database.
"""

import redis.asyncio as redis
from redis.exceptions import RedisError

from glit.config import Settings

_client: redis.Redis | None = None

# Errors that mean "Redis is not there right now", never "the request is bad"
UNAVAILABLE_ERRORS: tuple[type[Exception], ...] = (RuntimeError, RedisError, OSError)


def submission_window_key(user_id: str, exercise_id: str) -> str:
    return f"submit:ratelimit:{user_id}:{exercise_id}"


def request_window_key(client_ip: str, window: int) -> str:
    return f"ratelimit:{client_ip}:{window}"


def user_channel(user_id: str) -> str:
    return f"ws:user:{user_id}"


async def init_redis(settings: Settings) -> None:
    """Create the client. Connections are opened lazily on first command."""
    global _client  # noqa: PLW0603
    _client = redis.from_url(  # type: ignore[no-untyped-call]
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=settings.redis_max_connections,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_socket_timeout,
    )


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None


def get_redis() -> redis.Redis:
    """The shared client. Raises RuntimeError before init_redis ran."""
    if _client is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _client


def optional_redis() -> redis.Redis | None:
    """The shared client, or None when Redis is not configured for this process."""
    return _client
