"""Redis client factory shared by the seen-set and stats stores."""

from __future__ import annotations

import redis

from ..config import RedisSettings


def build_redis_client(settings: RedisSettings) -> redis.Redis | None:
    """Return a text-mode client for ``settings.url`` or ``None`` when Redis is not configured.

    ``settings.token`` is passed as the password, so hosted providers can be reached
    through their ``rediss://`` endpoint with the URL and token kept separate.
    """

    if not settings.enabled:
        return None
    return redis.Redis.from_url(
        settings.url,
        password=settings.token or None,
        decode_responses=True,
        socket_timeout=settings.socket_timeout,
        socket_connect_timeout=settings.socket_timeout,
    )


__all__ = ["build_redis_client"]
