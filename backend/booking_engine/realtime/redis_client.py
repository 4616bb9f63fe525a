from __future__ import annotations

import logging

import redis.asyncio as redis

from booking_engine.core.config import Settings

logger = logging.getLogger(__name__)


def create_redis_client(settings: Settings) -> redis.Redis:
    """Redis-клиент для push-канала событий номеров."""
    return redis.Redis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=False,
    )


async def close_redis_client(client: redis.Redis) -> None:
    try:
        await client.aclose()
    except Exception as exc:  # pragma: no cover - best-effort close
        logger.warning("Failed to close Redis client: %s", exc)


__all__ = ["create_redis_client", "close_redis_client"]
