"""Redis store for short-lived catalog caches.

Handles:
- Caching with TTL policies
- Invalidation after catalog writes

TTL policies:
- Tag facet table: 60 seconds
- Top stores leaderboard: 60 seconds

Every write path invalidates the keys it affects, so the TTL only bounds
staleness from writers that bypass the services.
"""

import json
import logging
from typing import Any

import redis.asyncio as redis
from redis.exceptions import RedisError

from storedir.settings import get_settings

# TTL constants (in seconds)
TTL_TAG_FACETS = 60
TTL_TOP_STORES = 60

# Keys
KEY_TAG_FACETS = "catalog:tags"
KEY_TOP_STORES = "catalog:top"

# Redis client (initialized on startup)
_redis: redis.Redis | None = None
logger = logging.getLogger("uvicorn.error")


async def init_redis() -> None:
    """Initialize Redis connection."""
    global _redis
    settings = get_settings()
    _redis = redis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
    )
    await _redis.ping()
    logger.info("Redis connected")


async def close_redis() -> None:
    """Close Redis connection."""
    global _redis
    if _redis:
        await _redis.aclose()
        _redis = None


def _get_redis() -> redis.Redis:
    """Get Redis client instance."""
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis


# ============================================================
# Generic cache operations
# ============================================================


async def cache_get(key: str) -> str | None:
    """Get value from cache.

    Args:
        key: Cache key.

    Returns:
        Cached value or None if not found.
    """
    return await _get_redis().get(key)


async def cache_set(key: str, value: str, ttl: int) -> None:
    """Set value in cache with TTL.

    Args:
        key: Cache key.
        value: Value to cache.
        ttl: Time-to-live in seconds.
    """
    await _get_redis().setex(key, ttl, value)


async def cache_delete(*keys: str) -> None:
    """Delete values from cache."""
    await _get_redis().delete(*keys)


async def cache_get_json(key: str) -> Any | None:
    """Get JSON value from cache.

    Returns:
        Parsed JSON or None if not found.
    """
    value = await cache_get(key)
    if value:
        return json.loads(value)
    return None


async def cache_set_json(key: str, value: Any, ttl: int) -> None:
    """Set JSON value in cache."""
    await cache_set(key, json.dumps(value), ttl)


# ============================================================
# Catalog caches
# ============================================================


async def get_tag_facets_cache() -> list[dict[str, Any]] | None:
    """Get cached tag facet table."""
    return await cache_get_json(KEY_TAG_FACETS)


async def set_tag_facets_cache(facets: list[dict[str, Any]]) -> None:
    """Cache the tag facet table."""
    await cache_set_json(KEY_TAG_FACETS, facets, TTL_TAG_FACETS)


async def get_top_stores_cache() -> list[dict[str, Any]] | None:
    """Get cached top stores leaderboard."""
    return await cache_get_json(KEY_TOP_STORES)


async def set_top_stores_cache(stores: list[dict[str, Any]]) -> None:
    """Cache the top stores leaderboard."""
    await cache_set_json(KEY_TOP_STORES, stores, TTL_TOP_STORES)


async def invalidate_catalog_cache() -> None:
    """Drop every cached catalog view.

    Safe to call without Redis (local minimal env, tests): the call is skipped.
    """
    try:
        await cache_delete(KEY_TAG_FACETS, KEY_TOP_STORES)
    except RuntimeError:
        return
    except RedisError as e:
        logger.warning(f"Catalog cache invalidation failed: {e}")
