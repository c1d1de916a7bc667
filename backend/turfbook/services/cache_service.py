"""
Redis caching service for slot grids.

CACHING STRATEGY
================

What we cache:
  - Slot grid responses for one turf and one date (JSON-serialized)
  - Cache key pattern: "slots:grid:turf={turf_id}:date={date}:net={net}"

Why:
  - The owner dashboard polls the day's grid far more often than slots change

Invalidation strategy:
  - On any slot transition (reserve, release, book, block, cancel, ...):
    delete every key for that turf and date
  - On schedule generation or turf configuration change: delete every key
    for the turf
  - Short TTL as safety net

  Keys share the "slots:grid:turf={turf_id}:" prefix so we can SCAN and
  delete them.

Why the engine never reads the cache:
  Reserve/book/cancel decide on the locked database row. A stale cached
  grid can only mislead a display, never a transition.
"""

import json
from datetime import date
from typing import Optional

import redis.asyncio as redis
from turfbook.core.config import get_settings
from turfbook.core.logging import get_logger
from turfbook.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        try:
            _redis_client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
            await _redis_client.ping()
            logger.info("redis_connected", url=settings.REDIS_URL)
        except Exception as e:
            logger.error("redis_connection_failed", error=str(e))
            _redis_client = None
            return None

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.close()
        _redis_client = None


def _turf_prefix(turf_id: int) -> str:
    return f"slots:grid:turf={turf_id}:"


def _make_grid_key(turf_id: int, slot_date: date, net_number: Optional[int]) -> str:
    return f"{_turf_prefix(turf_id)}date={slot_date.isoformat()}:net={net_number or 'all'}"


async def get_cached_grid(turf_id: int, slot_date: date, net_number: Optional[int]) -> Optional[dict]:
    """Retrieve a cached slot grid response."""
    client = await get_redis()
    if not client:
        return None

    key = _make_grid_key(turf_id, slot_date, net_number)
    try:
        data = await client.get(key)
        record_cache_operation("get", hit=bool(data))
        if data:
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        logger.debug("cache_miss", key=key)
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_grid(
    turf_id: int,
    slot_date: date,
    net_number: Optional[int],
    data: dict,
) -> None:
    """Cache a slot grid response with TTL."""
    client = await get_redis()
    if not client:
        return

    key = _make_grid_key(turf_id, slot_date, net_number)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_grid_cache(turf_id: int, slot_date: Optional[date] = None) -> None:
    """
    Invalidate cached grids for one turf, or for one turf and date.
    Uses SCAN to find and delete all keys matching the prefix.
    """
    client = await get_redis()
    if not client:
        return

    pattern = _turf_prefix(turf_id) + (f"date={slot_date.isoformat()}:*" if slot_date else "*")
    try:
        deleted = 0
        async for key in client.scan_iter(match=pattern, count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", pattern=pattern, keys_deleted=deleted)
    except Exception as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }
    except Exception as e:
        return {"status": "error", "error": str(e)}
