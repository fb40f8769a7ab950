"""
cache.py: Redis caching layer for city-tax records.

Namespace conventions:
  city_tax:{city}   → CityTaxRecord JSON   TTL settings.city_tax_cache_ttl

Design:
  - Uses redis.asyncio (async client, part of redis-py 5.x)
  - Pool created once in lifespan, stored on app.state.redis
  - Helper functions take the client as a param: no module-level global state
  - City is NOT normalized: lookups are case-sensitive, so keys are too
  - Only hits are cached; a miss always re-reads PostgreSQL
"""
import json
import logging
from typing import Optional

import redis.asyncio as aioredis

from payroll.config import settings
from payroll.salary.schemas import CityTaxRecord

logger = logging.getLogger(__name__)

CITY_TAX_PREFIX = "city_tax"


def make_city_tax_key(city: str) -> str:
    """Build Redis key for a city-tax record: city_tax:{city}"""
    return f"{CITY_TAX_PREFIX}:{city}"


# ---------------------------------------------------------------------------
# Pool factory: called once in lifespan
# ---------------------------------------------------------------------------

async def create_redis_pool() -> aioredis.Redis:
    """
    Create and return an async Redis connection pool.
    Verifies connectivity with PING before returning.
    """
    client = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
    )
    await client.ping()
    logger.info("Redis connection pool established at %s", settings.redis_url)
    return client


# ---------------------------------------------------------------------------
# City-tax helpers
# ---------------------------------------------------------------------------

async def get_cached_city_tax(
    client: aioredis.Redis, city: str
) -> Optional[CityTaxRecord]:
    """
    Return the cached record, or None on a miss.

    An undecodable or schema-invalid payload counts as a miss; the key is
    dropped so the next read repopulates it from PostgreSQL.
    """
    key = make_city_tax_key(city)
    raw = await client.get(key)
    if raw is None:
        return None
    try:
        # JSONDecodeError and pydantic.ValidationError are both ValueErrors
        record = CityTaxRecord.model_validate(json.loads(raw))
    except ValueError:
        logger.warning("Discarding corrupt city tax cache entry city=%s", city)
        await client.delete(key)
        return None
    logger.debug("City tax cache hit city=%s", city)
    return record


async def set_cached_city_tax(
    client: aioredis.Redis, record: CityTaxRecord
) -> None:
    """Store a record with TTL; overwrites and resets TTL."""
    key = make_city_tax_key(record.city)
    payload = record.model_dump(exclude={"is_metro"})
    await client.setex(key, settings.city_tax_cache_ttl, json.dumps(payload))
    logger.debug("City tax cached city=%s ttl=%ds", record.city, settings.city_tax_cache_ttl)


async def invalidate_city_tax(client: aioredis.Redis, city: str) -> None:
    """Drop the cached record after an admin write."""
    await client.delete(make_city_tax_key(city))
    logger.info("City tax cache invalidated city=%s", city)
