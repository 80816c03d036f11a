"""
redis_client.py — Shared Redis connection and JSON cache for Thailand Tracker

Used by:
  - auth.py    (login rate limiter, per-user lookup rate limiter)
  - lookup.py  (AI lookup result cache)

Graceful degradation
--------------------
If REDIS_URL is not set, or the server is unreachable, get_redis() returns
None and every caller falls back to a per-process in-memory dict. Local
development and the test suite run without Redis.
"""

import json
import os
import logging
import time
from urllib.parse import urlparse, urlunparse

import redis

logger = logging.getLogger(__name__)

CACHE_TTL_SECONDS = int(os.getenv('CACHE_TTL_SECONDS', '3600'))

_redis_client = None          # module-level singleton
_redis_checked = False        # only attempt connection once per process

_cache: dict = {}             # key -> (expires_at, value); fallback only


def get_redis():
    """
    Return a connected Redis client, or None if Redis is unavailable.

    The connection is attempted once per process and reused.
    """
    global _redis_client, _redis_checked

    if _redis_checked:
        return _redis_client

    _redis_checked = True
    url = os.getenv('REDIS_URL', '').strip()

    if not url:
        logger.info("REDIS_URL not set — using in-memory cache and rate limiters")
        return None

    try:
        client = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=3,
            socket_timeout=3,
        )
        client.ping()
        logger.info("Redis connected: %s", _redact_url(url))
        _redis_client = client
    except redis.RedisError as exc:
        logger.warning("Redis unavailable (%s) — falling back to in-memory stores", exc)
        _redis_client = None

    return _redis_client


def reset() -> None:
    """Forget the connection and clear the in-memory cache."""
    global _redis_client, _redis_checked
    _redis_client = None
    _redis_checked = False
    _cache.clear()


def _redact_url(url: str) -> str:
    """Return the Redis URL with the password replaced by ***."""
    p = urlparse(url)
    if p.password:
        netloc = f"{p.username or ''}:***@{p.hostname}" + (f":{p.port}" if p.port else "")
        return urlunparse(p._replace(netloc=netloc))
    return url


# ---------------------------------------------------------------------------
# JSON cache (Redis + in-memory fallback)
# ---------------------------------------------------------------------------

def cache_get(key: str):
    r = get_redis()
    if r is not None:
        try:
            raw = r.get(f'cache:{key}')
            return json.loads(raw) if raw is not None else None
        except redis.RedisError as exc:
            logger.warning('Redis cache GET error: %s', exc)
            return None
    entry = _cache.get(key)
    if entry and time.time() < entry[0]:
        return entry[1]
    return None


def cache_set(key: str, value, ttl: int = CACHE_TTL_SECONDS) -> None:
    r = get_redis()
    if r is not None:
        try:
            r.setex(f'cache:{key}', ttl, json.dumps(value))
        except redis.RedisError as exc:
            logger.warning('Redis cache SET error: %s', exc)
        return
    _cache[key] = (time.time() + ttl, value)
