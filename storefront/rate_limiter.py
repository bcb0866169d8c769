"""
Hybrid in-memory + Redis rate limiting for public storefront endpoints
(contact form, exam booking, recommendation quizzes)
"""

import logging
import os
import time
from threading import Lock
from typing import Optional

import redis
from fastapi import HTTPException, Request, status

from . import config

logger = logging.getLogger(__name__)

redis_client: Optional[redis.Redis] = None

# Format: {key: {'count': int, 'reset_time': int, 'last_redis_sync': int}}
memory_cache: dict[str, dict] = {}
cache_lock = Lock()

MEMORY_CACHE_SYNC_INTERVAL = 10  # seconds between Redis syncs per key
MEMORY_CACHE_CLEANUP_INTERVAL = 60
last_cleanup_time = 0


def get_redis_client() -> redis.Redis:
    """
    Get or create the shared Redis client.
    REDIS_URL wins over the individual REDIS_HOST/PORT/PASSWORD settings.
    """
    global redis_client

    if redis_client is None:
        logger.info("🔄 Initializing Redis connection...")
        redis_url = os.getenv("REDIS_URL")
        options = {
            "decode_responses": True,
            "socket_connect_timeout": 5,
            "socket_timeout": 5,
            "retry_on_timeout": True,
            "health_check_interval": 30,
        }

        try:
            if redis_url:
                client = redis.from_url(redis_url, **options)
            else:
                client = redis.Redis(
                    host=os.getenv("REDIS_HOST", "localhost"),
                    port=int(os.getenv("REDIS_PORT", "6379")),
                    password=os.getenv("REDIS_PASSWORD") or None,
                    db=int(os.getenv("REDIS_DB", "0")),
                    ssl=os.getenv("REDIS_SSL", "false").lower() == "true",
                    **options,
                )
            client.ping()
            redis_client = client
            logger.info("✅ Redis connected")
        except Exception as e:
            logger.error(f"❌ Failed to connect to Redis: {str(e)}")
            raise

    return redis_client


def get_client_ip(request: Request) -> str:
    """Resolve the caller IP behind proxies (Vercel, Cloudflare, nginx)"""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("X-Real-IP") or request.headers.get("CF-Connecting-IP")
    if real_ip:
        return real_ip
    return request.client.host if request.client else "unknown"


def cleanup_expired_cache():
    """Remove expired entries from memory cache"""
    global last_cleanup_time
    current_time = int(time.time())

    if current_time - last_cleanup_time < MEMORY_CACHE_CLEANUP_INTERVAL:
        return

    with cache_lock:
        expired_keys = [k for k, v in memory_cache.items() if current_time >= v["reset_time"]]
        for k in expired_keys:
            del memory_cache[k]

    last_cleanup_time = current_time


def _new_window(current_time: int, window_seconds: int, count: int = 0) -> dict:
    return {
        "count": count,
        "reset_time": current_time + window_seconds,
        "last_redis_sync": current_time,
    }


def check_rate_limit(
    key: str, limit: int, window_seconds: int, client: Optional[redis.Redis]
) -> tuple[bool, int, int]:
    """Count one request against ``key``.

    The in-memory window is authoritative for this process; Redis is only
    consulted when a key is first seen and written back every
    MEMORY_CACHE_SYNC_INTERVAL seconds so other workers see roughly the
    same count.

    Returns:
        Tuple of (is_allowed, current_count, ttl_seconds)
    """
    try:
        current_time = int(time.time())
        cleanup_expired_cache()

        with cache_lock:
            entry = memory_cache.get(key)
            if entry is None:
                entry = _new_window(current_time, window_seconds)
                if client is not None:
                    try:
                        redis_count = client.get(key)
                        redis_ttl = client.ttl(key)
                        if redis_count and redis_ttl > 0:
                            entry = {
                                "count": int(redis_count),
                                "reset_time": current_time + redis_ttl,
                                "last_redis_sync": current_time,
                            }
                    except Exception as e:
                        logger.warning(f"⚠️ Failed to load {key} from Redis, using memory only: {e}")
                memory_cache[key] = entry

            if current_time >= entry["reset_time"]:
                entry.update(_new_window(current_time, window_seconds))
                entry["last_redis_sync"] = 0

            is_allowed = entry["count"] < limit
            if is_allowed:
                entry["count"] += 1

            if client is not None and current_time - entry["last_redis_sync"] >= MEMORY_CACHE_SYNC_INTERVAL:
                try:
                    client.set(key, entry["count"], ex=window_seconds)
                    entry["last_redis_sync"] = current_time
                except Exception as e:
                    logger.warning(f"⚠️ Failed to sync {key} to Redis: {e}")

            ttl = max(0, entry["reset_time"] - current_time)
            return is_allowed, entry["count"], ttl

    except Exception as e:
        logger.error(f"❌ Rate limit check failed: {str(e)}")
        return False, limit, 0


async def rate_limit_dependency(
    request: Request,
    limit: int,
    window_seconds: int,
    key_prefix: str = "rate_limit",
    use_ip: bool = True,
):
    """Raise 429 once ``limit`` requests were seen in ``window_seconds``"""
    if not config.RATE_LIMIT_ENABLED:
        return

    try:
        try:
            client = get_redis_client()
        except Exception:
            # Memory-only counting still protects a single worker
            client = None

        key = f"{key_prefix}:{get_client_ip(request)}" if use_ip else f"{key_prefix}:global"
        is_allowed, current_count, ttl = check_rate_limit(key, limit, window_seconds, client)

        if not is_allowed:
            logger.warning(f"🚫 Rate limit EXCEEDED for {key} - {current_count}/{limit} requests used")
            raise HTTPException(
                status_code=429,
                detail="Too many requests. Please try again later.",
                headers={"Retry-After": str(ttl)},
            )

        request.state.rate_limit_remaining = limit - current_count
        request.state.rate_limit_reset = int(time.time()) + ttl

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Rate limiting error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Rate limiting service temporarily unavailable",
        ) from e


def create_rate_limiter(
    limit: int, window_seconds: int, key_prefix: str = "rate_limit", use_ip: bool = True
):
    """
    Create a rate limiter dependency with specific parameters

    Example usage:
        contact_rate_limit = create_rate_limiter(limit=5, window_seconds=900, key_prefix="contact")

        @router.post("/contact")
        async def submit_contact(body: ContactForm, _: None = Depends(contact_rate_limit)):
            ...
    """

    async def rate_limiter(request: Request):
        return await rate_limit_dependency(request, limit, window_seconds, key_prefix, use_ip)

    return rate_limiter
