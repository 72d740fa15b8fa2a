"""
Cache Service Singleton - DJ Rank
djrank/services/cache.py

Provides a singleton Redis cache instance with TTL constants.
Gracefully handles Redis unavailability.
"""
import redis
from typing import Optional
from djrank.services.redis_cache import RedisCache
from djrank.config import settings

TTL_PERFORMERS = settings.CACHE_TTL_PERFORMERS

# Singleton instance
_cache: Optional[RedisCache] = None


def get_cache() -> Optional[RedisCache]:
    """
    Get or create Redis cache instance.

    Returns:
        RedisCache instance if Redis is available and caching is enabled,
        None otherwise.

    Note:
        Returns None if Redis is unavailable, allowing the application
        to continue functioning without caching (graceful degradation).
    """
    global _cache
    if not settings.CACHE_ENABLED:
        return None
    if _cache is None:
        try:
            _cache = RedisCache()
            _cache.client.ping()  # Test connection
        except (redis.RedisError, ConnectionError):
            _cache = None
    return _cache


def reset_cache() -> None:
    """
    Reset the cache singleton.

    Useful for testing or when Redis connection needs to be re-established.
    """
    global _cache
    _cache = None
