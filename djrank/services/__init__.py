"""
Services module for DJ Rank.

Gateway, placement and drag-drop modules import the repositories, so they
are imported from their own modules rather than re-exported here.
"""

from djrank.services.cache import get_cache, reset_cache
from djrank.services.redis_cache import RedisCache
from djrank.services.snowflake import get_snowflake_connection

__all__ = [
    "get_cache",
    "reset_cache",
    "RedisCache",
    "get_snowflake_connection",
]
