"""
Redis cache for leaderboard pages and aggregate statistics.

Reads go through the cache; every accepted score submission invalidates the
cached pages and stats. When Redis is unavailable (or ``REDIS_URL`` is empty)
all operations degrade to no-ops.
"""
import json
import logging
import redis
from typing import Optional, Any
from memorymatch.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

SCORES_PAGE_PREFIX = "memorymatch:scores:page"
STATS_KEY = "memorymatch:stats"


def scores_page_key(category: Optional[str], difficulty: Optional[str], limit: Optional[int], page: Optional[int]) -> str:
    return f"{SCORES_PAGE_PREFIX}:{category or 'all'}:{difficulty or 'all'}:{limit}:{page}"


class CacheManager:
    """
    Redis cache manager with connection pooling and error handling.

    Features:
    - Automatic JSON serialization/deserialization
    - Graceful degradation when Redis is unavailable
    - Pattern-based cache invalidation
    """

    def __init__(self, redis_url: Optional[str] = None):
        """Initialize Redis client with connection pooling."""
        url = settings.redis_url if redis_url is None else redis_url
        self.redis_client = None
        if not url:
            logger.info("Redis cache disabled (no REDIS_URL configured)")
            return
        try:
            self.redis_client = redis.from_url(
                url,
                decode_responses=True,
                max_connections=50,
                socket_connect_timeout=2,
                socket_timeout=2,
                retry_on_timeout=True
            )
            self.redis_client.ping()
            logger.info(f"Redis cache initialized: {url}")
        except Exception as e:
            logger.error(f"Failed to initialize Redis cache: {str(e)}")
            self.redis_client = None

    def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache.

        Args:
            key: Cache key to retrieve

        Returns:
            Deserialized value if found, None otherwise
        """
        if not self.redis_client:
            return None

        try:
            value = self.redis_client.get(key)
            if value:
                return json.loads(value)
            return None
        except redis.RedisError as e:
            logger.warning(f"Cache get error for key '{key}': {str(e)}")
            return None
        except json.JSONDecodeError as e:
            logger.error(f"Cache deserialization error for key '{key}': {str(e)}")
            return None

    def set(self, key: str, value: Any, ttl: int) -> bool:
        """
        Set value in cache with TTL.

        Args:
            key: Cache key
            value: Value to cache (will be JSON serialized)
            ttl: Time to live in seconds

        Returns:
            True if successful, False otherwise
        """
        if not self.redis_client:
            return False

        try:
            serialized = json.dumps(value, default=str)  # Handle datetime objects
            return bool(self.redis_client.setex(key, ttl, serialized))
        except redis.RedisError as e:
            logger.warning(f"Cache set error for key '{key}': {str(e)}")
            return False
        except (TypeError, ValueError) as e:
            logger.error(f"Cache serialization error for key '{key}': {str(e)}")
            return False

    def delete(self, *keys: str) -> int:
        if not self.redis_client or not keys:
            return 0

        try:
            return self.redis_client.delete(*keys)
        except redis.RedisError as e:
            logger.warning(f"Cache delete error: {str(e)}")
            return 0

    def delete_pattern(self, pattern: str) -> int:
        """
        Delete all keys matching pattern.

        Args:
            pattern: Redis key pattern (e.g., "memorymatch:scores:page:*")

        Returns:
            Number of keys deleted
        """
        if not self.redis_client:
            return 0

        try:
            keys = list(self.redis_client.scan_iter(match=pattern, count=500))
            if keys:
                deleted = self.redis_client.delete(*keys)
                logger.debug(f"Deleted {deleted} keys matching pattern '{pattern}'")
                return deleted
            return 0
        except redis.RedisError as e:
            logger.warning(f"Cache delete_pattern error for '{pattern}': {str(e)}")
            return 0

    def invalidate_scores(self) -> None:
        """
        Drop cached leaderboard pages and stats.

        Called after a score is stored so readers see it immediately.
        """
        deleted = self.delete_pattern(f"{SCORES_PAGE_PREFIX}:*")
        deleted += self.delete(STATS_KEY)
        logger.debug(f"Invalidated score caches ({deleted} keys)")

    def ping(self) -> bool:
        """
        Check if Redis is available.

        Returns:
            True if Redis is reachable, False otherwise
        """
        if not self.redis_client:
            return False

        try:
            return bool(self.redis_client.ping())
        except redis.RedisError:
            return False


# Global cache instance
cache = CacheManager()
