"""
Redis caching utility for AI match results.
Replies from the language model are cached by a hash of the prompt payload.
"""
import os
import json
import hashlib
import logging
from typing import Any, Optional, List
import redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

# Configuration from environment
REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')
CACHE_ENABLED = os.getenv('CACHE_ENABLED', 'true').lower() == 'true'
CACHE_TTL_SECONDS = int(os.getenv('CACHE_TTL_SECONDS', '3600'))


class RedisCache:
    """
    Redis cache client with automatic fallback.
    When Redis is disabled or unreachable every read misses and every write is a no-op.
    """

    def __init__(self, url: str = REDIS_URL, enabled: bool = CACHE_ENABLED):
        self.enabled = enabled
        self._client: Optional[redis.Redis] = None
        self._url = url
        self._connected = False

        if self.enabled:
            self._connect()

    def _connect(self) -> bool:
        """Establish Redis connection with proper error handling."""
        if self._connected and self._client:
            return True

        try:
            redis_kwargs = {
                "decode_responses": False,
                "socket_timeout": 5,
                "socket_connect_timeout": 5,
                "retry_on_timeout": True
            }
            if self._url.startswith("rediss://"):
                redis_kwargs["ssl_cert_reqs"] = "none"

            self._client = redis.from_url(self._url, **redis_kwargs)
            self._client.ping()
            self._connected = True
            logger.info("Redis cache connected successfully")
            return True
        except RedisError as e:
            logger.warning(f"Redis connection failed, caching disabled: {e}")
            self._connected = False
            return False

    @property
    def available(self) -> bool:
        return self.enabled and self._connected

    @staticmethod
    def generate_key(prefix: str, data: str) -> str:
        """Generate a cache key using SHA256 hash."""
        hash_value = hashlib.sha256(data.encode('utf-8')).hexdigest()[:32]
        return f"{prefix}:{hash_value}"

    def get(self, key: str) -> Optional[Any]:
        """
        Get a value from cache.
        Returns None if key not found or cache is disabled/unavailable.
        """
        if not self.available:
            return None

        try:
            value = self._client.get(key)
            if value is None:
                return None
            return json.loads(value.decode('utf-8'))
        except (RedisError, json.JSONDecodeError) as e:
            logger.warning(f"Cache get error for key {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: int = CACHE_TTL_SECONDS) -> bool:
        """
        Set a value in cache with TTL.
        Returns True if successful, False otherwise.
        """
        if not self.available:
            return False

        try:
            serialized = json.dumps(value).encode('utf-8')
            self._client.setex(key, ttl, serialized)
            return True
        except (RedisError, TypeError) as e:
            logger.warning(f"Cache set error for key {key}: {e}")
            return False

    def delete(self, key: str) -> bool:
        """Delete a key from cache."""
        if not self.available:
            return False

        try:
            self._client.delete(key)
            return True
        except RedisError as e:
            logger.warning(f"Cache delete error for key {key}: {e}")
            return False

    def get_ai_scores(self, payload: str) -> Optional[List[dict]]:
        """Cached model reply for an AI-matching payload."""
        return self.get(self.generate_key("aimatch", payload))

    def set_ai_scores(self, payload: str, scores: List[dict], ttl: int = CACHE_TTL_SECONDS) -> bool:
        return self.set(self.generate_key("aimatch", payload), scores, ttl)

    def get_stats(self) -> dict:
        """Get cache statistics."""
        if not self.enabled:
            return {"enabled": False}

        if not self._connected:
            return {"enabled": True, "connected": False}

        try:
            return {
                "enabled": True,
                "connected": True,
                "keys": self._client.dbsize()
            }
        except RedisError as e:
            return {"enabled": True, "connected": False, "error": str(e)}


_cache: Optional[RedisCache] = None


def get_cache() -> RedisCache:
    """Get or create the shared cache instance."""
    global _cache
    if _cache is None:
        _cache = RedisCache()
    return _cache
