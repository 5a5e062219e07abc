"""
Key-value cache backed by Redis, with an in-process fallback
"""
import json
import time
import redis
from typing import Optional, Any
import structlog

from grevocab import config

logger = structlog.get_logger()


class CacheService:
    def __init__(self, redis_url: str = config.REDIS_URL):
        self._memory_cache = {}
        try:
            self.redis_client = redis.from_url(redis_url, decode_responses=True, socket_connect_timeout=2)
            # Test connection
            self.redis_client.ping()
            logger.info("cache_connected", backend="redis")
        except Exception as e:
            logger.warning("cache_unavailable_using_memory", error=str(e))
            self.redis_client = None

    def _memory_get(self, key: str) -> Optional[Any]:
        item = self._memory_cache.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at is not None and expires_at <= time.time():
            del self._memory_cache[key]
            return None
        return value

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache"""
        try:
            if self.redis_client:
                value = self.redis_client.get(key)
                return json.loads(value) if value else None
            return self._memory_get(key)
        except Exception as e:
            logger.error("cache_get_failed", key=key, error=str(e))
            return None

    def set(self, key: str, value: Any, expire: Optional[int] = 3600) -> bool:
        """Set value in cache; expire=None keeps the key until deleted"""
        try:
            if self.redis_client:
                if expire is None:
                    return bool(self.redis_client.set(key, json.dumps(value)))
                return bool(self.redis_client.setex(key, expire, json.dumps(value)))
            expires_at = time.time() + expire if expire is not None else None
            self._memory_cache[key] = (value, expires_at)
            return True
        except Exception as e:
            logger.error("cache_set_failed", key=key, error=str(e))
            return False

    def exists(self, key: str) -> bool:
        """Check whether a live key is present"""
        try:
            if self.redis_client:
                return bool(self.redis_client.exists(key))
            return self._memory_get(key) is not None
        except Exception as e:
            logger.error("cache_exists_failed", key=key, error=str(e))
            return False

    def delete(self, key: str) -> bool:
        """Delete value from cache"""
        try:
            if self.redis_client:
                return bool(self.redis_client.delete(key))
            return self._memory_cache.pop(key, None) is not None
        except Exception as e:
            logger.error("cache_delete_failed", key=key, error=str(e))
            return False

    def clear_pattern(self, pattern: str) -> int:
        """Clear all keys matching pattern"""
        try:
            if self.redis_client:
                keys = self.redis_client.keys(pattern)
                return self.redis_client.delete(*keys) if keys else 0
            # Prefix matching is enough for the patterns we use ("prefix:*")
            prefix = pattern.rstrip("*")
            keys_to_delete = [k for k in self._memory_cache if k.startswith(prefix)]
            for key in keys_to_delete:
                del self._memory_cache[key]
            return len(keys_to_delete)
        except Exception as e:
            logger.error("cache_clear_pattern_failed", pattern=pattern, error=str(e))
            return 0


# Global cache instance
cache = CacheService()
