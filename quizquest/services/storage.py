"""
Key-value storage for per-user client state (budget, spend, BYOK key).

Redis when reachable, otherwise an in-process dictionary.
"""
import json
from typing import Any, Optional

import redis
import structlog

from quizquest.config import REDIS_URL

logger = structlog.get_logger()


class KeyValueStore:
    def __init__(self, redis_url: Optional[str] = REDIS_URL):
        self.redis_client = None
        self._memory_store = {}
        if not redis_url:
            logger.info("kv_store_memory_only")
            return
        try:
            client = redis.from_url(redis_url, decode_responses=True)
            client.ping()
            self.redis_client = client
            logger.info("kv_store_redis_connected")
        except (redis.RedisError, ValueError) as e:
            logger.warning("kv_store_redis_unavailable", error=str(e))

    @property
    def backend(self) -> str:
        return "redis" if self.redis_client is not None else "memory"

    def get(self, key: str) -> Optional[Any]:
        """Get value, None when missing or unreadable"""
        if self.redis_client is None:
            return self._memory_store.get(key)
        try:
            value = self.redis_client.get(key)
            return json.loads(value) if value is not None else None
        except (redis.RedisError, ValueError) as e:
            logger.error("kv_store_get_failed", key=key, error=str(e))
            return None

    def set(self, key: str, value: Any) -> bool:
        """Store value without expiry"""
        if self.redis_client is None:
            self._memory_store[key] = value
            return True
        try:
            return bool(self.redis_client.set(key, json.dumps(value)))
        except redis.RedisError as e:
            logger.error("kv_store_set_failed", key=key, error=str(e))
            return False

    def delete(self, key: str) -> bool:
        if self.redis_client is None:
            return self._memory_store.pop(key, None) is not None
        try:
            return bool(self.redis_client.delete(key))
        except redis.RedisError as e:
            logger.error("kv_store_delete_failed", key=key, error=str(e))
            return False


# Global store instance
kv_store = KeyValueStore()
