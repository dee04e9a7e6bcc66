"""
Redis caching utilities.
Every operation fails open: with Redis down, reads miss and writes are dropped.
"""

import json
import logging
from typing import Any, Optional

from .rate_limiter import get_redis_client

logger = logging.getLogger(__name__)

WEBHOOK_IDEMPOTENCY_TTL = 86400  # 24 hours
SUBSCRIPTION_ACCESS_TTL = 300  # 5 minutes


class Cache:
    """Redis cache wrapper with automatic serialization"""

    def __init__(self):
        self.redis_client = None

    def _get_client(self):
        """Lazy load Redis client"""
        if self.redis_client is None:
            try:
                self.redis_client = get_redis_client()
            except Exception as e:
                logger.warning(f"⚠️ Redis cache unavailable: {e}")
                return None
        return self.redis_client

    def get(self, key: str) -> Optional[Any]:
        client = self._get_client()
        if not client:
            return None

        try:
            value = client.get(key)
            if value:
                logger.debug(f"✅ Cache HIT: {key}")
                return json.loads(value)
            logger.debug(f"❌ Cache MISS: {key}")
            return None
        except Exception as e:
            logger.error(f"❌ Cache get error for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        """Set value in cache with TTL (default 1 hour)"""
        client = self._get_client()
        if not client:
            return False

        try:
            client.setex(key, ttl, json.dumps(value))
            logger.debug(f"✅ Cache SET: {key} (TTL: {ttl}s)")
            return True
        except Exception as e:
            logger.error(f"❌ Cache set error for {key}: {e}")
            return False

    def delete(self, key: str) -> bool:
        client = self._get_client()
        if not client:
            return False

        try:
            client.delete(key)
            logger.debug(f"✅ Cache DELETE: {key}")
            return True
        except Exception as e:
            logger.error(f"❌ Cache delete error for {key}: {e}")
            return False


# Global cache instance
cache = Cache()


def subscription_access_key(clinic_id: str) -> str:
    return f"subscription_access:{clinic_id}"


def get_subscription_access_cached(clinic_id: str) -> Optional[dict]:
    """Snapshot of {status, plan, trial_ends_at} used by access checks"""
    return cache.get(subscription_access_key(clinic_id))


def set_subscription_access_cached(clinic_id: str, snapshot: dict) -> bool:
    return cache.set(subscription_access_key(clinic_id), snapshot, SUBSCRIPTION_ACCESS_TTL)


def invalidate_subscription_access_cache(clinic_id: str) -> bool:
    """Call on every subscription change"""
    return cache.delete(subscription_access_key(clinic_id))


def webhook_already_processed(webhook_id: str) -> bool:
    return bool(cache.get(f"webhook_processed:{webhook_id}"))


def mark_webhook_processed(webhook_id: str) -> bool:
    return cache.set(f"webhook_processed:{webhook_id}", True, ttl=WEBHOOK_IDEMPOTENCY_TTL)
