import json
import redis
from redis.exceptions import RedisError

from chauffeur_booking.core.config import REDIS_URL
from chauffeur_booking.core.logging_config import get_logger

logger = get_logger()

_redis_client = None


def get_redis_client():
    global _redis_client

    if _redis_client is not None:
        return _redis_client

    if not REDIS_URL:
        return None

    try:
        client = redis.Redis.from_url(
            REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=5,
        )
        client.ping()
        logger.info("Redis connected")
        _redis_client = client
        return _redis_client
    except RedisError as e:
        logger.warning(f"Redis unavailable: {e}")
        return None


class TtlCache:
    """Namespaced JSON cache with a fixed TTL.

    A missing client turns every call into a no-op (cache miss), the same way
    the app behaves when Redis is down.
    """

    def __init__(self, client, namespace: str, ttl: int = 60):
        self.client = client
        self.namespace = namespace
        self.ttl = ttl

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    def get(self, key: str):
        if not self.client:
            return None
        try:
            data = self.client.get(self._key(key))
            return json.loads(data) if data else None
        except RedisError:
            return None

    def set(self, key: str, value, ttl: int | None = None):
        if not self.client:
            return
        try:
            self.client.setex(self._key(key), ttl or self.ttl, json.dumps(value))
        except RedisError:
            pass

    def delete(self, key: str):
        if not self.client:
            return
        try:
            self.client.delete(self._key(key))
        except RedisError:
            pass


_queue_connection = None


def get_queue_connection():
    """Raw-bytes connection for rq, which pickles job payloads."""
    global _queue_connection

    if _queue_connection is not None:
        return _queue_connection

    if not REDIS_URL:
        return None

    try:
        client = redis.Redis.from_url(REDIS_URL, socket_connect_timeout=2)
        client.ping()
        _queue_connection = client
        return _queue_connection
    except RedisError as e:
        logger.warning(f"Redis queue connection unavailable: {e}")
        return None
