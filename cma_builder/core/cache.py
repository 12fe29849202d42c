from cachetools import TTLCache
from .config import settings

# In-process fallback for local dev; counters live for one rate-limit window.
_local_counters = TTLCache(maxsize=4096, ttl=60)

try:
    import redis  # Optional dependency
except ImportError:
    redis = None

class CounterStore:
    """
    Expiring counters over Redis/in-memory so swapping is one flag away.
    Backs the per-minute rate limiter; upstream responses are never stored here.
    """
    def __init__(self):
        self.backend = None
        if settings.USE_REDIS and redis is not None:
            self.backend = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)

    def incr(self, key: str, ttl_seconds: int = 60) -> int:
        """Increment `key` and return the new value; the key expires after ttl."""
        if self.backend:
            # INCR + EXPIRE in one round trip
            pipe = self.backend.pipeline()
            pipe.incr(key)
            pipe.expire(key, ttl_seconds)
            count, _ = pipe.execute()
            return int(count)
        count = _local_counters.get(key, 0) + 1
        _local_counters[key] = count
        return count

    def reset(self) -> None:
        if self.backend:
            return
        _local_counters.clear()

counters = CounterStore()
