import redis

from ...application.ports.rate_limiter import RateLimiter


class RedisRateLimiter(RateLimiter):
    """Fixed window counter shared by every worker talking to the same Redis."""

    def __init__(self, url: str, prefix: str = "auth-rl:") -> None:
        self.client = redis.Redis.from_url(url)
        self.prefix = prefix

    def key_for(self, key: str, window_seconds: int) -> str:
        return f"{self.prefix}{key}:{window_seconds}"

    def allow(self, key: str, max_requests: int, window_seconds: int) -> bool:
        rk = self.key_for(key, window_seconds)
        # INCR then EXPIRE NX so the window starts at the first hit
        pipe = self.client.pipeline()
        pipe.incr(rk, 1)
        pipe.expire(rk, window_seconds, nx=True)
        count, _ = pipe.execute()
        return int(count) <= int(max_requests)
