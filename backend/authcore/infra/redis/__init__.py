from authcore.infra.redis.redis_rate_limiter import RedisRateLimiter

__all__ = ["RedisRateLimiter"]
