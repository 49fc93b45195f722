import redis.asyncio as aioredis

from tradewatch.config import settings


def get_redis() -> aioredis.Redis:
    """New client bound to the running event loop (Celery tasks run one loop per call)."""
    return aioredis.from_url(settings.redis_url, decode_responses=True)
