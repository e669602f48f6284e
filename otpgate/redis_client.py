import logging
from redis import asyncio as aioredis

log = logging.getLogger("otpgate.redis")


def make_redis(url: str) -> aioredis.Redis:
    return aioredis.from_url(url, encoding="utf-8", decode_responses=True)


async def redis_health(client: aioredis.Redis) -> bool:
    try:
        pong = await client.ping()
        return bool(pong)
    except Exception:
        log.warning("redis health check failed", exc_info=True)
        return False
