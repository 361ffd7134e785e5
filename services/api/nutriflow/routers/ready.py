import logging

from fastapi import APIRouter
from redis.exceptions import RedisError

from nutriflow.infra.redis_client import get_redis

router = APIRouter()
logger = logging.getLogger("nutriflow.ready")


@router.get("/ready")
async def ready():
    redis_ok = False
    try:
        r = await get_redis()
        redis_ok = bool(await r.ping())
    except (RedisError, OSError) as e:
        logger.warning(f"Redis not reachable: {e}")
    return {"ok": True, "redis_ok": redis_ok}
