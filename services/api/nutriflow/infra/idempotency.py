"""Idempotency-Key handling for write endpoints that must not run twice.

State per key lives in Redis:
- processing: short-lived lock taken with SET NX
- done: stored status + body, replayed for a retry with the same payload
"""

import hashlib
import json
import logging
from datetime import datetime, timezone
from typing import Optional, Union

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError

from nutriflow.infra.redis_client import get_redis

logger = logging.getLogger("nutriflow.idempotency")

DONE_TTL_SEC = 60 * 60 * 24
PROCESSING_TTL_SEC = 120


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def request_fingerprint(method: str, path: str, body: bytes) -> str:
    h = hashlib.sha256()
    for part in (method.encode("utf-8"), path.encode("utf-8"), body or b""):
        h.update(part)
        h.update(b"|")
    return h.hexdigest()


def idempotency_key(practitioner_id: str, route_key: str, idem_key: str) -> str:
    return f"nutriflow:idemp:{practitioner_id}:{route_key}:{idem_key}"


async def idempotency_precheck(
    request: Request, *, practitioner_id: str, route_key: str
) -> Union[tuple[str, str], JSONResponse]:
    """Return (redis_key, fingerprint) when the caller should run the request,
    or a JSONResponse replaying the stored result."""
    idem_key = request.headers.get("Idempotency-Key")
    if not idem_key:
        raise HTTPException(status_code=400, detail="Missing Idempotency-Key header")

    fingerprint = request_fingerprint(request.method, request.url.path, await request.body())
    rkey = idempotency_key(practitioner_id, route_key, idem_key)
    r = await get_redis()

    raw = await r.get(rkey)
    if raw:
        data = json.loads(raw)
        if data.get("fingerprint") != fingerprint:
            raise HTTPException(status_code=409, detail="Idempotency-Key reused with different request payload")
        if data.get("state") == "done":
            return JSONResponse(content=data.get("body"), status_code=int(data.get("status", 200)))
        raise HTTPException(status_code=409, detail="Request with this Idempotency-Key is still processing. Retry shortly.")

    lock = {"state": "processing", "fingerprint": fingerprint, "created_at": _iso_now()}
    if not await r.set(rkey, json.dumps(lock), ex=PROCESSING_TTL_SEC, nx=True):
        raise HTTPException(status_code=409, detail="Request with this Idempotency-Key is still processing. Retry shortly.")

    return rkey, fingerprint


async def idempotency_store_result(redis_key: str, fingerprint: str, *, status: int, body: dict) -> None:
    r = await get_redis()
    payload = {
        "state": "done",
        "status": int(status),
        "body": body,
        "fingerprint": fingerprint,
        "completed_at": _iso_now(),
    }
    await r.set(redis_key, json.dumps(payload), ex=DONE_TTL_SEC)


async def idempotency_clear_key(redis_key: str) -> None:
    """Release the processing lock after a failed request so it can be retried."""
    try:
        r = await get_redis()
        await r.delete(redis_key)
    except RedisError as e:
        logger.warning(f"Failed to clear idempotency key {redis_key}: {e}")
