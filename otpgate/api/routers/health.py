from fastapi import APIRouter, Request
from ...db import db_health
from ...redis_client import redis_health

router = APIRouter(prefix="/health", tags=["health"])


async def _checks(request: Request) -> dict:
    state = request.app.state
    checks = {}
    engine = getattr(state, "engine", None)
    if engine is not None:
        checks["database"] = await db_health(engine)
    redis = getattr(state, "redis", None)
    if redis is not None:
        checks["redis"] = await redis_health(redis)
    return checks


@router.get("")
async def health(request: Request):
    checks = await _checks(request)
    status = "ok" if all(checks.values()) else "degraded"
    return {"status": status, "dependencies": checks}


@router.get("/readiness")
async def readiness(request: Request):
    checks = await _checks(request)
    return {"ready": all(checks.values()), **checks}


@router.get("/liveness")
async def liveness():
    return {"alive": True}
