"""Health, readiness and liveness probes."""

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

router = APIRouter(prefix="/health")


@router.get("")
async def health_check(request: Request) -> JSONResponse:
    """Overall health including the cache backend."""
    redis_up = await request.app.state.cache.is_healthy()
    component = {"redis": {"status": "up" if redis_up else "down"}}

    if redis_up:
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={"status": "ok", "info": component, "error": {}, "details": component},
        )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "error", "info": {}, "error": component, "details": component},
    )


@router.get("/readiness")
async def readiness():
    return {"status": "ok"}


@router.get("/liveness")
async def liveness():
    return {"status": "ok"}
