"""Health Check Controller.

/health: 프로세스 생존 (Liveness)
/ready: Job Queue Redis 응답 여부 (Readiness). Redis가 없으면 적재가 불가능하므로 503.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from insect.setup.dependencies import QueuePingDep, SettingsDep

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(settings: SettingsDep) -> dict:
    return {
        "status": "ok",
        "service": settings.service_name,
        "version": settings.service_version,
    }


@router.get("/ready")
async def ready(ping: QueuePingDep) -> JSONResponse:
    if await ping():
        return JSONResponse({"status": "ready", "queue": "ok"})
    return JSONResponse({"status": "not_ready", "queue": "unavailable"}, status_code=503)
