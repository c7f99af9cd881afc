"""Health check router."""

from fastapi import APIRouter, Depends

from trustscan.services.container import Services, get_services

router = APIRouter()


@router.get("/health")
async def health_check(services: Services = Depends(get_services)):
    """Check API and storage health."""
    try:
        await services.kv.get("health_probe")
        storage_status = "healthy"
    except Exception as e:
        storage_status = f"unhealthy: {str(e)}"

    return {
        "status": "healthy" if storage_status == "healthy" else "degraded",
        "storage": storage_status,
        "version": "0.1.0",
    }


@router.get("/ready")
async def readiness_check():
    """Check if the API is ready to receive traffic."""
    return {"ready": True}


@router.get("/status")
async def connectivity_status(services: Services = Depends(get_services)):
    """Report whether the backend is reachable and which sources are enabled."""
    orchestrator = services.orchestrator
    return {
        "online": await services.connectivity.refresh(),
        "sources": {
            "ai_engine": orchestrator.engine.enabled,
            "scan_api": orchestrator.scan_api.enabled,
            "backend": orchestrator.backend.enabled,
        },
    }
