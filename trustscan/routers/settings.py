"""Settings router for user preferences and safe configuration values."""

import logging

from fastapi import APIRouter, Depends, Request

from trustscan.models.schemas import UserSettings, UserSettingsUpdate
from trustscan.services.container import Services, get_services

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("", response_model=UserSettings)
async def get_user_settings(services: Services = Depends(get_services)):
    """Return the current user preferences."""
    return await services.settings.get()


@router.patch("", response_model=UserSettings)
async def update_user_settings(
    update: UserSettingsUpdate,
    services: Services = Depends(get_services),
):
    """Change user preferences. Omitted fields keep their value.

    A new auto-delete policy is applied to the history immediately.
    """
    updated = await services.settings.update(**update.model_dump(exclude_none=True))
    if update.auto_delete is not None:
        await services.history.apply_retention(updated)
    logger.info(f"User settings updated: {sorted(update.model_dump(exclude_none=True))}")
    return updated


@router.get("/config")
async def get_config(request: Request):
    """Return safe (non-secret) configuration values."""
    settings = request.app.state.settings
    return {
        "storage": {"backend": settings.storage_backend},
        "sources": {
            "ai_engine": bool(settings.ai_engine_url),
            "scan_api_base_url": settings.scan_api_base_url,
            "backend_base_url": settings.backend_base_url,
            "timeout_seconds": settings.remote_timeout_seconds,
        },
        "media": {
            "uploads": str(settings.uploads_path),
            "max_size_mb": settings.max_media_size_mb,
        },
        "links": {
            "app_scheme": settings.app_scheme,
            "web_base_url": settings.web_base_url,
        },
        "api": {
            "debug": settings.api_debug,
            "log_level": settings.api_log_level,
        },
    }


@router.get("/device")
async def get_device_identity(services: Services = Depends(get_services)):
    """Return this installation's device identifier."""
    return {"device_id": await services.identity.get()}
