"""Deep link router."""

from fastapi import APIRouter, Depends, Query

from trustscan.models.schemas import ResolveRequest, ResolveResponse
from trustscan.services.container import Services, get_services

router = APIRouter()


@router.post("/resolve", response_model=ResolveResponse)
async def resolve_link(request: ResolveRequest, services: Services = Depends(get_services)):
    """Resolve an incoming deep link or shared text to a route."""
    intent = services.resolver.resolve(request.raw)
    return ResolveResponse(intent=intent, app_path=intent.to_app_path())


@router.get("/result/{scan_id}")
async def result_links(scan_id: str, services: Services = Depends(get_services)):
    """App and web links for a result."""
    language = (await services.settings.get()).language
    return {
        "app_link": services.resolver.build_result_link(scan_id, language),
        "web_url": services.resolver.build_web_result_url(scan_id),
    }


@router.get("/scan")
async def scan_link(url: str = Query(..., min_length=1), services: Services = Depends(get_services)):
    """App link that opens a scan of ``url``."""
    language = (await services.settings.get()).language
    return {"app_link": services.resolver.build_scan_link(url, language)}
