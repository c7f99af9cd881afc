"""Scans router."""

import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile

from trustscan.models.schemas import (
    ReportCreate,
    ScanMediaRequest,
    ScanOrigin,
    ScanResponse,
    ScanResult,
    ScanUrlRequest,
)
from trustscan.services.container import Services, get_services
from trustscan.services.media import MediaAccessError
from trustscan.services.rate_limiter import RateLimitExceededError
from trustscan.services.report_service import ReportOutcome
from trustscan.services.scan_orchestrator import ScanFailedError, ScanInputError
from trustscan.services.storage import StorageConflictError

router = APIRouter()
logger = logging.getLogger(__name__)


def rate_limited(e: RateLimitExceededError) -> HTTPException:
    retry_after = max(1, -(-e.retry_after_ms // 1000))
    return HTTPException(
        status_code=429,
        detail=f"Rate limit reached for {e.kind}. Try again later.",
        headers={"Retry-After": str(retry_after)},
    )


async def _run_scan(services: Services, origin: ScanOrigin, advanced_scan: bool | None) -> ScanResponse:
    try:
        result = await services.orchestrator.scan(origin, advanced_scan)
    except ScanInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RateLimitExceededError as e:
        raise rate_limited(e)
    except (ScanFailedError, StorageConflictError) as e:
        logger.error(f"Scan failed: {e}")
        raise HTTPException(status_code=503, detail="Scan failed. Please try again.")

    return ScanResponse(
        result=result,
        request_review=await services.review.after_scan(result.badge),
        scans_remaining=await services.rate_limiter.remaining("scan"),
    )


@router.post("/url", response_model=ScanResponse)
async def scan_url(request: ScanUrlRequest, services: Services = Depends(get_services)):
    """Scan a link."""
    return await _run_scan(services, ScanOrigin(url=request.url.strip() or None), request.advanced_scan)


@router.post("/media", response_model=ScanResponse)
async def scan_media(request: ScanMediaRequest, services: Services = Depends(get_services)):
    """Scan a screenshot already stored in the uploads directory, or an inline data URI."""
    reference = request.media_reference.strip()
    if reference:
        try:
            await services.media.check(reference)
        except MediaAccessError as e:
            raise HTTPException(status_code=400, detail=str(e))
    origin = ScanOrigin(media_reference=reference or None)
    return await _run_scan(services, origin, request.advanced_scan)


@router.post("/upload", response_model=ScanResponse)
async def upload_and_scan(
    request: Request,
    file: UploadFile = File(...),
    advanced_scan: bool | None = Form(None),
    services: Services = Depends(get_services),
):
    """Upload a screenshot and scan it."""
    max_size = request.app.state.settings.max_media_size_mb
    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Empty upload.")
    if len(content) > max_size * 1024 * 1024:
        raise HTTPException(status_code=400, detail=f"File too large. Maximum size is {max_size}MB.")

    try:
        reference = await services.media.save(file.filename or "", content)
    except MediaAccessError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return await _run_scan(services, ScanOrigin(media_reference=reference), advanced_scan)


@router.get("/remaining")
async def scans_remaining(services: Services = Depends(get_services)):
    """Scans left in the current hourly window."""
    return {
        "remaining": await services.rate_limiter.remaining("scan"),
        "retry_after_ms": await services.rate_limiter.retry_after_ms("scan"),
    }


@router.get("/{scan_id}", response_model=ScanResult)
async def get_result(scan_id: str, services: Services = Depends(get_services)):
    """Get a result from the local cache or the backend."""
    result = await services.orchestrator.get_result(scan_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Scan result not found")
    return result


@router.get("/{scan_id}/share")
async def share_result(scan_id: str, services: Services = Depends(get_services)):
    """Share text and links for a result."""
    result = await services.orchestrator.get_result(scan_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Scan result not found")

    language = (await services.settings.get()).language
    resolver = services.resolver
    return {
        "message": resolver.build_share_message(result, language),
        "app_link": resolver.build_result_link(result.id, language),
        "web_url": resolver.build_web_result_url(result.id),
    }


@router.post("/{scan_id}/report", response_model=ReportOutcome)
async def report_scam(scan_id: str, report: ReportCreate, services: Services = Depends(get_services)):
    """Report a scanned link or screenshot as a scam."""
    try:
        return await services.reports.report_scam(scan_id, report.category, report.reason, report.notes)
    except RateLimitExceededError as e:
        raise rate_limited(e)
