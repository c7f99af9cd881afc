"""Store review prompt router."""

from fastapi import APIRouter, Depends

from trustscan.services.container import Services, get_services
from trustscan.services.review_prompt import ReviewState

router = APIRouter()


@router.get("", response_model=ReviewState)
async def review_state(services: Services = Depends(get_services)):
    return await services.review.state()


@router.get("/due")
async def review_due(services: Services = Depends(get_services)):
    """Whether a review prompt may be shown now."""
    return {"due": await services.review.should_request_review()}


@router.post("/reviewed", response_model=ReviewState)
async def mark_reviewed(services: Services = Depends(get_services)):
    """Record that the user left a review. No further prompts follow."""
    return await services.review.mark_reviewed()
