"""Local analytics endpoint."""

from fastapi import APIRouter, Depends

from solswap.api.deps import Services, get_services

router = APIRouter()


@router.get("/analytics/summary")
async def analytics_summary(services: Services = Depends(get_services)):
    """Volume totals, top pairs and the 7-day volume history."""
    summary = await services.analytics.summarize()
    return summary.to_dict()
