from fastapi import APIRouter, Depends, Query
from shortlink_app.config import settings
from shortlink_app.schemas.stats import LinkStats
from shortlink_app.services.analytics_service import AnalyticsService
from shortlink_app.dependencies import get_analytics_service

router = APIRouter(tags=["stats"])


@router.get("/stats/{slug}", response_model=LinkStats)
async def get_link_stats(
    slug: str,
    # Plain string so an unknown interval answers 400, not FastAPI's 422
    interval: str = Query(settings.default_interval, description="15m, 30m, 1h, 6h, 12h, 1d, 7d or 30d"),
    analytics_service: AnalyticsService = Depends(get_analytics_service)
):
    """Click totals, clicks over time, browser/device and referrer breakdowns"""
    return await analytics_service.get_stats(slug, interval)
