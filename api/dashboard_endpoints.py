"""
Dashboard Endpoints.

- `GET /dashboard/stats/{channel_id}`: Subscriber, video, view and like totals.
- `GET /dashboard/videos/{channel_id}`: The channel's videos; the owner may
  include unpublished ones with `isPublished`.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import ListQuery, get_current_user, get_dashboard_service
from core.logging_config import get_logger
from core.models import User
from core.response import ok
from services.dashboard_service import DashboardService

logger = get_logger(__name__)
router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/stats/{channel_id}")
async def get_channel_stats(
    channel_id: str,
    current_user: User = Depends(get_current_user),
    dashboard: DashboardService = Depends(get_dashboard_service),
):
    stats = await dashboard.channel_stats(channel_id)
    return ok(stats, "Channel stats fetched successfully.")


@router.get("/videos/{channel_id}")
async def get_channel_videos(
    channel_id: str,
    is_published: Optional[str] = Query(None, alias="isPublished"),
    options: ListQuery = Depends(),
    current_user: User = Depends(get_current_user),
    dashboard: DashboardService = Depends(get_dashboard_service),
):
    result = await dashboard.channel_videos(
        current_user,
        channel_id,
        is_published=is_published,
        page=options.page,
        page_size=options.page_size,
        sort_by=options.sort_by,
        sort_type=options.sort_type,
    )
    return ok(result, "Channel videos fetched successfully.")
