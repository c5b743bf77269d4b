"""Analytics API — download counts for the staff dashboard."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from akcent.auth.dependencies import require
from akcent.db.engine import get_db
from akcent.db.models import User
from akcent.schemas.analytics import DailyDownloads, FileDownloadStats, UserDownloadStats
from akcent.services.analytics_service import AnalyticsService

router = APIRouter(prefix="/admin/analytics")


@router.get("/downloads", response_model=list[DailyDownloads])
async def downloads_per_day(
    days: int = Query(30, ge=1, le=365),
    _: User = Depends(require("analytics.read")),
    db: AsyncSession = Depends(get_db),
):
    return await AnalyticsService(db).downloads_per_day(days)


@router.get("/files", response_model=list[FileDownloadStats])
async def top_files(
    limit: int = Query(20, ge=1, le=100),
    _: User = Depends(require("analytics.read")),
    db: AsyncSession = Depends(get_db),
):
    return await AnalyticsService(db).top_files(limit)


@router.get("/users", response_model=list[UserDownloadStats])
async def top_users(
    limit: int = Query(20, ge=1, le=100),
    _: User = Depends(require("analytics.read")),
    db: AsyncSession = Depends(get_db),
):
    return await AnalyticsService(db).top_users(limit)
