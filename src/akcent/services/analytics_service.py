"""Analytics service — download counts per day, per file and per user.

Learn: Daily buckets are computed in Python rather than with a
date_trunc/strftime expression so the same code runs on PostgreSQL and
SQLite. Days with no downloads are filled with zero so charts get an
unbroken series.
"""

from collections import Counter
from datetime import timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from akcent.db.models import DownloadFile, DownloadHistory, User, utcnow


class AnalyticsService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def downloads_per_day(self, days: int = 30) -> list[dict]:
        today = utcnow().date()
        first_day = today - timedelta(days=days - 1)
        since = utcnow() - timedelta(days=days)
        result = await self.db.execute(
            select(DownloadHistory.downloaded_at).where(DownloadHistory.downloaded_at >= since)
        )
        per_day = Counter(ts.date() for ts in result.scalars().all())
        return [
            {"date": first_day + timedelta(days=i), "count": per_day.get(first_day + timedelta(days=i), 0)}
            for i in range(days)
        ]

    async def top_files(self, limit: int = 20) -> list[dict]:
        count = func.count(DownloadHistory.id)
        result = await self.db.execute(
            select(DownloadFile.id, DownloadFile.name, count.label("n"))
            .join(DownloadHistory, DownloadHistory.file_id == DownloadFile.id)
            .group_by(DownloadFile.id, DownloadFile.name)
            .order_by(count.desc())
            .limit(limit)
        )
        return [
            {"file_id": row[0], "file_name": row[1], "download_count": row[2]}
            for row in result.all()
        ]

    async def top_users(self, limit: int = 20) -> list[dict]:
        count = func.count(DownloadHistory.id)
        result = await self.db.execute(
            select(User.id, User.username, count.label("n"), func.max(DownloadHistory.downloaded_at))
            .join(DownloadHistory, DownloadHistory.user_id == User.id)
            .group_by(User.id, User.username)
            .order_by(count.desc())
            .limit(limit)
        )
        return [
            {
                "user_id": row[0],
                "username": row[1],
                "download_count": row[2],
                "last_active": row[3],
            }
            for row in result.all()
        ]
