"""Pydantic schemas for download analytics."""

import datetime as dt
import uuid
from typing import Optional

from akcent.schemas.base import CamelModel


class DailyDownloads(CamelModel):
    date: dt.date
    count: int


class FileDownloadStats(CamelModel):
    file_id: uuid.UUID
    file_name: str
    download_count: int


class UserDownloadStats(CamelModel):
    user_id: uuid.UUID
    username: str
    download_count: int
    last_active: Optional[dt.datetime] = None
