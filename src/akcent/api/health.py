"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running, the
database answers, and reports Redis plus the number of push-channel
clients. Redis is optional, so only the database decides the status.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from akcent import __version__
from akcent.db.engine import get_db
from akcent.db.redis import get_redis

router = APIRouter()


@router.get("/health")
async def health_check(request: Request, db: AsyncSession = Depends(get_db)):
    """Check server health and dependency connectivity."""
    checks = {"server": "ok", "version": __version__}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except SQLAlchemyError as e:
        checks["database"] = f"error: {e}"

    redis = get_redis()
    if redis is None:
        checks["redis"] = "disabled"
    else:
        try:
            await redis.ping()
            checks["redis"] = "ok"
        except Exception as e:
            checks["redis"] = f"error: {e}"

    checks["realtime_clients"] = len(request.app.state.registry)
    status = "healthy" if checks["database"] == "ok" else "degraded"
    return {"status": status, **checks}
