"""API route aggregation.

All routers registered here get mounted in main.py under /api.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter. This protects every route in each router
without modifying individual handlers. Health and auth routers are
open; permission checks beyond "signed in" happen per route through
require().
"""

from fastapi import APIRouter, Depends

from akcent.api.analytics import router as analytics_router
from akcent.api.announcements import router as announcements_router
from akcent.api.audit import router as audit_router
from akcent.api.auth import router as auth_router
from akcent.api.chat import router as chat_router
from akcent.api.collections import router as collections_router
from akcent.api.faq import router as faq_router
from akcent.api.favorites import router as favorites_router
from akcent.api.files import router as files_router
from akcent.api.forum import router as forum_router
from akcent.api.health import router as health_router
from akcent.api.invites import router as invites_router
from akcent.api.messages import router as messages_router
from akcent.api.tags import router as tags_router
from akcent.api.users import router as users_router
from akcent.api.webhooks import router as webhooks_router
from akcent.auth.dependencies import get_current_user

# All protected routers require a signed-in user
_auth = [Depends(get_current_user)]

api_router = APIRouter(prefix="/api")

# Open routes — no session required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])

# Protected routes
api_router.include_router(users_router, tags=["users", "profile"], dependencies=_auth)
api_router.include_router(invites_router, tags=["invite-codes"], dependencies=_auth)
api_router.include_router(files_router, tags=["files"], dependencies=_auth)
api_router.include_router(favorites_router, tags=["favorites"], dependencies=_auth)
api_router.include_router(faq_router, tags=["faq"], dependencies=_auth)
api_router.include_router(announcements_router, tags=["announcements", "notifications"], dependencies=_auth)
api_router.include_router(tags_router, tags=["tags"], dependencies=_auth)
api_router.include_router(collections_router, tags=["collections"], dependencies=_auth)
api_router.include_router(chat_router, tags=["chat"], dependencies=_auth)
api_router.include_router(forum_router, tags=["forum"], dependencies=_auth)
api_router.include_router(messages_router, tags=["messages"], dependencies=_auth)
api_router.include_router(audit_router, tags=["audit"], dependencies=_auth)
api_router.include_router(webhooks_router, tags=["webhooks"], dependencies=_auth)
api_router.include_router(analytics_router, tags=["analytics"], dependencies=_auth)
