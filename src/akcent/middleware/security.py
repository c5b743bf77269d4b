"""Security headers middleware.

Learn: Adds standard security headers to every response.
- X-Content-Type-Options: downloads must never be sniffed into HTML
- X-Frame-Options: the dashboard is never framed
- Referrer-Policy: limits referrer info leakage
- Cache-Control: API responses carry per-user data, never cache them
- Strict-Transport-Security: forces HTTPS (only on HTTPS connections)
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response: Response = await call_next(request)
        headers = response.headers
        headers["X-Content-Type-Options"] = "nosniff"
        headers["X-Frame-Options"] = "DENY"
        headers["Referrer-Policy"] = "same-origin"
        if request.url.path.startswith("/api/"):
            headers.setdefault("Cache-Control", "no-store")
        if request.url.scheme == "https":
            headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response
