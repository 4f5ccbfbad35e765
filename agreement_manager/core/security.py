import logging
from typing import Dict, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from ..config import Settings

logger = logging.getLogger(__name__)

DEFAULT_JWT_SECRET = "dev-secret-please-change"
HSTS_VALUE = "max-age=31536000; includeSubDomains"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Hardening headers for every response; API payloads (contacts, password hashes in backups) are never cached."""

    def __init__(self, app, *, enable_hsts: bool = True, csp: Optional[str] = None) -> None:
        super().__init__(app)
        self.enable_hsts = enable_hsts
        self.static_headers: Dict[str, str] = {
            "X-Content-Type-Options": "nosniff",
            "X-Frame-Options": "DENY",
            "Referrer-Policy": "no-referrer",
        }
        if csp:
            self.static_headers["Content-Security-Policy"] = csp

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        response = await call_next(request)
        for name, value in self.static_headers.items():
            response.headers.setdefault(name, value)
        if request.url.path.startswith("/api/"):
            response.headers.setdefault("Cache-Control", "no-store")
        if self.enable_hsts and request.url.scheme == "https":
            response.headers.setdefault("Strict-Transport-Security", HSTS_VALUE)
        return response


def log_security_warnings(settings: Settings) -> None:
    """Startup warnings for configuration that is fine in development but not in production."""
    if settings.jwt_secret == DEFAULT_JWT_SECRET:
        logger.warning("JWT secret is using the insecure default; set JWT_SECRET in the environment.")
    if "*" in settings.cors_origins:
        logger.warning("CORS allows any origin while credentials are enabled.")
    if not settings.twilio_is_configured:
        logger.warning("Twilio WhatsApp credentials are missing; reminder dispatch will fail.")
    elif not settings.twilio_content_sid:
        logger.warning("TWILIO_CONTENT_SID is not set; reminders will be sent as free-form text.")
