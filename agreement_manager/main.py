import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import agreements, auth, backup, reports, whatsapp
from .config import Settings, get_settings
from .core.errors import register_exception_handlers
from .core.logging import configure_logging
from .core.request_context import RequestIdMiddleware
from .core.security import SecurityHeadersMiddleware, log_security_warnings
from .core.version import get_version_info
from .database import Database
from .services.whatsapp import WhatsAppClient

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    whatsapp_client: Optional[WhatsAppClient] = None,
) -> FastAPI:
    settings = settings or get_settings()
    database = database or Database(settings.database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database.create_all()
        log_security_warnings(settings)
        logger.info("Agreement Manager started (database=%s)", database.dialect_name)
        try:
            yield
        finally:
            database.dispose()

    app = FastAPI(title="Agreement Manager", version=get_version_info()["version"], lifespan=lifespan)
    app.state.settings = settings
    app.state.database = database
    app.state.whatsapp = whatsapp_client or WhatsAppClient(settings)

    app.add_middleware(SecurityHeadersMiddleware, enable_hsts=settings.enable_hsts)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIdMiddleware)
    register_exception_handlers(app)

    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(agreements.router, prefix="/api", tags=["agreements"])
    app.include_router(reports.router, prefix="/api", tags=["reports"])
    app.include_router(backup.router, prefix="/api", tags=["backup"])
    app.include_router(whatsapp.router, prefix="/api/whatsapp", tags=["whatsapp"])

    @app.get("/health", tags=["system"])
    def health() -> dict:
        return {"status": "ok", **get_version_info()}

    return app


def run() -> None:
    settings = get_settings()
    configure_logging(settings.log_level, json_logs=settings.log_json)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_config=None)
