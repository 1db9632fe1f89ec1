from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse

from helpdesk.core.config import settings
from helpdesk.core.exceptions import HelpdeskException
from helpdesk.core.logging import setup_logging
from helpdesk.routers import admin, departments, notifications, tickets, users

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    setup_logging(settings.LOG_LEVEL)
    settings.validate_runtime_security()

    app = FastAPI(title=settings.APP_NAME)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=settings.allowed_hosts,
    )

    app.include_router(users.router, prefix="/api/users", tags=["users"])
    app.include_router(tickets.router, prefix="/api/tickets", tags=["tickets"])
    app.include_router(departments.router, prefix="/api/departments", tags=["departments"])
    app.include_router(departments.categories_router, prefix="/api/categories", tags=["categories"])
    app.include_router(admin.router, prefix="/api/admin", tags=["admin"])
    app.include_router(notifications.router, prefix="/api/notifications", tags=["notifications"])

    @app.exception_handler(HelpdeskException)
    async def handle_helpdesk_exception(request: Request, exc: HelpdeskException) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        headers = exc.headers if getattr(exc, "headers", None) else None
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)

    @app.get("/health", tags=["health"])
    def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
