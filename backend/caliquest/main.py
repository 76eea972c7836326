"""
FastAPI application for the CaliQuest backend.

Builds the app, wires the API routers, the media mount for exercise videos,
and the single handler that renders every ``CaliquestError`` as JSON.
"""

from contextlib import asynccontextmanager
from typing import Any, Dict
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from caliquest.core.config import settings
from caliquest.core.database import (
    DatabaseManager,
    SessionLocal,
    check_database_connection,
    init_db,
    missing_tables
)
from caliquest.core.exceptions import CaliquestError, Unauthenticated
from caliquest.core.storage import ensure_media_root
from caliquest.routers import api_router


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    ensure_media_root()
    if settings.AUTO_CREATE_TABLES:
        DatabaseManager.create_all_tables()
        db = SessionLocal()
        try:
            init_db(db)
        finally:
            db.close()
    logger.info(f"{settings.PROJECT_NAME} {settings.VERSION} started")
    yield


async def caliquest_error_handler(request: Request, exc: CaliquestError) -> JSONResponse:
    """Render a domain error with its class status code."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: The configured application
    """
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description=settings.DESCRIPTION,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        lifespan=lifespan
    )

    if settings.BACKEND_CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[str(origin).rstrip("/") for origin in settings.BACKEND_CORS_ORIGINS],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(CaliquestError, caliquest_error_handler)

    app.include_router(api_router, prefix=settings.API_V1_STR)

    # Uploaded exercise videos
    app.mount(
        settings.MEDIA_URL,
        StaticFiles(directory=settings.MEDIA_ROOT, check_dir=False),
        name="media"
    )

    @app.get("/health", tags=["health"])
    async def health_check() -> Dict[str, Any]:
        """
        Report whether the database is reachable and provisioned.
        """
        if not check_database_connection():
            return JSONResponse(
                status_code=503,
                content={"status": "unavailable", "database": "unreachable"}
            )

        missing = missing_tables()
        if missing:
            return JSONResponse(
                status_code=503,
                content={
                    "status": "unavailable",
                    "database": "DATABASE_NOT_INITIALIZED",
                    "missing_tables": missing
                }
            )

        return {"status": "ok", "database": "ok"}

    return app


app = create_app()
