from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import Settings, get_settings
from .core.database import Database
from .core.errors import ApiError
from .core.logging_config import configure_logging
from .routers import collars, health, ingest

logger = logging.getLogger(__name__)

CORE_ROUTERS = (
    health.router,
    ingest.router,
    collars.router,
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    database: Optional[Database] = app.state.database
    owned = database is None
    if database is None:
        database = Database.from_settings(app.state.settings)

    try:
        database.init_schema()
    except Exception:
        logger.exception("startup error: could not create tables")
        if owned:
            database.dispose()
        raise

    app.state.database = database
    try:
        yield
    finally:
        if owned:
            database.dispose()
            app.state.database = None
            logger.info("connection pool closed")


def _error(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"ok": False, "error": message}, headers=headers)


def _install_error_handlers(application: FastAPI) -> None:
    @application.exception_handler(ApiError)
    async def api_error(_request: Request, exc: ApiError) -> JSONResponse:
        return _error(exc.status_code, exc.message)

    @application.exception_handler(StarletteHTTPException)
    async def http_error(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error(exc.status_code, str(exc.detail), getattr(exc, "headers", None))

    @application.exception_handler(RequestValidationError)
    async def validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        message = errors[0].get("msg", "invalid request") if errors else "invalid request"
        return _error(400, f"invalid request: {message}")


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level.upper())

    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        docs_url=settings.docs_url,
        lifespan=lifespan,
    )
    application.state.settings = settings
    application.state.database = database

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    _install_error_handlers(application)

    for router in CORE_ROUTERS:
        application.include_router(router)

    return application


app = create_app()
