"""
Application factory.

``create_app`` wires exception handlers, middleware and routers around an
explicitly built ``Services`` container. Nothing here reads the environment;
``gradeflow.entrypoint`` does that once at startup.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import Settings
from .dependencies import describe_validation_error
from .errors import GradeflowError
from .middleware.request_logging import LoggingMiddleware
from .routes import ALL_ROUTERS
from .services import Services, build_services

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code, headers=headers)


async def handle_gradeflow_error(request: Request, exc: GradeflowError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return _error(exc.status_code, exc.message, headers)


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error(400, describe_validation_error(exc))


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # a path served only for other methods is reported as missing
    if exc.status_code == 405:
        return _error(404, "Not Found")
    return _error(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return _error(500, "Internal server error")


def create_app(services: Optional[Services] = None, settings: Optional[Settings] = None) -> FastAPI:
    if services is None:
        services = build_services(settings or Settings.from_env())
    settings = services.settings

    app = FastAPI(title="Gradeflow API", version=__version__)
    app.state.services = services

    app.add_exception_handler(GradeflowError, handle_gradeflow_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(Exception, handle_unexpected)

    app.add_middleware(LoggingMiddleware)
    # Added last so it runs first and preflight requests never reach auth.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "apikey", "x-client-info"],
        expose_headers=["Content-Length"],
        max_age=600,
    )

    for router in ALL_ROUTERS:
        app.include_router(router)

    return app
