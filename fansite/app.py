"""
FastAPI application entry point for the fansite backend.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from fansite.config import get_settings
from fansite.db import ConstraintViolation, StorageError
from fansite.dependencies import ActiveBackend, select_backend
from fansite.routes import router

logger = logging.getLogger(__name__)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={
            "detail": "Invalid request data",
            "errors": jsonable_encoder(exc.errors()),
        },
    )


async def constraint_violation_handler(request: Request, exc: ConstraintViolation):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


async def storage_error_handler(request: Request, exc: StorageError):
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": "Storage backend failure"})


def create_app(backend: Optional[ActiveBackend] = None) -> FastAPI:
    """
    Build the app. When no backend is passed, one is selected from the
    environment.
    """
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(title="Fansite Backend (FastAPI)", version="0.1.0")
    app.state.backend = backend or select_backend(settings)
    app.include_router(router, prefix=settings.api_prefix)

    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(ConstraintViolation, constraint_violation_handler)
    app.add_exception_handler(StorageError, storage_error_handler)

    @app.middleware("http")
    async def log_api_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        if request.url.path.startswith(settings.api_prefix):
            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.info(
                "%s %s %s in %dms",
                request.method,
                request.url.path,
                response.status_code,
                elapsed_ms,
            )
        return response

    return app


app = create_app()
