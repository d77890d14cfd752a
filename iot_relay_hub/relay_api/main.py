from __future__ import annotations

import logging
import time
import traceback
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..common.config import Settings, get_settings
from ..common.db import dispose_engine
from .endpoints import actuator, events, health, live, sensors
from .errors import StorageError, ValidationError
from .hub import Hub, build_hub
from .storage.durable_store import DurableStore

logger = logging.getLogger(__name__)


def _error_body(error: str, **extra) -> dict:
    body = {"status": "error", "error": error}
    body.update({k: v for k, v in extra.items() if v is not None})
    return body


def _register_error_handlers(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(ValidationError)
    async def _validation_error(request: Request, exc: ValidationError):
        logger.info("[HTTP] 400 %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=400, content=_error_body(str(exc), field=exc.field))

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error(request: Request, exc: RequestValidationError):
        details = [
            {
                "field": ".".join(str(p) for p in err.get("loc", ())[1:]),
                "message": err.get("msg", ""),
            }
            for err in exc.errors()
        ]
        logger.info("[HTTP] 400 %s %s: %s", request.method, request.url.path, details)
        return JSONResponse(status_code=400, content=_error_body("Invalid request", details=details))

    @app.exception_handler(StorageError)
    async def _storage_error(request: Request, exc: StorageError):
        logger.error("[HTTP] Store error on %s %s: %s", request.method, request.url.path, exc)
        details = str(exc) if settings.is_development else None
        return JSONResponse(status_code=500, content=_error_body("Internal server error", details=details))

    @app.exception_handler(Exception)
    async def _unhandled_error(request: Request, exc: Exception):
        logger.exception("[HTTP] Server error on %s %s", request.method, request.url.path)
        if settings.is_development:
            body = _error_body(
                "Internal server error",
                message=str(exc),
                stack=traceback.format_exception(type(exc), exc, exc.__traceback__),
            )
        else:
            body = _error_body("Internal server error")
        return JSONResponse(status_code=500, content=body)


def create_app(settings: Optional[Settings] = None, store: Optional[DurableStore] = None) -> FastAPI:
    """Application factory (``uvicorn --factory iot_relay_hub.relay_api.main:create_app``)."""
    settings = settings or get_settings()
    hub: Hub = build_hub(settings, store=store)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("[HTTP] Relay hub listening on port %s", settings.port)
        yield
        await hub.shutdown()
        dispose_engine()
        logger.info("[HTTP] Relay hub stopped")

    app = FastAPI(title="IoT Relay Hub", version=__version__, lifespan=lifespan)
    app.state.hub = hub

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.middleware("http")
    async def request_log(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "[HTTP] %s %s %s %.3f ms - %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            response.headers.get("content-length", "-"),
        )
        return response

    _register_error_handlers(app, settings)

    app.include_router(actuator.router)
    app.include_router(sensors.router)
    app.include_router(events.router)
    app.include_router(health.router)
    app.include_router(live.router)

    return app
