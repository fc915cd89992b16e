import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import HTTPException as FastAPIHTTPException
from fastapi.responses import JSONResponse

from nexttrain import __version__
from nexttrain.config.settings import Settings, settings as default_settings
from nexttrain.core.logging_config import setup_logging
from nexttrain.core.security import api_key_required
from nexttrain.dependencies import Services, build_services
from nexttrain.routers import admin, departures, line
from nexttrain.utils.response import error_response

logger = logging.getLogger("nexttrain")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Builds service handles if none were injected and runs the sync loop."""
    if getattr(app.state, "services", None) is None:
        app.state.services = build_services(app.state.settings)
    services: Services = app.state.services
    if app.state.settings.AUTO_SYNC and services.syncer is not None:
        services.syncer.start()
    yield
    if services.syncer is not None:
        try:
            await services.syncer.stop()
        except Exception:
            logger.exception("Error while stopping timetable syncer")


def create_app(services: Optional[Services] = None, settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings
    setup_logging(settings)

    app = FastAPI(
        title="NextTrain API",
        description="Nearest TRA departures from a station, backed by daily PTX timetables",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.services = services

    app.include_router(departures.router, dependencies=[Depends(api_key_required)])
    app.include_router(admin.router, dependencies=[Depends(api_key_required)])
    # LINE authenticates with its own signature header
    app.include_router(line.router)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log method, path, status_code and elapsed_ms for each request."""
        start = time.time()
        response = await call_next(request)
        elapsed = (time.time() - start) * 1000
        logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed:.1f}ms)")
        return response

    @app.exception_handler(FastAPIHTTPException)
    async def http_exception_handler(request: Request, exc: FastAPIHTTPException):
        payload = error_response(title=str(exc.detail), status=exc.status_code, detail=str(exc.detail))
        return JSONResponse(status_code=exc.status_code, content=payload)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        payload = error_response(title="Internal Server Error", status=500, detail=str(exc))
        return JSONResponse(status_code=500, content=payload)

    return app


app = create_app()
