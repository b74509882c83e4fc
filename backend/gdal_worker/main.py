"""FastAPI application entrypoint and configuration.

This module provides the application factory that configures logging,
adds request logging middleware, registers JSON error handlers for the
import pipeline's error taxonomy and for routing errors (404, 405),
includes the import router, and exposes the liveness and route-listing
endpoints.

Example:
    The application can be run with uvicorn:
        $ uvicorn gdal_worker.main:app --port 8080

    Or through the console script, which honours PORT:
        $ PORT=8080 gdal-worker
"""

import logging
import os
from typing import Any

import fastapi
import uvicorn
from fastapi import responses, routing
from starlette import exceptions

from gdal_worker.api import imports
from gdal_worker.core import config, errors, logger_setup

logger = logging.getLogger(__name__)


def create_app() -> fastapi.FastAPI:
    """Create and configure the FastAPI application.

    The app is built once per process and holds no request data; every
    import carries its own state through the pipeline.

    Returns:
        Configured FastAPI application instance ready for ASGI server.
    """
    settings = config.get_settings()
    logger_setup.configure_logging(settings.log_level)

    app = fastapi.FastAPI(title="GDAL Worker", version="0.1.0")
    app.include_router(imports.router)

    @app.middleware("http")
    async def log_requests(request: fastapi.Request, call_next: Any) -> Any:
        logger.info("[req] %s %s", request.method, request.url.path)
        return await call_next(request)

    @app.exception_handler(errors.ImportPipelineError)
    async def import_error(
        request: fastapi.Request,
        exc: errors.ImportPipelineError,
    ) -> responses.JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        else:
            logger.warning("%s %s rejected: %s", request.method, request.url.path, exc)
        return responses.JSONResponse(
            status_code=exc.status_code,
            content=exc.payload(),
        )

    @app.exception_handler(exceptions.HTTPException)
    async def http_error(
        request: fastapi.Request,
        exc: exceptions.HTTPException,
    ) -> responses.JSONResponse:
        content: dict[str, Any] = {"error": exc.detail}
        if exc.status_code == 405:
            content["method"] = request.method
        return responses.JSONResponse(
            status_code=exc.status_code,
            content=content,
            headers=exc.headers,
        )

    @app.get("/healthz", response_class=responses.PlainTextResponse)
    async def healthz() -> str:
        """Liveness check for load balancers and orchestrators."""
        return "ok"

    @app.get("/routes")
    async def list_routes() -> list[dict[str, Any]]:
        """List registered routes with their HTTP methods (debug aid)."""
        return [
            {"path": route.path, "methods": sorted(route.methods)}
            for route in app.routes
            if isinstance(route, routing.APIRoute)
        ]

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the app on PORT (default 8080)."""
    port = int(os.environ.get("PORT", "8080"))
    logger.info("GDAL Worker listening on %s", port)
    uvicorn.run(app, host="0.0.0.0", port=port)
