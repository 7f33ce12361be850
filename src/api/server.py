"""HTTP surface over the engine client and the coverage search.

Routes take engine fields as query parameters and answer with
``{"status": "success", "data": ...}``; any domain error becomes an HTTP 500
with a plain-text message. Decimals are serialized as strings so the
engine's digits survive JSON.

Engine calls block, so engine-facing routes are sync functions that FastAPI
runs on its threadpool (one worker per request).
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, Response
from starlette.concurrency import run_in_threadpool

from domain.coverage.errors import CoverageError
from domain.coverage.ports import HexGrid
from domain.coverage.services import CoverageSearch
from domain.coverage.translation import parse_coverage_request
from domain.engine.errors import EngineError, MalformedResponse
from domain.engine.ports import EngineClient
from domain.engine.protocol import format_decimal
from domain.engine.translation import parse_query
from domain.engine.value_objects import ImageMeasurement, Measurement
from infrastructure.engine import build_engine_client
from infrastructure.hexgrid import H3HexGrid

from .settings import Settings

logger = logging.getLogger(__name__)

# Seconds between client-disconnect checks during a coverage search
DISCONNECT_POLL_S = 0.5


def _success(data: Any) -> dict[str, Any]:
    return {"status": "success", "data": data}


def _measurement_payload(measurement: Measurement) -> dict[str, Any]:
    return measurement.model_dump(mode="json", exclude={"kind"})


async def _handle_domain_error(request: Request, exc: Exception) -> PlainTextResponse:
    logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return PlainTextResponse(str(exc), status_code=500)


async def _watch_disconnect(request: Request, cancel: threading.Event) -> None:
    while not await request.is_disconnected():
        await asyncio.sleep(DISCONNECT_POLL_S)
    logger.info("Client disconnected from %s", request.url.path)
    cancel.set()


def create_app(
    settings: Settings | None = None,
    *,
    engine: EngineClient | None = None,
    grid: HexGrid | None = None,
) -> FastAPI:
    """Build the application with its engine client and coverage search injected.

    Without an explicit ``engine`` the transport is built from ``settings``
    (or the environment). ConfigurationError propagates to the caller.
    """
    if engine is None:
        settings = settings or Settings.from_env()
        engine = build_engine_client(
            settings.mode,
            settings.engine_exec,
            args=settings.engine_args,
            terrain_dir=settings.terrain_dir,
            timeout_s=settings.timeout_s,
        )
    mode = settings.mode if settings is not None else type(engine).__name__
    search = CoverageSearch(
        engine,
        grid or H3HexGrid(),
        max_workers=settings.coverage_workers if settings else 8,
        max_rings=settings.coverage_max_rings if settings else None,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # Daemon transport: spawn once at startup; spawn failure aborts startup
        start = getattr(engine, "start", None)
        if callable(start):
            start()
        yield
        close = getattr(engine, "close", None)
        if callable(close):
            close()

    app = FastAPI(title="engine-proxy", lifespan=lifespan)
    app.state.engine = engine
    app.state.search = search
    app.add_exception_handler(EngineError, _handle_domain_error)
    app.add_exception_handler(CoverageError, _handle_domain_error)

    @app.get("/healthz")
    def healthz() -> dict[str, Any]:
        return {"status": "ok", "mode": mode}

    @app.get("/v1/stdin")
    @app.get("/v1/path")
    def path_report(request: Request) -> dict[str, Any]:
        query = parse_query("path", request.query_params)
        return _success(_measurement_payload(engine.sample(query)))

    @app.get("/v1/profile")
    def path_profile(request: Request) -> dict[str, Any]:
        query = parse_query("profile", request.query_params)
        return _success(_measurement_payload(engine.sample(query)))

    @app.get("/v1/image")
    def plot_image(request: Request) -> Response:
        query = parse_query("image", request.query_params)
        measurement = engine.sample(query)
        if not isinstance(measurement, ImageMeasurement):
            raise MalformedResponse(
                f"Expected image output, got a {measurement.kind} measurement"
            )
        return Response(content=measurement.content, media_type=measurement.media_type)

    @app.get("/v1/coverage")
    async def coverage(request: Request) -> dict[str, Any]:
        coverage_request = parse_coverage_request(request.query_params)
        cancel = threading.Event()
        watcher = asyncio.create_task(_watch_disconnect(request, cancel))
        try:
            result = await run_in_threadpool(search.run, coverage_request, cancel)
        finally:
            watcher.cancel()
        return _success({index: format_decimal(value) for index, value in result.items()})

    return app
