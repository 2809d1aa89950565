from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from snapkeep import __version__
from snapkeep.api.deps import dispose_snapshot_manager
from snapkeep.api.routes.config import router as config_router
from snapkeep.api.routes.health import router as health_router
from snapkeep.api.routes.snapshots import router as snapshots_router
from snapkeep.utils.logger import api_logger, request_log


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: hot reload of the config file
    config_manager = getattr(app.state, "config_manager", None)
    if config_manager is not None:

        def on_config_change(new_config):
            api_logger.info(
                "Configuration changed, snapshot policy applies to the next call",
                keys=list(new_config.keys()),
            )

        config_manager.register_change_callback(on_config_change)
        await config_manager.start_watching()
        api_logger.info("Config file watcher started")

    yield

    try:
        api_logger.info("Starting shutdown cleanup")
        if config_manager is not None:
            try:
                await config_manager.stop_watching()
                api_logger.info("Config file watcher stopped")
            except asyncio.CancelledError:
                api_logger.debug("Config watcher stop cancelled, continuing cleanup")

        dispose_snapshot_manager()
        api_logger.info("Shutdown completed")
    except Exception as e:
        api_logger.error("Shutdown cleanup failed", exc_info=True, error=str(e))


def create_app() -> FastAPI:
    app = FastAPI(
        title="snapkeep",
        description="Incremental workspace snapshots and restore for coding assistants",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(snapshots_router)
    app.include_router(config_router)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        request_log(
            api_logger,
            request.method,
            request.url.path,
            response.status_code,
            round((time.perf_counter() - started) * 1000, 2),
        )
        return response

    return app
