"""FastAPI application entry point for the PDE dashboard service.

This module creates the FastAPI ``app`` instance, registers all routers, and
wires the shared ``PDEServices`` into each router module.  On startup the
metadata store is loaded, an initial scan is run, and the filesystem watcher
is started; the watcher is stopped again on shutdown.  The server is started
via ``uvicorn`` using the settings from ``pde.config``.

The pre-built web UI is served from ``gui_dir`` when that directory exists.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from pde.config import PDESettings
from pde.routers import events, health, projects, scan, templates
from pde.services.context import PDEServices
from pde.services.scan_pipeline import sync_projects

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


async def _startup(services: PDEServices) -> None:
    settings = services.settings
    services.store.initialize(projects_path=str(services.scanner.projects_path))

    if settings.scan_on_startup:
        result = await sync_projects(services.scanner, services.detector, services.store)
        if not result.success:
            logger.warning("Initial scan failed: %s", "; ".join(error.error for error in result.errors))

    if settings.watch_for_changes:
        if services.scanner.projects_path.is_dir():
            await services.scanner.start_watching()
        else:
            logger.warning("Projects directory %s not found -- file watching disabled", services.scanner.projects_path)


async def _shutdown(services: PDEServices) -> None:
    services.scanner.stop_watching()
    await services.scanner.watcher.wait_stopped()


def create_app(settings: PDESettings | None = None) -> FastAPI:
    """Build and configure the FastAPI application.

    Registers all API routers, sets up CORS for the browser UI, and
    initialises the shared ``PDEServices`` that every router depends on.

    Args:
        settings: Configuration to use; loaded from the environment when omitted.

    Returns:
        A fully configured ``FastAPI`` application ready to serve.
    """
    settings = settings or PDESettings()
    services = PDEServices.from_settings(settings)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        await _startup(services)
        try:
            yield
        finally:
            await _shutdown(services)

    app = FastAPI(
        title="PDE Dashboard",
        description="Local service that discovers, classifies, and catalogues web projects",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.services = services

    # The UI may be served from a dev server on another port.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Wire the services into each router that needs them
    health.set_services(services)
    projects.set_services(services)
    scan.set_services(services)
    events.set_services(services)

    # Register routers
    app.include_router(health.router)
    app.include_router(projects.router)
    app.include_router(scan.router)
    app.include_router(templates.router)
    app.include_router(events.router)

    # Mounted last so API routes always take priority.
    if settings.gui_dir.is_dir():
        app.mount("/", StaticFiles(directory=str(settings.gui_dir), html=True), name="gui")
        logger.info("Web UI mounted from %s", settings.gui_dir)
    else:
        logger.warning("Web UI directory not found at %s -- serving API only", settings.gui_dir)

    logger.info(
        "PDE dashboard initialised -- projects_path=%s, metadata=%s",
        services.scanner.projects_path,
        settings.metadata_path,
    )
    return app


app = create_app()


def main() -> None:
    """Start the Uvicorn server with settings from the environment.

    This is the CLI entry point (``pde`` or ``python -m pde.main``).
    """
    settings = PDESettings()
    logger.info("Starting PDE dashboard on %s:%d", settings.host, settings.port)
    uvicorn.run(
        "pde.main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
    )


if __name__ == "__main__":
    main()
