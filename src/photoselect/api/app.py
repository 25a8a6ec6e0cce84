"""FastAPI application factory.

Wiring only: lifespan, exception handlers, CORS and the router. The service
container is built here so a missing credential aborts startup before the
server binds.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..config import Settings
from ..container import ServiceContainer, build_container
from ..logging_config import get_logger
from .exception_handlers import register_exception_handlers
from .routes import router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Ensure folders, start the optimizer passes and the sweep schedule; stop them on exit."""
    container: ServiceContainer = app.state.container
    await container.startup(start_scheduler=app.state.start_scheduler)
    logger.info("application_started")

    yield

    await container.shutdown()
    logger.info("application_stopped")


def create_app(
    settings: Settings | None = None,
    container: ServiceContainer | None = None,
    start_scheduler: bool = True,
) -> FastAPI:
    """
    Build the FastAPI application.

    Raises:
        ConfigurationError: If no container is given and the settings are incomplete
    """
    container = container or build_container(settings)

    app = FastAPI(title="photoselect", version=__version__, lifespan=lifespan)
    app.state.container = container
    app.state.start_scheduler = start_scheduler

    register_exception_handlers(app)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=container.settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app
