"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lets_pray import __version__
from lets_pray.api.dependencies import initialize_app_state, shutdown_app_state
from lets_pray.api.routes import router as api_router
from lets_pray.config import AppConfig

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Wire the services, start the reminder tick, tear everything down on exit."""
    state = await initialize_app_state(getattr(app.state, "config", None))
    settings = state.settings_store.current
    window = state.reminder_scheduler.window

    await state.reminder_scheduler.start()
    logger.info(
        f"Reminding for {settings.location}: {len(settings.enabled_prayers)} prayers, "
        f"{window.lead.total_seconds() / 60:.0f} min ahead, "
        f"sound {'on' if settings.play_sound else 'off'}."
    )

    yield

    if state.settings_store.dirty:
        logger.info("Writing pending settings before exit.")
    await shutdown_app_state()
    logger.info("Reminders stopped.")


def create_app(config: AppConfig | None = None) -> FastAPI:
    """
    Create FastAPI application.

    Args:
        config: Application configuration (default: from environment)

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(
        title="Lets Pray",
        description="Prayer time reminders with adhan playback",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.config = config

    # the settings page and the event stream are opened from a local file or another port
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix="/api")

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy", "version": __version__}

    return app
