"""FastAPI web application for the tournament engine."""

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tournaments import ImageProvider, RosterService, TournamentAPI, TournamentManager
from web.endpoints.contestants import router as contestants_router
from web.endpoints.system import router as system_router
from web.endpoints.tournaments import router as tournaments_router

logger: logging.Logger = logging.getLogger(__name__)


def get_allowed_origins() -> list[str] | None:
    """Get CORS origins from environment or use development defaults."""
    env_origins: str | None = os.environ.get("ALLOWED_ORIGINS")
    if env_origins:
        origins = [origin.strip() for origin in env_origins.split(",")]
        return origins
    return None


def create_app(
    manager: TournamentManager,
    roster: RosterService,
    image_provider: ImageProvider | None = None,
) -> FastAPI:
    """Build the application around an already wired engine."""
    app: FastAPI = FastAPI(
        title="Knockout Rotation Tournament",
        description="Pairwise-decision knockout tournaments over a persistent roster",
        version="1.0.0",
    )

    allowed_origins: list[str] | None = get_allowed_origins()
    if allowed_origins:
        logger.info(f"Setting CORS allowed origins: {allowed_origins}")

        # Production: Use specific origins
        app.add_middleware(
            CORSMiddleware,
            allow_origins=allowed_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    else:
        logger.info("No ALLOWED_ORIGINS set, using development CORS settings")

        # Development: Allow any localhost/127.0.0.1
        app.add_middleware(
            CORSMiddleware,
            allow_origin_regex=r"https?://(localhost|127\.0\.0\.1)(:\d+)?",
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.state.tournament_api = TournamentAPI(manager, roster, image_provider)

    app.include_router(system_router)
    app.include_router(tournaments_router)
    app.include_router(contestants_router)
    return app
