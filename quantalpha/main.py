# =============================================================================
# FastAPI Application Entry Point
# =============================================================================
#
# Run locally:
#   uvicorn quantalpha.main:app --reload
#
# Logging is configured here once, from settings.log_level. Every module
# logs through its own `logging.getLogger(__name__)`.
# =============================================================================

from __future__ import annotations

import logging

from fastapi import FastAPI

from quantalpha.api.analysis import router as analysis_router
from quantalpha.config import Settings, get_settings
from quantalpha.models.responses import HealthResponse


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the FastAPI application."""
    cfg = settings or get_settings()
    configure_logging(cfg)

    application = FastAPI(
        title=cfg.app_name,
        version=cfg.app_version,
        description=(
            "Ten-seat multi-agent panel for A-share investment decisions, "
            "with interval validation against real-time quotes."
        ),
    )
    application.include_router(analysis_router)

    @application.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health() -> HealthResponse:
        return HealthResponse(version=cfg.app_version, service=cfg.app_name)

    return application


app = create_app()
