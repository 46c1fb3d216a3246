"""ASGI entry point: ``uvicorn backend.app:app``."""

from __future__ import annotations

import logging
from typing import Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import API_ALLOWED_ORIGINS, API_HOST, API_PORT
from .logging_config import configure_logging
from .routes import router
from .services import dashboard_service

configure_logging()
LOGGER = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Build the API with CORS for the dashboard origins and the session routes."""
    application = FastAPI(
        title="Session Metrics Dashboard API",
        version="1.0.0",
        description="Read-only metrics over the practice-session tables of every agent.",
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=API_ALLOWED_ORIGINS,
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )
    application.include_router(router)
    return application


app = create_app()


@app.on_event("startup")
def ensure_registry_valid() -> None:
    """Refuse to start with an empty or duplicated table registry."""
    try:
        dashboard_service.check_registry()
    except ValueError:
        LOGGER.exception("Session table registry is invalid")
        raise


@app.get("/health", tags=["health"])
def healthcheck() -> Dict[str, str]:
    """Liveness check that touches no dependency."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    LOGGER.info("Starting API on %s:%s", API_HOST, API_PORT)
    uvicorn.run("backend.app:app", host=API_HOST, port=API_PORT, reload=True)
