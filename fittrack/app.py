"""
FastAPI application entry point for the notification service.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI

from fittrack.config import Settings, get_settings
from fittrack.dependencies import Services, build_services
from fittrack.routes import router


def create_app(
    settings: Optional[Settings] = None, services: Optional[Services] = None
) -> FastAPI:
    settings = settings or (services.settings if services else get_settings())
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
    )
    app = FastAPI(title="FitTrack Notifications", version="0.1.0")
    app.state.services = services or build_services(settings)
    app.include_router(router, prefix=settings.api_prefix)
    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
