# The module provides the FastAPI application hosting the HopCoder agent core.
# Author: HopCoder Team
# Date: 2025-11-02
# Version: 0.2.0

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from hopcoder.api.v1.api import api_router
from hopcoder.core.config import Settings, get_settings
from hopcoder.services.session_manager import SessionManager
from hopcoder.utils.logger import console


def create_app(settings: Optional[Settings] = None, session_manager: Optional[SessionManager] = None) -> FastAPI:
    settings = settings or get_settings()
    console.set_level(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await app.state.session_manager.shutdown()

    app = FastAPI(
        title="HopCoder Agent",
        version="0.2.0",
        description="Conversation loop, workspace tools and provider adapters of the HopCoder assistant.",
        lifespan=lifespan,
    )
    app.state.session_manager = session_manager or SessionManager(settings)

    @app.get("/", summary="Health Check", tags=["Status"])
    def read_root():
        """Root endpoint to check if the service is alive."""
        console.info("Health check endpoint was hit.")
        return {"message": "HopCoder agent is alive and running!"}

    # Include the v1 router with a global '/v1' prefix
    app.include_router(api_router, prefix="/v1")
    return app
