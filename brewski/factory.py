from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from brewski.api.router import api_router
from brewski.core.config import Settings, load_settings
from brewski.core.logging import configure_logging
from brewski.schemas.config import AgentConfig, load_agent_config
from brewski.services.wiring import WiringEngine

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    agent_config: AgentConfig | None = None,
    engine: WiringEngine | None = None,
) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    if agent_config is None:
        logger.info(
            "reading config file at %s", settings.config_file, extra={"component": "init"}
        )
        agent_config = load_agent_config(settings.config_file)
    engine = engine or WiringEngine.from_config(agent_config)
    # Configuration errors surface here, before anything has been started.
    harnesses = engine.build(agent_config.devices, agent_config.outputs)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("brewski starting", extra={"component": "init"})
        engine.start_all(harnesses)
        yield
        logger.info("received stop, shutting down brewski", extra={"component": "init"})
        engine.stop_all(harnesses)

    docs_enabled = settings.docs_enabled and not settings.is_production
    app = FastAPI(
        title="brewski",
        version="0.1.0",
        debug=settings.debug,
        docs_url="/docs" if docs_enabled else None,
        redoc_url=None,
        openapi_url="/openapi.json" if docs_enabled else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.agent_config = agent_config
    app.state.engine = engine
    app.state.harnesses = harnesses

    @app.get("/", tags=["meta"])
    def root():
        return {"name": "brewski", "status": "ok"}

    app.include_router(api_router)
    return app
