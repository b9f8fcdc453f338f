import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from app.cms_core import build_context
from app.config import Settings, settings as default_settings
from app.database import init_db
from app.exception_handlers import register_exception_handlers
from app.routes import plugins

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create the FastAPI application."""
    settings = settings or default_settings

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting up the application...")
        cms = build_context(settings)
        if cms.engine is not None:
            await init_db(cms.engine)
        await cms.core.initialize()
        app.state.cms = cms

        yield

        logger.info("Shutting down the application...")
        await cms.manager.shutdown()
        if cms.engine is not None:
            await cms.engine.dispose()

    app = FastAPI(
        title=settings.app_name,
        description="CMS admin plugin runtime",
        debug=settings.debug,
        version=settings.app_version,
        lifespan=lifespan,
    )

    register_exception_handlers(app)
    app.include_router(plugins.router, prefix=f"{settings.api_prefix}/plugins")

    if settings.debug:
        logger.info(f"Running in {settings.environment} mode")
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)  # Logs SQL statements

    @app.get("/", tags=["Root"])
    async def root():
        return {"message": f"Welcome to the {settings.app_name} API"}

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=default_settings.debug)
