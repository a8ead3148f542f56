import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncEngine

from api.routes import admin_router, auth_router, media_router, router
from config import Config
from database.database import build_engine, build_sessionmaker, init_db
from errors import PortalError
from services.expiration import ExpirationScheduler, ExpirationSweep, expiration_hook
from services.media import MediaHostClient
from utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def create_app(config: Optional[Config] = None, engine: Optional[AsyncEngine] = None) -> FastAPI:
    config = config or Config.from_env()
    engine = engine or build_engine(config.database_url)
    session_factory = build_sessionmaker(engine)
    sweep = ExpirationSweep(session_factory)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(config)
        await init_db(engine)
        scheduler = None
        if config.sweep_in_background:
            scheduler = ExpirationScheduler(
                sweep,
                interval_seconds=config.expiration_interval_seconds,
                max_backoff_seconds=config.expiration_max_backoff_seconds,
            )
            scheduler.start()
        app.state.scheduler = scheduler
        yield
        if scheduler is not None:
            await scheduler.stop()

    app = FastAPI(
        title="Property Portal API",
        description="Listings, search, signed media uploads and listing expiration",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.state.config = config
    app.state.session_factory = session_factory
    app.state.expiration_sweep = sweep
    app.state.media = MediaHostClient(config)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if config.sweep_on_request:
        app.middleware("http")(expiration_hook(sweep))

    @app.exception_handler(PortalError)
    async def portal_error_handler(request: Request, exc: PortalError):
        if exc.status_code >= 500:
            logger.error("Unhandled portal error", extra={"path": request.url.path, "error": exc.message})
        return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.message})

    app.include_router(media_router, prefix="/api")
    app.include_router(auth_router, prefix="/api")
    app.include_router(admin_router, prefix="/api")
    app.include_router(router, prefix="/api")

    @app.get("/health")
    async def health_check():
        return {"status": "ok", "message": "API is running"}

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    config = Config.from_env()
    setup_logging(config)

    uvicorn.run(
        "api.main:app",
        host=config.api_host,
        port=config.api_port,
        reload=True,
        log_level=config.log_level.lower()
    )
