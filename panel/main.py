"""
Marketplace Finder control panel.

FastAPI application wiring the run coordinator, persistence and routes.
"""
import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from finder.store import ResultStore

from .config import Config, config
from .coordinator import LoginFn, RunCoordinator, ScrapeFn, default_login_fn, default_scrape_fn
from .routes import control_router, notify_router, results_router, ui_router

logger = logging.getLogger(__name__)


def setup_logging(cfg: Config) -> None:
    handlers = [logging.StreamHandler(sys.stdout)]
    if cfg.LOG_FILE:
        handlers.append(logging.FileHandler(cfg.LOG_FILE, encoding="utf-8"))
    logging.basicConfig(
        level=getattr(logging, cfg.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
    )


def create_app(
    cfg: Config = config,
    scrape_fn: Optional[ScrapeFn] = None,
    login_fn: Optional[LoginFn] = None,
) -> FastAPI:
    """Build the application; tests pass their own config, scrape and login functions."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting Marketplace Finder...")
        cfg.validate()
        store = ResultStore(cfg.DATA_DIR)
        store.load()
        app.state.coordinator = RunCoordinator(
            store,
            scrape_fn or default_scrape_fn(cfg),
            login_fn=login_fn or default_login_fn(cfg),
        )
        logger.info(f"Data directory: {cfg.DATA_DIR}")
        try:
            yield
        finally:
            logger.info("Shutting down Marketplace Finder...")
            await app.state.coordinator.stop()

    app = FastAPI(
        title=cfg.API_TITLE,
        version=cfg.API_VERSION,
        description=cfg.API_DESCRIPTION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.config = cfg

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.CORS_ORIGINS,
        allow_credentials=cfg.CORS_ALLOW_CREDENTIALS,
        allow_methods=cfg.CORS_ALLOW_METHODS,
        allow_headers=cfg.CORS_ALLOW_HEADERS,
    )

    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc: Exception):
        """Global exception handler for unhandled errors."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "version": cfg.API_VERSION,
            "running": app.state.coordinator.is_running,
        }

    app.include_router(ui_router)
    app.include_router(control_router)
    app.include_router(results_router)
    app.include_router(notify_router)
    return app


app = create_app()


def run() -> None:
    import uvicorn

    setup_logging(config)
    uvicorn.run(app, host=config.HOST, port=config.PORT, log_level=config.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
