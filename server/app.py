"""FastAPI application factory."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from db import get_engine, init_db
from server.dependencies import get_config
from server.middleware import RequestIDMiddleware
from server.routes import briefs, health, quota, referrals, research, scrape
from utils.logger import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup/shutdown logic."""
    logger.info("FastAPI server starting up")

    for problem in get_config().validate():
        logger.warning(problem)

    try:
        init_db(get_engine())
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")

    yield

    logger.info("FastAPI server shutting down")


def create_app() -> FastAPI:
    """Factory function to create FastAPI application."""
    app = FastAPI(
        title="Pulse Research API",
        description="Multi-source research aggregation with quota and referral tracking",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(RequestIDMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(research.router)
    app.include_router(quota.router)
    app.include_router(referrals.router)
    app.include_router(briefs.router)
    app.include_router(scrape.router)

    return app
