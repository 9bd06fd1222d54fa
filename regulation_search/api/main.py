"""
FastAPI application for the regulation search API.
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from regulation_search import __version__
from regulation_search.config import load_config
from regulation_search.utils import setup_logging
from .routes import router

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown."""
    logger.info("Starting Regulation Search API server...")

    # Missing credentials are a hard startup failure
    try:
        from .dependencies import get_session
        session = get_session()
        logger.info(f"Session initialized ({len(session.records)} regulations)")
    except Exception as e:
        logger.error(f"Failed to initialize session: {e}", exc_info=True)
        raise

    yield

    logger.info("Shutting down Regulation Search API server...")


app = FastAPI(
    title="Regulation Search API",
    description="Natural-language search over municipal regulations",
    version=__version__,
    lifespan=lifespan
)

cors_origins = str(load_config().api.get("cors_origins") or "*").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api/v1", tags=["regulations"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Regulation Search API",
        "version": __version__,
        "docs": "/docs",
        "health": "/api/v1/health"
    }


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("API_PORT", "8000"))
    uvicorn.run(app, host="0.0.0.0", port=port)
