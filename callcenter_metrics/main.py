"""
FastAPI application entry point for the Call Center Metrics API.

Configures logging and CORS, opens and closes the record store connection pool,
and registers the metrics router.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from callcenter_metrics.api import api_router
from callcenter_metrics.core.database import close_db, init_db

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for FastAPI application startup and shutdown events.

    On startup:
        - Initialize the record store connection pool
    On shutdown:
        - Close the connection pool
    """
    logger.info("Call Center Metrics API starting")
    try:
        await init_db()
        logger.info("Database connection pool initialized")
    except Exception as e:
        # /metrics/call-centers works without the store; record reads answer 502
        logger.error(f"Failed to initialize database: {e}")

    yield

    logger.info("Call Center Metrics API shutting down")
    try:
        await close_db()
        logger.info("Database connection pool closed")
    except Exception as e:
        logger.error(f"Error closing database pool: {e}")


# Create FastAPI application
app = FastAPI(
    title="Call Center Metrics API",
    version="1.0.0",
    description=(
        "Lead recovery metrics per call center: in-hours call rates, "
        "after-hours callbacks and missed leads over a date range."
    ),
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",  # dashboard dev server
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring and load balancer probes.

    Returns:
        Dict with status 'healthy'
    """
    return {"status": "healthy"}


@app.get("/")
async def root():
    return {
        "name": "Call Center Metrics API",
        "version": "1.0.0",
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


# Run with uvicorn when executed directly
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "callcenter_metrics.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
