"""
FastAPI application entry point for the ChurnGuard API.

Serves the dashboard risk views, the CRM risk payloads and the run triggers.
The database pool is opened and closed by the application lifespan.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from churnguard import __version__
from churnguard.core.database import init_db, close_db
from churnguard.api import api_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for startup and shutdown.

    On startup the database pool is initialized; on shutdown it is closed.
    A failed pool init is logged and the app still starts so /health answers.
    """
    logger.info("ChurnGuard API starting")
    try:
        await init_db()
        logger.info("Database connection pool initialized")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")

    yield

    logger.info("ChurnGuard API shutting down")
    try:
        await close_db()
        logger.info("Database connection pool closed")
    except Exception as e:
        logger.error(f"Error closing database pool: {e}")


# Create FastAPI application
app = FastAPI(
    title="ChurnGuard API",
    version=__version__,
    description=(
        "Churn-risk classification engine. Provides monthly risk views for "
        "the customer-success dashboard, risk payloads for the CRM sync, and "
        "triggers for the trending and month-close runs."
    ),
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
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
    """
    return {"status": "healthy"}


@app.get("/")
async def root():
    """
    Root endpoint providing API information.
    """
    return {
        "name": "ChurnGuard API",
        "version": __version__,
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


# Run with uvicorn when executed directly
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "churnguard.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
