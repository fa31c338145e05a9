"""
FastAPI application entry point for the CRM Reporting API.

Configures logging and CORS, manages the database pool over the application
lifespan and mounts the report and export routers under ``/api``.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from crm_reporting import __version__
from crm_reporting.api import api_router
from crm_reporting.core.config import get_settings
from crm_reporting.core.database import init_db, close_db

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Open the database pool on startup and close it on shutdown.

    Startup continues without a pool when no DATABASE_URL is configured or the
    database is unreachable; report endpoints then fail with their domain error.
    """
    logger.info("CRM Reporting API starting")
    if get_settings().database_url:
        try:
            await init_db()
            logger.info("Database connection pool initialized")
        except Exception as e:
            logger.error(f"Failed to initialize database: {e}")
    else:
        logger.warning("DATABASE_URL not set; gateway reads will fail")

    yield

    logger.info("CRM Reporting API shutting down")
    try:
        await close_db()
        logger.info("Database connection pool closed")
    except Exception as e:
        logger.error(f"Error closing database pool: {e}")


app = FastAPI(
    title="CRM Reporting API",
    version=__version__,
    description=(
        "Reporting and export engine for CRM data: dashboard metrics, "
        "interaction analytics, visit urgency ranking and CSV exports."
    ),
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api")


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring and load balancer probes."""
    return {"status": "healthy"}


@app.get("/")
async def root():
    return {
        "name": "CRM Reporting API",
        "version": __version__,
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


# Run with uvicorn when executed directly
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "crm_reporting.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
