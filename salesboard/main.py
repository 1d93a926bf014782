"""
FastAPI application entry point for the sales conversion dashboard API.

Configures logging and CORS, registers the API routers and manages the notes
database pool over the application lifespan.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from salesboard import __version__
from salesboard.api import api_router
from salesboard.core.database import init_db, close_db
from salesboard.services.notes import ensure_notes_schema

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Open the notes database pool on startup and close it on shutdown.

    A database outage does not stop the API: funnel reports are still served,
    just without follow-up notes.
    """
    logger.info("Sales conversion API starting")
    try:
        await init_db()
        await ensure_notes_schema()
        logger.info("Database connection pool initialized")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")

    yield

    logger.info("Sales conversion API shutting down")
    try:
        await close_db()
        logger.info("Database connection pool closed")
    except Exception as e:
        logger.error(f"Error closing database pool: {e}")


app = FastAPI(
    title="Sales Conversion API",
    version=__version__,
    description=(
        "Per-branch sales conversion funnel (P2 -> P1 / UP P2) computed from "
        "Google Sheets transaction logs, with follow-up notes for pending customers."
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
    """Health check endpoint for monitoring and load balancer checks."""
    return {"status": "healthy"}


@app.get("/")
async def root():
    """Root endpoint providing API information."""
    return {
        "name": "Sales Conversion API",
        "version": __version__,
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "salesboard.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
