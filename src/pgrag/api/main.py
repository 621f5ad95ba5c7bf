"""
pgrag FastAPI Application
=========================

REST API for similarity search and RAG answering.

Endpoints:
    GET  /api/health      - Health check
    GET  /api/rag/status  - RAG dependency status
    POST /api/rag/search  - Similarity search
    POST /api/rag/ask     - Question answering

Usage:
    uvicorn pgrag.api.main:app --reload --port 8000

    Or:
    python -m pgrag.api.main
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..config import get_settings
from ..logging_config import setup_logging
from .rag_routes import router as rag_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging()
    logger.info("Starting pgrag API...")
    yield
    logger.info("Shutting down pgrag API...")


app = FastAPI(
    title="pgrag API",
    description="Threshold-aware pgvector search and RAG answering",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS_ORIGINS: comma-separated extra origins
_default_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_extra_origins = os.getenv("CORS_ORIGINS", "")
if _extra_origins:
    _default_origins.extend([o.strip() for o in _extra_origins.split(",") if o.strip()])

app.add_middleware(
    CORSMiddleware,
    allow_origins=_default_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(rag_router)


@app.get("/api/health")
def health_check():
    """Health check endpoint."""
    settings = get_settings()
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "pgrag.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )
