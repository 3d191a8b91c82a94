"""
Query Orchestrator - FastAPI Application
========================================

Thin HTTP surface over the query orchestration pipeline.

Components:
-----------
- Health check
- Query orchestration router (/api/v1/query)

Run:
    uvicorn src.api.main:app --reload

Version: 1.0.0
"""

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.routes.query import router as query_router, shutdown_orchestrator
from src.utils.logging_config import configure_logging

load_dotenv()
configure_logging()
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

# Comma-separated list; "*" allows any origin without credentials
ALLOWED_ORIGINS = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "*").split(",") if o.strip()]

# =============================================================================
# LIFESPAN CONTEXT MANAGER
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup logging; closes the shared orchestrator on shutdown."""
    logger.info("=" * 60)
    logger.info("Query Orchestrator - Starting")
    logger.info("=" * 60)
    logger.info("Version: %s", API_VERSION)
    logger.info("Timestamp: %s", datetime.now(timezone.utc).isoformat())
    logger.info("API server ready to accept connections")

    yield

    await shutdown_orchestrator()
    logger.info("Query Orchestrator - Shutdown complete")


# =============================================================================
# FASTAPI APPLICATION
# =============================================================================

app = FastAPI(
    title="Query Orchestrator",
    description="Multi-intent query decomposition, concurrent execution and answer synthesis",
    version=API_VERSION,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials="*" not in ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["Health"])
async def health_check() -> Dict[str, Any]:
    """Liveness probe."""
    return {
        "status": "healthy",
        "service": "query-orchestrator",
        "version": API_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


app.include_router(query_router)
