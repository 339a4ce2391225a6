"""ArchLens API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery — ExMA anti-pattern)
    - Global error handlers map ArchLensError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Logging configured on startup via lifespan context manager

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
      (ADR: FastAPI 0.128)
    - No database: spaces live in the process-wide SpaceStore and travel as
      export/import documents (ADR: client owns durable storage)
    - canvas router before canvas_items: /canvas/options/* must not fall into the
      generic /canvas/{collection}/* routes
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from archlens.infrastructure.observability import setup_logging
from archlens.config import get_settings
from archlens.api.error_handlers import register_error_handlers
from archlens.api.routes import canvas, canvas_items, conversation, health, spaces

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    logger.info("ArchLens API started")
    yield
    logger.info("ArchLens API shutting down")


app = FastAPI(
    title="ArchLens API", version="1.0.0", lifespan=lifespan,
)

# CORS — configured from settings, not hardcoded
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Routes — explicit registration (ExMA: no convention-over-config)
app.include_router(health.router)
app.include_router(spaces.router)
app.include_router(canvas.router)
app.include_router(canvas_items.router)
app.include_router(conversation.router)

# Static files — serves the frontend build in production
# ADR: mounted AFTER API routes so /api/v1/* takes precedence
if os.path.isdir("static"):
    app.mount("/", StaticFiles(directory="static", html=True), name="static")
