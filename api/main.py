"""Volume Discount API: FastAPI entry point.

Registers middleware, routers, and lifecycle hooks. The discount vertical
mounts its router under /api/volume-discount/.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.middleware import ShopMiddleware
from core.observability.logging import configure_logging
from core.observability.otel_setup import setup_otel
from patterns.domain_config import ServiceSettings

logger = logging.getLogger(__name__)

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

settings = ServiceSettings.from_env()


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup/shutdown hooks."""
    configure_logging(verbose=settings.verbose, log_json=settings.log_json)
    app.state.tracer = setup_otel(settings)

    logger.info("Volume discount API started (tracing %s)",
                "on" if app.state.tracer is not None else "off")
    yield
    logger.info("Volume discount API shutting down")


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Volume Discount",
    description="Deterministic volume discount evaluation for checkout functions",
    version=VERSION,
    lifespan=lifespan,
)
app.state.settings = settings

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Shop isolation middleware
app.add_middleware(ShopMiddleware)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

from verticals.volume_discount.router import router as volume_discount_router  # noqa: E402

app.include_router(
    volume_discount_router, prefix="/api/volume-discount", tags=["Volume Discount"]
)


# ---------------------------------------------------------------------------
# Health & root
# ---------------------------------------------------------------------------

@app.get("/health")
async def health():
    return {"status": "healthy", "version": VERSION}


@app.get("/")
async def root():
    return {
        "name": "Volume Discount",
        "version": VERSION,
        "docs": "/docs",
        "verticals": ["volume_discount"],
        "description": "Volume discount evaluation engine",
    }
