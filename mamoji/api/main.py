"""
mamoji.api.main — FastAPI application entry point
==================================================

Thin JSON surface over the sync engine.  Run with::

    uvicorn mamoji.api.main:app --port 8000
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

from mamoji import __version__  # noqa: E402
from mamoji.api.deps import get_config, get_engine  # noqa: E402
from mamoji.api.routes.authors import router as authors_router  # noqa: E402
from mamoji.api.routes.servers import router as servers_router  # noqa: E402
from mamoji.database.engine import init_db  # noqa: E402
from mamoji.federation.client import build_client  # noqa: E402
from mamoji.services.catalog_service import CatalogService  # noqa: E402

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Allowed CORS origins from ``CORS_ALLOW_ORIGINS`` (comma-separated)."""
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the store and the HTTP client once; close both on shutdown."""
    cfg = get_config()
    engine = get_engine()
    init_db(engine)
    client = build_client(cfg)
    app.state.service = CatalogService(
        engine,
        client,
        freshness_window=cfg.freshness_window,
        download_concurrency=cfg.download_concurrency,
    )
    logger.info("Mamoji API started — engine ready (%s)", engine.url.database)
    try:
        yield
    finally:
        await client.aclose()
        engine.dispose()
        logger.info("Mamoji API shut down")


app = FastAPI(
    title="Mamoji API",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(servers_router, prefix="/api")
app.include_router(authors_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
