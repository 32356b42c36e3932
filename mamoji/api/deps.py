"""
mamoji.api.deps — FastAPI dependency injection
===============================================
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import HTTPException, Request
from sqlalchemy import Engine

from mamoji.config import MamojiConfig, load_config
from mamoji.database.engine import create_db_engine
from mamoji.engine.errors import ActorResolutionError, MamojiError
from mamoji.services.catalog_service import CatalogService

# error kind → HTTP status
ERROR_STATUS: dict[str, int] = {
    "discovery": 422,
    "validation": 502,
    "duplicate_key": 409,
    "connectivity": 502,
    "actor_resolution": 404,
}


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> MamojiConfig:
    return load_config()


def get_service(request: Request) -> CatalogService:
    """The process-wide :class:`CatalogService` built in the app lifespan."""
    service = getattr(request.app.state, "service", None)
    if service is None:
        raise HTTPException(503, "Sync engine is not running")
    return service


def raise_for_error(error: MamojiError) -> None:
    """Turn an engine error into an :class:`HTTPException`."""
    status = ERROR_STATUS.get(error.kind, 500)
    if isinstance(error, ActorResolutionError):
        status = error.status_code
    raise HTTPException(status_code=status, detail=error.to_dict())
