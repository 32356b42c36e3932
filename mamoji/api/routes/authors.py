"""
mamoji.api.routes.authors — Author profiles
============================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from mamoji.api.deps import get_service, raise_for_error
from mamoji.services.catalog_service import CatalogService

router = APIRouter(prefix="/authors", tags=["authors"])


@router.get("")
async def list_authors(service: CatalogService = Depends(get_service)):
    return {"authors": await service.list_authors()}


@router.get("/{handle}")
async def get_author(handle: str, service: CatalogService = Depends(get_service)):
    """Stored profile for *handle*, resolved over the network on first use."""
    result = await service.resolve_author(handle)
    if result.error:
        raise_for_error(result.error)
    return result.author
