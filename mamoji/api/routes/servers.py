"""
mamoji.api.routes.servers — Server registration, catalog sync & curation
=========================================================================
"""

from __future__ import annotations

from typing import Literal
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel, Field

from mamoji.api.deps import get_service, raise_for_error
from mamoji.engine.catalog import filter_catalog, group_catalog
from mamoji.services.catalog_service import CatalogService

router = APIRouter(prefix="/servers", tags=["servers"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class ServerCreate(BaseModel):
    host: str = Field(min_length=1)


class CurationRequest(BaseModel):
    shortcodes: list[str] = Field(min_length=1)
    copyable: bool | None = None
    sensitive: bool | None = None
    tags: str | None = None      # comma-separated
    note: str | None = None
    author: str | None = None    # name@host, "" clears


class DownloadRequest(BaseModel):
    shortcodes: list[str] | None = None


# ---------------------------------------------------------------------------
# Servers
# ---------------------------------------------------------------------------
@router.get("")
async def list_servers(service: CatalogService = Depends(get_service)):
    """Every registered server with its emoji count."""
    return {"servers": await service.list_servers()}


@router.post("", status_code=201)
async def register_server(body: ServerCreate, service: CatalogService = Depends(get_service)):
    """Discover a host, store it and pull its catalog."""
    result = await service.register(body.host)
    if result.error:
        raise_for_error(result.error)
    return result.to_dict()


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------
@router.get("/{host}/emojis")
async def get_emojis(
    host: str,
    search: str = "",
    search_by: Literal["shortcode", "tag", "author"] | None = None,
    group_by: Literal["category", "author"] | None = None,
    service: CatalogService = Depends(get_service),
):
    """Catalog of *host* through the cache gate, optionally searched/grouped."""
    result = await service.sync(host)
    if result.error:
        raise_for_error(result.error)

    entries = filter_catalog(result.catalog, search, search_by)
    body: dict = {"host": result.host, "refreshed": result.refreshed, "count": len(entries)}
    if group_by is None:
        body["emojis"] = [e.to_dict() for e in entries]
    else:
        body["groups"] = [
            {"key": key, "emojis": [e.to_dict() for e in group]}
            for key, group in group_catalog(entries, group_by)
        ]
    return body


@router.get("/{host}/permissions")
async def get_permissions(host: str, service: CatalogService = Depends(get_service)):
    """Copy permission and attribution per shortcode, from storage only."""
    catalog = await service.stored_catalog(host)
    return [e.permission() for e in catalog]


@router.patch("/{host}/emojis")
async def curate_emojis(
    host: str,
    body: CurationRequest,
    service: CatalogService = Depends(get_service),
):
    """Edit curated metadata of the selected emoji."""
    result = await service.curate(
        host,
        body.shortcodes,
        copyable=body.copyable,
        sensitive=body.sensitive,
        tags=body.tags,
        note=body.note,
        author=body.author,
    )
    if result.error:
        raise_for_error(result.error)
    if not result.updated:
        raise HTTPException(404, "None of the selected emoji exist on this server")
    return result.to_dict()


@router.post("/{host}/download")
async def download_emojis(
    host: str,
    body: DownloadRequest,
    service: CatalogService = Depends(get_service),
):
    """ZIP of the selected (copyable) emoji images."""
    archive = await service.export(host, body.shortcodes)
    return Response(
        content=archive.content,
        media_type="application/zip",
        headers={
            "Content-Disposition": f'attachment; filename="{archive.filename}"',
            # Percent-encoded; header values must stay latin-1.
            "X-Mamoji-Skipped": ",".join(quote(code, safe="") for code in archive.skipped),
        },
    )
