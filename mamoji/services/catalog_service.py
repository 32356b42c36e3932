"""
mamoji.services.catalog_service — Directory Synchronization Engine
===================================================================

Orchestrates one sync of a host:

    1. **Cache gate** — stored server + emoji count; fresh → return the
       stored catalog, no network.
    2. **Discovery** — NodeInfo walk; creates the server row on first
       success, refreshes its display name afterwards.
    3. **Adapter** — the stored family picks the adapter.  If the emoji
       endpoint is unreachable the sync degrades to "no new emoji" and
       returns what is stored, without stamping the sync time.
    4. **Duplicate check** — any repeated shortcode deletes the server
       (cascade) and fails the sync.
    5. **Reconciliation** — sequential upserts, sync time stamped, catalog
       re-read.

Syncs of the same host are serialized with a per-host ``asyncio.Lock``;
different hosts run concurrently.  All database work goes through
:func:`~mamoji.database.engine.run_db`.

Public coroutines return result objects instead of raising, so callers
branch on ``result.error.kind``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import httpx
from sqlalchemy import Engine

from mamoji.constants import normalize_handle, normalize_host
from mamoji.database.engine import run_db
from mamoji.engine.catalog import CatalogEntry
from mamoji.engine.duplicates import check_duplicates
from mamoji.engine.errors import (
    ActorResolutionError,
    ConnectivityError,
    DiscoveryError,
    DuplicateKeyError,
    MamojiError,
)
from mamoji.engine.freshness import DEFAULT_WINDOW, needs_refresh
from mamoji.federation.actor import MSG_BAD_HANDLE, resolve_actor
from mamoji.federation.adapters import fetch_emojis
from mamoji.federation.discovery import resolve_server
from mamoji.services import author_service, export_service
from mamoji.services.curation_service import CurationResult, apply_curation
from mamoji.services.reconciliation_service import (
    delete_server,
    get_server_state,
    list_servers,
    read_catalog,
    reconcile_emojis,
    upsert_server,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# Result objects
# ---------------------------------------------------------------------------
@dataclass
class SyncResult:
    """Outcome of :meth:`CatalogService.sync`."""
    host: str
    catalog: list[CatalogEntry] = field(default_factory=list)
    refreshed: bool = False
    error: MamojiError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        return {
            "host": self.host,
            "refreshed": self.refreshed,
            "emojis": [e.to_dict() for e in self.catalog],
            "error": self.error.to_dict() if self.error else None,
        }


@dataclass
class AuthorResult:
    """Outcome of :meth:`CatalogService.resolve_author`."""
    handle: str
    author: dict | None = None
    error: MamojiError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------
class CatalogService:
    """Sync engine bound to one store (*engine*) and one HTTP client.

    Usage::

        service = CatalogService(engine, client)
        result = await service.sync("example.social")
        if result.ok:
            for entry in result.catalog: ...
    """

    def __init__(
        self,
        engine: Engine,
        client: httpx.AsyncClient,
        *,
        freshness_window: timedelta = DEFAULT_WINDOW,
        download_concurrency: int = 4,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._engine = engine
        self._client = client
        self._window = freshness_window
        self._download_concurrency = download_concurrency
        self._clock = clock
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, host: str) -> asyncio.Lock:
        return self._locks.setdefault(host, asyncio.Lock())

    # -------------------------------------------------------------------
    # Catalog sync
    # -------------------------------------------------------------------
    async def sync(self, host: str, *, force: bool = False) -> SyncResult:
        """Return the catalog of *host*, refreshing it if the gate says so.

        *force* skips the cache gate (used on registration).
        """
        normalized = normalize_host(host)
        if normalized is None:
            return SyncResult(host=host, error=DiscoveryError(f"Invalid server address: {host!r}"))

        async with self._lock_for(normalized):
            try:
                return await self._sync_locked(normalized, force=force)
            except MamojiError as exc:
                logger.warning("Sync of %s failed (%s): %s", normalized, exc.kind, exc.message)
                return SyncResult(host=normalized, error=exc)

    async def register(self, host: str) -> SyncResult:
        """Discover *host*, store it and pull its catalog right away."""
        return await self.sync(host, force=True)

    async def _sync_locked(self, host: str, *, force: bool) -> SyncResult:
        now = self._clock()
        state = await run_db(get_server_state, self._engine, host)

        if state is not None and not force and not needs_refresh(
            state.last_synced_at, state.emoji_count, now=now, window=self._window
        ):
            logger.info("Catalog cache hit for %s (%d emoji)", host, state.emoji_count)
            catalog = await run_db(read_catalog, self._engine, host)
            return SyncResult(host=host, catalog=catalog)

        logger.info("Catalog refresh for %s", host)
        info = await resolve_server(self._client, host)
        state = await run_db(upsert_server, self._engine, host, info.name, info.software)

        try:
            remote = await fetch_emojis(self._client, host, state.software)
        except ConnectivityError as exc:
            logger.warning(
                "Emoji endpoint of %s unreachable (%s); serving stored catalog",
                host, exc.cause,
            )
            catalog = await run_db(read_catalog, self._engine, host)
            return SyncResult(host=host, catalog=catalog)

        try:
            check_duplicates(host, (e.shortcode for e in remote))
        except DuplicateKeyError as exc:
            logger.warning("Duplicate shortcodes on %s: %s", host, ", ".join(exc.shortcodes))
            await run_db(delete_server, self._engine, host)
            raise

        # Stamped at write time, after the network hops.
        catalog = await run_db(
            reconcile_emojis, self._engine, host, remote, now=self._clock()
        )
        return SyncResult(host=host, catalog=catalog, refreshed=True)

    # -------------------------------------------------------------------
    # Stored reads (no network)
    # -------------------------------------------------------------------
    async def list_servers(self) -> list[dict]:
        return await run_db(list_servers, self._engine)

    async def stored_catalog(self, host: str) -> list[CatalogEntry]:
        return await run_db(read_catalog, self._engine, normalize_host(host) or host)

    async def list_authors(self) -> list[dict]:
        return await run_db(author_service.list_authors, self._engine)

    # -------------------------------------------------------------------
    # Authors
    # -------------------------------------------------------------------
    async def resolve_author(self, handle: str) -> AuthorResult:
        """Return the stored author for *handle*, resolving it on first use."""
        canonical = normalize_handle(handle)
        if canonical is None:
            return AuthorResult(
                handle=handle, error=ActorResolutionError(MSG_BAD_HANDLE, status_code=400)
            )

        stored = await run_db(author_service.get_author, self._engine, canonical)
        if stored is not None:
            return AuthorResult(handle=canonical, author=stored)

        try:
            profile = await resolve_actor(self._client, canonical)
        except MamojiError as exc:
            logger.warning("Author %s not resolved (%s): %s", canonical, exc.kind, exc.message)
            return AuthorResult(handle=canonical, error=exc)

        author = await run_db(author_service.save_author, self._engine, profile)
        return AuthorResult(handle=canonical, author=author)

    # -------------------------------------------------------------------
    # Curation + export
    # -------------------------------------------------------------------
    async def curate(
        self,
        host: str,
        shortcodes: Sequence[str],
        *,
        copyable: bool | None = None,
        sensitive: bool | None = None,
        tags: str | None = None,
        note: str | None = None,
        author: str | None = None,
    ) -> CurationResult:
        """Apply curated metadata; a non-empty *author* is resolved first.

        If the author cannot be resolved nothing is modified.
        """
        author_handle = author
        if author:
            resolved = await self.resolve_author(author)
            if not resolved.ok:
                return CurationResult(error=resolved.error)
            author_handle = resolved.handle

        return await run_db(
            apply_curation,
            self._engine,
            normalize_host(host) or host,
            shortcodes,
            copyable=copyable,
            sensitive=sensitive,
            tags=tags,
            note=note,
            author_handle=author_handle,
        )

    async def export(self, host: str, shortcodes: Sequence[str] | None = None) -> export_service.Archive:
        """ZIP the copyable emoji of *host* (all, or the given selection)."""
        host = normalize_host(host) or host
        catalog = await run_db(read_catalog, self._engine, host)
        if shortcodes is not None:
            wanted = set(shortcodes)
            catalog = [e for e in catalog if e.shortcode in wanted]
        return await export_service.build_archive(
            self._client, host, catalog, concurrency=self._download_concurrency
        )
