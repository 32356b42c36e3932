"""
mamoji.services.reconciliation_service — Durable Catalog Writes & Reads
=========================================================================

Synchronous database functions for the sync path; call them from async
code through :func:`~mamoji.database.engine.run_db`.

The writer is an explicit two-branch upsert keyed by
``(server_url, shortcode)``:

    1. Look the row up.
    2. Absent → INSERT with the remote fields; curated fields get their
       defaults (``copyable=True``, ``sensitive=False``, no tags).
    3. Present → UPDATE ``url`` and ``category`` only, plus ``tags`` and
       ``sensitive`` when the backend supplied them.  ``copyable``,
       ``note`` and ``author_handle`` are never touched.

Rows are processed one at a time inside a single session so two entries
can never race on the same key.  The server's ``last_synced_at`` is
stamped after the last row; the caller then gets the catalog re-read from
the database.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import Engine, func, select

from mamoji.constants import ServerSoftware
from mamoji.database.engine import get_session
from mamoji.database.models import Emoji, Server
from mamoji.engine.catalog import CatalogEntry, RemoteEmoji, dedupe_tags
from mamoji.engine.freshness import as_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ServerState:
    """What the cache gate needs to know about a stored server."""
    url: str
    name: str
    software: ServerSoftware
    last_synced_at: datetime | None
    emoji_count: int


# ---------------------------------------------------------------------------
# Server rows
# ---------------------------------------------------------------------------
def get_server_state(engine: Engine, host: str) -> ServerState | None:
    """Return the stored server plus its emoji count, or ``None``."""
    with get_session(engine) as session:
        server = session.get(Server, host)
        if server is None:
            return None
        count = session.scalar(
            select(func.count()).select_from(Emoji).where(Emoji.server_url == host)
        ) or 0
        return ServerState(
            url=server.url,
            name=server.name,
            software=ServerSoftware(server.software),
            last_synced_at=as_utc(server.last_synced_at) if server.last_synced_at else None,
            emoji_count=count,
        )


def upsert_server(engine: Engine, host: str, name: str, software: ServerSoftware) -> ServerState:
    """Create the server row on first discovery, refresh its name later.

    The family of an existing row is kept: it decides the adapter for every
    sync of the host.
    """
    with get_session(engine) as session:
        server = session.get(Server, host)
        if server is None:
            server = Server(url=host, name=name, software=software)
            session.add(server)
            logger.info("Registered server %s (%s, %s)", host, name, software)
        else:
            if server.software != software:
                logger.warning(
                    "Server %s now reports %s but is stored as %s; keeping %s",
                    host, software, server.software, server.software,
                )
            server.name = name
        session.flush()
        count = session.scalar(
            select(func.count()).select_from(Emoji).where(Emoji.server_url == host)
        ) or 0
        return ServerState(
            url=server.url,
            name=server.name,
            software=ServerSoftware(server.software),
            last_synced_at=as_utc(server.last_synced_at) if server.last_synced_at else None,
            emoji_count=count,
        )


def delete_server(engine: Engine, host: str) -> bool:
    """Delete the server row and, by cascade, all of its emoji."""
    with get_session(engine) as session:
        server = session.get(Server, host)
        if server is None:
            return False
        session.delete(server)
    logger.warning("Deleted server %s and its emoji", host)
    return True


def list_servers(engine: Engine) -> list[dict]:
    """Every registered server with its emoji count, sorted by name."""
    with get_session(engine) as session:
        rows = session.execute(
            select(Server, func.count(Emoji.shortcode))
            .outerjoin(Emoji, Emoji.server_url == Server.url)
            .group_by(Server.url)
            .order_by(Server.name, Server.url)
        ).all()
        return [
            {
                "url": server.url,
                "name": server.name,
                "software": str(server.software),
                "emojiCount": count,
                "lastSyncedAt": (
                    as_utc(server.last_synced_at).isoformat()
                    if server.last_synced_at else None
                ),
            }
            for server, count in rows
        ]


# ---------------------------------------------------------------------------
# Reconciliation writer
# ---------------------------------------------------------------------------
def reconcile_emojis(
    engine: Engine,
    host: str,
    emojis: Sequence[RemoteEmoji],
    *,
    now: datetime | None = None,
) -> list[CatalogEntry]:
    """Merge *emojis* into the catalog of *host* and stamp the sync time.

    *emojis* must already be free of duplicate shortcodes.  Returns the full
    catalog re-read after the write, sorted by shortcode.

    Raises
    ------
    LookupError
        If *host* is not a registered server.
    """
    now = now or datetime.now(UTC)
    created = updated = 0

    with get_session(engine) as session:
        server = session.get(Server, host)
        if server is None:
            raise LookupError(f"Server {host} is not registered")

        for remote in emojis:
            row = session.get(Emoji, (host, remote.shortcode))
            if row is None:
                session.add(Emoji(
                    server_url=host,
                    shortcode=remote.shortcode,
                    url=remote.url,
                    category=remote.category,
                    tags=dedupe_tags(remote.tags or []),
                    sensitive=bool(remote.sensitive),
                    copyable=True,
                ))
                created += 1
            else:
                row.url = remote.url
                row.category = remote.category
                if remote.tags is not None:
                    row.tags = dedupe_tags(remote.tags)
                if remote.sensitive is not None:
                    row.sensitive = remote.sensitive
                updated += 1
            # One statement per shortcode, in order.
            session.flush()

        server.last_synced_at = now

    logger.info(
        "Reconciled %s: %d created, %d updated", host, created, updated,
    )
    return read_catalog(engine, host)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def _to_entry(row: Emoji) -> CatalogEntry:
    return CatalogEntry(
        host=row.server_url,
        shortcode=row.shortcode,
        url=row.url,
        category=row.category,
        tags=list(row.tags or []),
        sensitive=bool(row.sensitive),
        copyable=bool(row.copyable),
        author_handle=row.author_handle,
        note=row.note,
    )


def read_catalog(engine: Engine, host: str) -> list[CatalogEntry]:
    """Stored catalog for *host*, sorted by shortcode.  No network."""
    with get_session(engine) as session:
        rows = session.scalars(
            select(Emoji).where(Emoji.server_url == host)
        ).all()
        # Code-point order, independent of the database collation.
        return sorted((_to_entry(row) for row in rows), key=lambda e: e.shortcode)
