"""
mamoji.services.export_service — Bulk Emoji Download
=====================================================

Packs the images of selected emoji into one ZIP archive so an operator can
import them elsewhere.  Only emoji marked **copyable** are included.

Images are distinct keys, so they are fetched concurrently (bounded by a
semaphore).  A failed download is logged and left out of the archive.
"""

from __future__ import annotations

import asyncio
import io
import logging
import re
import zipfile
from collections.abc import Iterable
from dataclasses import dataclass, field

import httpx

from mamoji.engine.catalog import CatalogEntry
from mamoji.engine.errors import ConnectivityError
from mamoji.federation.client import fetch

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = "png"
_UNSAFE_CHARS = re.compile(r"[^\w.-]")


@dataclass
class Archive:
    filename: str
    content: bytes
    included: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def archive_name(host: str) -> str:
    return f"mamoji-{host}.zip"


def extension_for(content_type: str | None) -> str:
    """``image/png; charset=…`` → ``png``; ``image/svg+xml`` → ``svg``."""
    if not content_type or "/" not in content_type:
        return DEFAULT_EXTENSION
    subtype = content_type.split(";", 1)[0].split("/", 1)[1].strip().lower()
    ext = subtype.split("+", 1)[0]
    if not (ext.isascii() and ext.isalnum()):
        return DEFAULT_EXTENSION
    return ext


def entry_name(shortcode: str, ext: str, taken: set[str]) -> str:
    """Archive member name for *shortcode*, safe to extract anywhere.

    Shortcodes are remote input: anything outside ``[\\w.-]`` becomes ``_``
    and leading dots are stripped, so no name can leave the extraction
    directory.  Clashes after cleaning get a numeric suffix.
    """
    stem = _UNSAFE_CHARS.sub("_", shortcode).lstrip(".") or "_"
    name = f"{stem}.{ext}"
    n = 1
    while name in taken:
        n += 1
        name = f"{stem}_{n}.{ext}"
    taken.add(name)
    return name


async def _download(
    client: httpx.AsyncClient, entry: CatalogEntry, semaphore: asyncio.Semaphore
) -> tuple[bytes, str] | None:
    async with semaphore:
        try:
            response = await fetch(client, entry.url)
        except ConnectivityError as exc:
            logger.warning("Download of %s failed: %s", entry.shortcode, exc.cause)
            return None
    if response.is_error:
        logger.warning(
            "Download of %s failed: HTTP %d", entry.shortcode, response.status_code
        )
        return None
    return response.content, extension_for(response.headers.get("Content-Type"))


async def build_archive(
    client: httpx.AsyncClient,
    host: str,
    entries: Iterable[CatalogEntry],
    *,
    concurrency: int = 4,
) -> Archive:
    """Download every copyable entry and return a ZIP archive."""
    entries = list(entries)
    archive = Archive(filename=archive_name(host), content=b"")
    copyable = []
    for entry in entries:
        if entry.copyable:
            copyable.append(entry)
        else:
            archive.skipped.append(entry.shortcode)

    semaphore = asyncio.Semaphore(concurrency)
    downloads = await asyncio.gather(
        *(_download(client, entry, semaphore) for entry in copyable)
    )

    buffer = io.BytesIO()
    taken: set[str] = set()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for entry, result in zip(copyable, downloads):
            if result is None:
                archive.skipped.append(entry.shortcode)
                continue
            content, ext = result
            zf.writestr(entry_name(entry.shortcode, ext, taken), content)
            archive.included.append(entry.shortcode)

    archive.content = buffer.getvalue()
    logger.info(
        "Archive %s: %d included, %d skipped",
        archive.filename, len(archive.included), len(archive.skipped),
    )
    return archive
