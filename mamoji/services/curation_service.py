"""
mamoji.services.curation_service — Operator Metadata Edits
===========================================================

Bulk edit of the curated fields (copy permission, sensitivity, tags, note,
author) for a selection of emoji on one server.  These are the only writes
that touch curated columns; the sync path never does.

Every keyword defaults to ``None`` meaning "leave as is".  ``author_handle``
of ``""`` clears the attribution.  The handle must already exist in
``authors``; :meth:`mamoji.services.catalog_service.CatalogService.curate`
resolves it before calling in here.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from sqlalchemy import Engine, select

from mamoji.constants import parse_tags
from mamoji.database.engine import get_session
from mamoji.database.models import Author, Emoji
from mamoji.engine.errors import MamojiError

logger = logging.getLogger(__name__)


@dataclass
class CurationResult:
    """Structured result of a curation request."""
    updated: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    error: MamojiError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        return {
            "updated": self.updated,
            "missing": self.missing,
            "error": self.error.to_dict() if self.error else None,
        }


def apply_curation(
    engine: Engine,
    host: str,
    shortcodes: Sequence[str],
    *,
    copyable: bool | None = None,
    sensitive: bool | None = None,
    tags: str | None = None,
    note: str | None = None,
    author_handle: str | None = None,
) -> CurationResult:
    """Apply curated metadata to the selected emoji of *host*.

    *tags* is the raw comma-separated string typed by the operator; see
    :func:`~mamoji.constants.parse_tags`.

    Raises
    ------
    LookupError
        If *author_handle* is not a stored author.
    """
    parsed_tags = parse_tags(tags)
    wanted = list(dict.fromkeys(shortcodes))
    result = CurationResult()

    with get_session(engine) as session:
        if author_handle and session.get(Author, author_handle) is None:
            raise LookupError(f"Author {author_handle} has not been resolved")

        rows = {
            row.shortcode: row
            for row in session.scalars(
                select(Emoji).where(
                    Emoji.server_url == host, Emoji.shortcode.in_(wanted)
                )
            ).all()
        }

        for shortcode in wanted:
            row = rows.get(shortcode)
            if row is None:
                result.missing.append(shortcode)
                continue
            if copyable is not None:
                row.copyable = copyable
            if sensitive is not None:
                row.sensitive = sensitive
            if parsed_tags is not None:
                row.tags = parsed_tags
            if note is not None:
                row.note = note or None
            if author_handle is not None:
                row.author_handle = author_handle or None
            result.updated.append(shortcode)

    logger.info(
        "Curated %d emoji on %s (%d missing)",
        len(result.updated), host, len(result.missing),
    )
    return result
