"""
mamoji.engine.catalog — Normalized Emoji Shapes, Search & Grouping
===================================================================

Two shapes flow through the engine:

* :class:`RemoteEmoji` — what a backend adapter yields.  ``tags`` and
  ``sensitive`` are ``None`` when the backend does not carry them, which
  tells the writer to leave the stored (curated) value alone.
* :class:`CatalogEntry` — what the engine hands back to consumers, one per
  stored emoji, always sorted by shortcode.

The search/group helpers are pure and operate on catalog entries.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Literal

SearchBy = Literal["shortcode", "tag", "author"]
GroupBy = Literal["category", "author"]


@dataclass(frozen=True, slots=True)
class RemoteEmoji:
    """One emoji as reported by a remote server."""
    shortcode: str
    url: str
    category: str | None = None
    tags: list[str] | None = None
    sensitive: bool | None = None


@dataclass(slots=True)
class CatalogEntry:
    """One stored emoji with its curated metadata."""
    host: str
    shortcode: str
    url: str
    category: str | None = None
    tags: list[str] = field(default_factory=list)
    sensitive: bool = False
    copyable: bool = True
    author_handle: str | None = None
    note: str | None = None

    def to_dict(self) -> dict:
        data: dict = {
            "host": self.host,
            "shortcode": self.shortcode,
            "url": self.url,
            "tags": list(self.tags),
            "sensitive": self.sensitive,
            "copyable": self.copyable,
        }
        if self.category is not None:
            data["category"] = self.category
        if self.author_handle is not None:
            data["authorHandle"] = self.author_handle
        if self.note is not None:
            data["note"] = self.note
        return data

    def permission(self) -> dict:
        """Compact view used by other instances deciding what to copy."""
        return {
            "shortcode": self.shortcode,
            "copyable": self.copyable,
            "authorHandle": self.author_handle,
        }


def dedupe_tags(tags: Iterable[str]) -> list[str]:
    """Drop repeats, keeping first-seen order."""
    return list(dict.fromkeys(tags))


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------
def filter_catalog(
    entries: Iterable[CatalogEntry],
    search: str = "",
    by: SearchBy | None = None,
) -> list[CatalogEntry]:
    """Substring search on shortcode, any tag, or author handle.

    An empty *search* (or no *by*) returns everything.
    """
    entries = list(entries)
    if not search or by is None:
        return entries
    if by == "shortcode":
        return [e for e in entries if search in e.shortcode]
    if by == "tag":
        return [e for e in entries if any(search in tag for tag in e.tags)]
    if by == "author":
        return [e for e in entries if e.author_handle and search in e.author_handle]
    raise ValueError(f"Unknown search field: {by!r}")


# ---------------------------------------------------------------------------
# Grouping
# ---------------------------------------------------------------------------
def group_catalog(
    entries: Iterable[CatalogEntry],
    by: GroupBy = "category",
) -> list[tuple[str | None, list[CatalogEntry]]]:
    """Group entries by category or author handle.

    Groups are ordered by key; the ``None`` group comes first for
    categories (uncategorized "custom" emoji) and last for authors
    (unattributed).  Entries inside a group are sorted by shortcode.
    """
    if by == "category":
        key = lambda e: e.category  # noqa: E731
        none_first = True
    elif by == "author":
        key = lambda e: e.author_handle  # noqa: E731
        none_first = False
    else:
        raise ValueError(f"Unknown group field: {by!r}")

    groups: dict[str | None, list[CatalogEntry]] = {}
    for entry in entries:
        groups.setdefault(key(entry), []).append(entry)

    named = sorted(k for k in groups if k is not None)
    order: list[str | None] = named
    if None in groups:
        order = [None, *named] if none_first else [*named, None]

    return [
        (k, sorted(groups[k], key=lambda e: e.shortcode))
        for k in order
    ]
