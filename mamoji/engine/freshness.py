"""
mamoji.engine.freshness — Catalog Cache Gate
=============================================

Pure TTL policy: a stored catalog is reused while it is non-empty and
younger than the freshness window.  There is no remote change detection
(no ETags, no push), so anything newer upstream waits for the window to
lapse.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from mamoji.constants import FRESHNESS_WINDOW_MS

DEFAULT_WINDOW = timedelta(milliseconds=FRESHNESS_WINDOW_MS)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (SQLite round-trips) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def needs_refresh(
    last_synced_at: datetime | None,
    emoji_count: int,
    *,
    now: datetime | None = None,
    window: timedelta = DEFAULT_WINDOW,
) -> bool:
    """Return True when a remote fetch is required.

    A refresh is due when nothing is stored, the server was never synced,
    or more than *window* has elapsed since the last successful sync.
    """
    if emoji_count <= 0 or last_synced_at is None:
        return True
    now = as_utc(now or datetime.now(UTC))
    return now - as_utc(last_synced_at) > window
