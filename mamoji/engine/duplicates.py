"""
mamoji.engine.duplicates — Shortcode Collision Check
=====================================================

Shortcodes are unique per host.  An inbound set that repeats one makes the
``(server_url, shortcode)`` key unsatisfiable, so it is rejected before a
single row is written.  Deleting the server row is the caller's job
(:func:`mamoji.services.reconciliation_service.delete_server`).
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable

from mamoji.engine.errors import DuplicateKeyError


def find_duplicates(shortcodes: Iterable[str]) -> list[str]:
    """Return every shortcode seen more than once, sorted."""
    counts = Counter(shortcodes)
    return sorted(code for code, n in counts.items() if n > 1)


def check_duplicates(host: str, shortcodes: Iterable[str]) -> None:
    """Raise :class:`DuplicateKeyError` if *shortcodes* has repeats."""
    duplicates = find_duplicates(shortcodes)
    if duplicates:
        raise DuplicateKeyError(host, duplicates)
