"""
mamoji.constants — Protocol Constants & Shared Helpers
=======================================================

Single source of truth for the remote protocol paths, the NodeInfo
relation, the software allow-list and the freshness window.
"""

from __future__ import annotations

import enum
import re


class ServerSoftware(enum.StrEnum):
    """Backend families the engine can talk to."""
    MASTODON = "MASTODON"
    MISSKEY = "MISSKEY"


# ---------------------------------------------------------------------------
# NodeInfo discovery
# ---------------------------------------------------------------------------
NODEINFO_WELL_KNOWN = "/.well-known/nodeinfo"
NODEINFO_REL = "http://nodeinfo.diaspora.software/ns/schema/2.0"

# software.name → family.  cherrypick is a Misskey fork with the same API.
ALLOWED_SOFTWARE: dict[str, ServerSoftware] = {
    "mastodon": ServerSoftware.MASTODON,
    "misskey": ServerSoftware.MISSKEY,
    "cherrypick": ServerSoftware.MISSKEY,
}

# ---------------------------------------------------------------------------
# Emoji endpoints
# ---------------------------------------------------------------------------
MASTODON_EMOJI_ENDPOINT = "/api/v1/custom_emojis"
MISSKEY_EMOJI_ENDPOINT = "/api/emojis"

# ---------------------------------------------------------------------------
# Actor resolution
# ---------------------------------------------------------------------------
WEBFINGER_WELL_KNOWN = "/.well-known/webfinger"
ACTIVITY_JSON = "application/activity+json"

# ---------------------------------------------------------------------------
# Freshness window of the cache gate (ms)
# ---------------------------------------------------------------------------
FRESHNESS_WINDOW_MS = 86_400_000


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------
_HANDLE_REGEX = re.compile(r"^@?([^@\s]+)@([^@\s/]+)$")


def split_handle(handle: str) -> tuple[str, str] | None:
    """Split ``name@host`` (leading ``@`` tolerated) into its two parts.

    Returns ``None`` when *handle* is not a federated handle.
    """
    match = _HANDLE_REGEX.match(handle.strip())
    if match is None:
        return None
    return match.group(1), match.group(2).lower()


def normalize_handle(handle: str) -> str | None:
    """Canonical ``name@host`` form, or ``None`` if *handle* is malformed."""
    parts = split_handle(handle)
    if parts is None:
        return None
    return f"{parts[0]}@{parts[1]}"


def parse_tags(raw: str | None) -> list[str] | None:
    """Parse a comma-separated tag string.

    Tags are trimmed, empties dropped and duplicates removed (first
    occurrence wins).  An empty or missing string yields ``None`` so
    callers can leave stored tags untouched; a string of separators only
    yields an empty list and clears them.
    """
    if not raw:
        return None
    seen: dict[str, None] = {}
    for tag in raw.split(","):
        tag = tag.strip()
        if tag:
            seen.setdefault(tag, None)
    return list(seen)


_HOST_REGEX = re.compile(r"^[a-z0-9]([a-z0-9.-]*[a-z0-9])?(:[0-9]{1,5})?$")


def normalize_host(raw: str) -> str | None:
    """Reduce user input (``https://Example.Social/``) to a bare host.

    Returns ``None`` when nothing host-shaped is left.
    """
    host = raw.strip().lower()
    for prefix in ("https://", "http://"):
        if host.startswith(prefix):
            host = host[len(prefix):]
    host = host.rstrip("/")
    if not _HOST_REGEX.match(host):
        return None
    return host
