"""
mamoji.federation.adapters — Per-Family Emoji Adapters
=======================================================

Each backend family has exactly one adapter: an async function that
fetches the family's native listing, validates it and normalizes it into
:class:`~mamoji.engine.catalog.RemoteEmoji` objects.

Dispatch goes through :data:`ADAPTERS`.  Supporting a new family means one
``@register_adapter`` function plus one entry in
:data:`~mamoji.constants.ALLOWED_SOFTWARE`; existing adapters stay as
they are.

Adapters raise :class:`ValidationError` for malformed payloads and
:class:`ConnectivityError` for network trouble.  Whether an unreachable
endpoint is fatal is the caller's decision.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

import httpx

from mamoji.constants import MASTODON_EMOJI_ENDPOINT, MISSKEY_EMOJI_ENDPOINT, ServerSoftware
from mamoji.engine.catalog import RemoteEmoji, dedupe_tags
from mamoji.engine.schemas import MastodonEmojiList, MisskeyEmojiList, parse_payload
from mamoji.federation.client import fetch_json

logger = logging.getLogger(__name__)

Adapter = Callable[[httpx.AsyncClient, str], Awaitable[list[RemoteEmoji]]]

ADAPTERS: dict[ServerSoftware, Adapter] = {}


def register_adapter(software: ServerSoftware) -> Callable[[Adapter], Adapter]:
    """Decorator registering *func* as the adapter for *software*."""
    def decorator(func: Adapter) -> Adapter:
        if software in ADAPTERS:
            raise ValueError(f"Adapter already registered for {software}")
        ADAPTERS[software] = func
        return func
    return decorator


def get_adapter(software: ServerSoftware | str) -> Adapter:
    try:
        return ADAPTERS[ServerSoftware(software)]
    except (KeyError, ValueError):
        raise LookupError(f"No emoji adapter for software {software!r}") from None


async def fetch_emojis(
    client: httpx.AsyncClient, host: str, software: ServerSoftware | str
) -> list[RemoteEmoji]:
    """Run the registered adapter for *software* against *host*."""
    emojis = await get_adapter(software)(client, host)
    logger.info("Fetched %d emoji from %s (%s)", len(emojis), host, software)
    return emojis


# ---------------------------------------------------------------------------
# Mastodon
# ---------------------------------------------------------------------------
@register_adapter(ServerSoftware.MASTODON)
async def fetch_mastodon_emojis(client: httpx.AsyncClient, host: str) -> list[RemoteEmoji]:
    raw = await fetch_json(client, f"https://{host}{MASTODON_EMOJI_ENDPOINT}")
    data = parse_payload(MastodonEmojiList, raw, what="Mastodon emoji list")
    # Mastodon carries no tags or sensitivity; those stay curated.
    return [
        RemoteEmoji(shortcode=e.shortcode, url=e.url, category=e.category)
        for e in data.root
    ]


# ---------------------------------------------------------------------------
# Misskey (and CherryPick)
# ---------------------------------------------------------------------------
@register_adapter(ServerSoftware.MISSKEY)
async def fetch_misskey_emojis(client: httpx.AsyncClient, host: str) -> list[RemoteEmoji]:
    raw = await fetch_json(client, f"https://{host}{MISSKEY_EMOJI_ENDPOINT}")
    data = parse_payload(MisskeyEmojiList, raw, what="Misskey emoji list")
    return [
        RemoteEmoji(
            shortcode=e.name,
            url=e.url,
            category=e.category,
            tags=dedupe_tags(e.aliases),
            sensitive=e.isSensitive,
        )
        for e in data.emojis
    ]
