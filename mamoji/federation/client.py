"""
mamoji.federation.client — Outbound HTTP
=========================================

One shared :class:`httpx.AsyncClient` per process, with an explicit
timeout on every request and **no retries**: a failed hop surfaces
immediately and the caller decides whether to try again.

Transport failures, timeouts, non-2xx answers and bodies that are not
JSON all collapse into :class:`~mamoji.engine.errors.ConnectivityError`,
annotated with the innermost cause for diagnostics.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from mamoji.config import MamojiConfig
from mamoji.engine.errors import ConnectivityError, innermost_cause

logger = logging.getLogger(__name__)


def build_client(cfg: MamojiConfig, **kwargs: Any) -> httpx.AsyncClient:
    """Create the shared client.  Extra *kwargs* go to httpx (tests pass
    ``transport=httpx.MockTransport(...)``)."""
    return httpx.AsyncClient(
        timeout=cfg.http_timeout_seconds,
        headers={"User-Agent": cfg.user_agent},
        follow_redirects=True,
        **kwargs,
    )


async def fetch(
    client: httpx.AsyncClient,
    url: str,
    *,
    headers: dict[str, str] | None = None,
    params: dict[str, str] | None = None,
) -> httpx.Response:
    """GET *url*; transport errors and timeouts become ConnectivityError."""
    try:
        return await client.get(url, headers=headers, params=params)
    except httpx.HTTPError as exc:
        logger.debug("GET %s failed: %r", url, exc)
        raise ConnectivityError(cause=innermost_cause(exc)) from exc


def decode_json(response: httpx.Response) -> Any:
    """Decode the body or raise ConnectivityError."""
    try:
        return response.json()
    except ValueError as exc:
        raise ConnectivityError(
            cause=f"invalid JSON from {response.request.url}: {exc}"
        ) from exc


async def fetch_json(
    client: httpx.AsyncClient,
    url: str,
    *,
    headers: dict[str, str] | None = None,
    params: dict[str, str] | None = None,
) -> Any:
    """GET *url* and decode a JSON body; any failure is ConnectivityError."""
    response = await fetch(client, url, headers=headers, params=params)
    if response.is_error:
        raise ConnectivityError(cause=f"HTTP {response.status_code} from {url}")
    return decode_json(response)
