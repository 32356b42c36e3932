"""
mamoji.federation.actor — Federated Handle Resolution
======================================================

Resolves ``name@host`` to an author profile in two hops:

    1. ``GET https://{host}/.well-known/webfinger?resource=acct:{handle}``
       → the ``self`` link (preferably ``application/activity+json``).
    2. ``GET {href}`` with ``Accept: application/activity+json``
       → ``name`` and ``icon.url``.

Servers running in "authorized fetch" mode answer step 2 with 401.  That
is reported as-is; signed requests are not implemented.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from mamoji.constants import ACTIVITY_JSON, WEBFINGER_WELL_KNOWN, split_handle
from mamoji.engine.errors import ActorResolutionError, ConnectivityError, ValidationError
from mamoji.engine.schemas import Actor, WebFinger, parse_payload
from mamoji.federation.client import decode_json, fetch

logger = logging.getLogger(__name__)

MSG_BAD_HANDLE = "Invalid handle: expected name@host."
MSG_NO_ACCOUNT = "Account does not exist."
MSG_NO_PROFILE_LINK = "Could not find the account's profile link."
MSG_NO_PROFILE = "Profile does not exist."
MSG_ACCESS_DENIED = "Profile access denied: the server requires authenticated requests."
MSG_BAD_PROFILE = "Profile could not be read."


@dataclass(frozen=True, slots=True)
class ActorProfile:
    handle: str
    name: str
    avatar_url: str | None


async def resolve_actor(client: httpx.AsyncClient, handle: str) -> ActorProfile:
    """Resolve *handle* to an :class:`ActorProfile`.

    Raises
    ------
    ActorResolutionError
        Malformed handle, unknown account, missing profile link, profile
        not found (404) or access denied (401).
    ConnectivityError
        Network failure or an unexpected HTTP status.
    """
    parts = split_handle(handle)
    if parts is None:
        raise ActorResolutionError(MSG_BAD_HANDLE, status_code=400)
    username, host = parts
    canonical = f"{username}@{host}"

    # Hop 1: WebFinger
    response = await fetch(
        client,
        f"https://{host}{WEBFINGER_WELL_KNOWN}",
        params={"resource": f"acct:{canonical}"},
    )
    if response.status_code == 404:
        raise ActorResolutionError(MSG_NO_ACCOUNT)
    if response.is_error:
        raise ConnectivityError(cause=f"HTTP {response.status_code} from {response.request.url}")
    try:
        webfinger = parse_payload(WebFinger, decode_json(response), what="webfinger document")
    except ValidationError as exc:
        raise ActorResolutionError(MSG_NO_PROFILE_LINK) from exc

    href = webfinger.self_link(ACTIVITY_JSON)
    if not href:
        raise ActorResolutionError(MSG_NO_PROFILE_LINK)

    # Hop 2: actor document
    response = await fetch(client, href, headers={"Accept": ACTIVITY_JSON})
    if response.status_code == 404:
        raise ActorResolutionError(MSG_NO_PROFILE)
    if response.status_code == 401:
        raise ActorResolutionError(MSG_ACCESS_DENIED, status_code=403)
    if response.is_error:
        raise ConnectivityError(cause=f"HTTP {response.status_code} from {href}")
    try:
        actor = parse_payload(Actor, decode_json(response), what="actor document")
    except ValidationError as exc:
        raise ActorResolutionError(MSG_BAD_PROFILE, status_code=502) from exc

    name = actor.name or actor.preferredUsername or username
    avatar_url = actor.icon.url if actor.icon else None
    logger.info("Resolved actor %s → %r", canonical, name)
    return ActorProfile(handle=canonical, name=name, avatar_url=avatar_url)
