"""
mamoji.federation.discovery — NodeInfo Server Discovery
========================================================

Two-hop walk that classifies a host:

    1. ``GET https://{host}/.well-known/nodeinfo`` → pick the link whose
       ``rel`` is the NodeInfo 2.0 schema identifier.
    2. ``GET {href}`` → read ``software.name`` and ``metadata.nodeName``.

``software.name`` goes through :data:`~mamoji.constants.ALLOWED_SOFTWARE`
to pick the backend family.  A single attempt; nothing is retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from mamoji.constants import ALLOWED_SOFTWARE, NODEINFO_REL, NODEINFO_WELL_KNOWN, ServerSoftware
from mamoji.engine.errors import DiscoveryError, ValidationError
from mamoji.engine.schemas import NodeInfo, NodeInfoWellKnown, parse_payload
from mamoji.federation.client import fetch_json

logger = logging.getLogger(__name__)

MSG_NO_SERVER_INFO = "Could not determine server information."
MSG_NO_SERVER_NAME = "Could not determine server name."


@dataclass(frozen=True, slots=True)
class ServerInfo:
    """Outcome of a successful discovery."""
    name: str
    software: ServerSoftware


def classify_software(name: str) -> ServerSoftware:
    """Map a NodeInfo ``software.name`` to a family or raise DiscoveryError."""
    software = ALLOWED_SOFTWARE.get(name)
    if software is None:
        raise DiscoveryError(f"Server software is not supported. ({name})")
    return software


async def resolve_server(client: httpx.AsyncClient, host: str) -> ServerInfo:
    """Discover the display name and backend family of *host*.

    Raises
    ------
    DiscoveryError
        Discovery data missing or malformed, no node name, or software not
        on the allow-list.
    ConnectivityError
        Any network, timeout or JSON decoding failure.
    """
    well_known_raw = await fetch_json(client, f"https://{host}{NODEINFO_WELL_KNOWN}")
    try:
        well_known = parse_payload(NodeInfoWellKnown, well_known_raw, what="nodeinfo discovery document")
    except ValidationError as exc:
        raise DiscoveryError(MSG_NO_SERVER_INFO) from exc

    href = well_known.find(NODEINFO_REL)
    if not href:
        raise DiscoveryError(MSG_NO_SERVER_INFO)

    nodeinfo_raw = await fetch_json(client, href)
    try:
        nodeinfo = parse_payload(NodeInfo, nodeinfo_raw, what="nodeinfo document")
    except ValidationError as exc:
        raise DiscoveryError(MSG_NO_SERVER_INFO) from exc

    name = nodeinfo.metadata.nodeName
    if not name:
        raise DiscoveryError(MSG_NO_SERVER_NAME)

    software = classify_software(nodeinfo.software.name)
    logger.info("Discovered %s → %s (%s)", host, name, software)
    return ServerInfo(name=name, software=software)
