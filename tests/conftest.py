"""
tests/conftest.py — Shared Test Fixtures
=========================================

* ``db_engine`` — in-memory SQLite with all Mamoji tables.
* ``remote``    — a fake fediverse behind :class:`httpx.MockTransport`;
  register JSON per URL, inspect ``remote.calls`` afterwards.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import httpx
import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from mamoji.config import MamojiConfig
from mamoji.constants import NODEINFO_REL
from mamoji.database.models import Base
from mamoji.federation.client import build_client


# Helper to run async code without pytest-asyncio
def run_async(coro):
    """Run an async coroutine in a fresh event loop."""
    return asyncio.run(coro)


@pytest.fixture
def db_engine() -> Engine:
    """In-memory SQLite engine shared across threads (``run_db`` uses
    ``asyncio.to_thread``), hence ``StaticPool``."""
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def db_session(db_engine: Engine):
    with Session(db_engine) as session:
        yield session
        session.rollback()


# ---------------------------------------------------------------------------
# Fake remote servers
# ---------------------------------------------------------------------------
Route = httpx.Response | Exception | Callable[[httpx.Request], httpx.Response]


class FakeRemote:
    """URL → canned response map served through ``httpx.MockTransport``.

    Unregistered URLs answer 404.  Keys ignore the query string.
    """

    def __init__(self) -> None:
        self.routes: dict[str, Route] = {}
        self.calls: list[httpx.Request] = []

    # -- registration -----------------------------------------------------
    def add(
        self,
        url: str,
        payload: Any = None,
        *,
        status: int = 200,
        headers: dict[str, str] | None = None,
        content: bytes | None = None,
    ) -> None:
        if content is not None:
            self.routes[url] = httpx.Response(status, content=content, headers=headers)
        else:
            self.routes[url] = httpx.Response(status, json=payload, headers=headers)

    def fail(self, url: str, exc: Exception) -> None:
        self.routes[url] = exc

    def nodeinfo(self, host: str, software: str, name: str | None = "Example") -> None:
        """Register a working two-hop NodeInfo chain for *host*."""
        href = f"https://{host}/nodeinfo/2.0"
        self.add(
            f"https://{host}/.well-known/nodeinfo",
            {"links": [{"rel": NODEINFO_REL, "href": href}]},
        )
        metadata = {"nodeName": name} if name is not None else {}
        self.add(href, {"software": {"name": software, "version": "4.2.0"}, "metadata": metadata})

    def mastodon(self, host: str, emojis: list[dict], name: str = "Example") -> None:
        self.nodeinfo(host, "mastodon", name)
        self.add(f"https://{host}/api/v1/custom_emojis", emojis)

    def misskey(self, host: str, emojis: list[dict], name: str = "Example", software: str = "misskey") -> None:
        self.nodeinfo(host, software, name)
        self.add(f"https://{host}/api/emojis", {"emojis": emojis})

    # -- transport ----------------------------------------------------------
    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        key = f"{request.url.scheme}://{request.url.host}{request.url.path}"
        route = self.routes.get(key)
        if route is None:
            return httpx.Response(404, json={"error": "not found"})
        if isinstance(route, Exception):
            raise route
        if callable(route) and not isinstance(route, httpx.Response):
            return route(request)
        return route

    def client(self, cfg: MamojiConfig | None = None) -> httpx.AsyncClient:
        return build_client(cfg or MamojiConfig(), transport=httpx.MockTransport(self.handler))

    def urls(self) -> list[str]:
        return [f"{r.url.scheme}://{r.url.host}{r.url.path}" for r in self.calls]


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


def mastodon_emoji(shortcode: str, url: str | None = None, category: str | None = None) -> dict:
    data = {
        "shortcode": shortcode,
        "url": url or f"https://example.social/emoji/{shortcode}.png",
        "static_url": url or f"https://example.social/emoji/{shortcode}.png",
        "visible_in_picker": True,
    }
    if category is not None:
        data["category"] = category
    return data


def misskey_emoji(
    name: str,
    url: str | None = None,
    category: str | None = None,
    aliases: list[str] | None = None,
    sensitive: bool | None = None,
) -> dict:
    data = {
        "name": name,
        "url": url or f"https://misskey.example/files/{name}.webp",
        "category": category,
        "aliases": aliases or [],
    }
    if sensitive is not None:
        data["isSensitive"] = sensitive
    return data
