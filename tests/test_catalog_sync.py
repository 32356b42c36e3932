"""
tests/test_catalog_sync.py — Directory Synchronization Engine
==============================================================
End-to-end runs of :class:`CatalogService` against a fake fediverse and an
in-memory SQLite store.  The clock is injected so the freshness window can
be stepped over without sleeping.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import httpx
import pytest
from sqlalchemy.orm import Session

from conftest import mastodon_emoji, misskey_emoji, run_async
from mamoji.constants import ServerSoftware
from mamoji.database.models import Emoji, Server
from mamoji.services.catalog_service import CatalogService
from mamoji.services.reconciliation_service import get_server_state

T0 = datetime(2026, 6, 1, 8, 0, tzinfo=UTC)
EMOJI_URL = "https://example.social/api/v1/custom_emojis"


class Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return Clock(T0)


def _run(remote, db_engine, clock, fn):
    """Build a service inside a fresh loop and run ``fn(service)``."""
    async def go():
        async with remote.client() as client:
            service = CatalogService(db_engine, client, clock=clock)
            return await fn(service)
    return run_async(go())


# ===========================================================================
# Registration and first sync
# ===========================================================================
class TestRegister:
    def test_end_to_end_mastodon(self, remote, db_engine, clock):
        remote.mastodon("example.social", [
            mastodon_emoji("wave", url="https://example.social/e/wave.png"),
        ], name="Example Social")

        result = _run(remote, db_engine, clock, lambda s: s.register("example.social"))

        assert result.ok
        assert result.refreshed is True
        assert [e.to_dict() for e in result.catalog] == [{
            "host": "example.social",
            "shortcode": "wave",
            "url": "https://example.social/e/wave.png",
            "tags": [],
            "sensitive": False,
            "copyable": True,
        }]
        state = get_server_state(db_engine, "example.social")
        assert state.name == "Example Social"
        assert state.software is ServerSoftware.MASTODON
        assert state.last_synced_at == T0

    def test_host_input_normalized(self, remote, db_engine, clock):
        remote.mastodon("example.social", [mastodon_emoji("wave")])
        result = _run(remote, db_engine, clock, lambda s: s.register("https://Example.Social/"))
        assert result.ok
        assert result.host == "example.social"

    def test_invalid_host(self, remote, db_engine, clock):
        result = _run(remote, db_engine, clock, lambda s: s.register("not a host"))
        assert result.error.kind == "discovery"
        assert remote.calls == []

    def test_misskey_family_carries_tags(self, remote, db_engine, clock):
        remote.misskey("misskey.example", [
            misskey_emoji("neko", aliases=["cat"], sensitive=True, category="Animals"),
        ])
        result = _run(remote, db_engine, clock, lambda s: s.register("misskey.example"))
        entry = result.catalog[0]
        assert entry.tags == ["cat"]
        assert entry.sensitive is True
        assert entry.category == "Animals"

    def test_cherrypick_uses_misskey_endpoint(self, remote, db_engine, clock):
        remote.misskey("cp.example", [misskey_emoji("a")], software="cherrypick")
        result = _run(remote, db_engine, clock, lambda s: s.register("cp.example"))
        assert result.ok
        assert "https://cp.example/api/emojis" in remote.urls()

    def test_unsupported_software_writes_nothing(self, remote, db_engine, clock):
        remote.nodeinfo("pleroma.example", "unknown", "Pleroma")
        result = _run(remote, db_engine, clock, lambda s: s.register("pleroma.example"))
        assert result.error.kind == "discovery"
        assert "unknown" in result.error.message
        assert get_server_state(db_engine, "pleroma.example") is None

    def test_malformed_emoji_list_writes_no_emoji(self, remote, db_engine, clock):
        remote.nodeinfo("example.social", "mastodon")
        remote.add(EMOJI_URL, [{"shortcode": "wave"}])
        result = _run(remote, db_engine, clock, lambda s: s.register("example.social"))
        assert result.error.kind == "validation"
        state = get_server_state(db_engine, "example.social")
        assert state.emoji_count == 0
        assert state.last_synced_at is None


# ===========================================================================
# Duplicate shortcodes
# ===========================================================================
class TestDuplicateShortcodes:
    def test_first_sync_duplicate_removes_server(self, remote, db_engine, clock):
        remote.mastodon("example.social", [
            mastodon_emoji("blob"), mastodon_emoji("blob"), mastodon_emoji("wave"),
        ])
        result = _run(remote, db_engine, clock, lambda s: s.register("example.social"))
        assert result.error.kind == "duplicate_key"
        assert result.error.shortcodes == ["blob"]
        assert get_server_state(db_engine, "example.social") is None

    def test_duplicate_on_resync_deletes_stored_catalog(self, remote, db_engine, clock):
        remote.mastodon("example.social", [mastodon_emoji("blob"), mastodon_emoji("wave")])
        _run(remote, db_engine, clock, lambda s: s.register("example.social"))

        remote.add(EMOJI_URL, [mastodon_emoji("blob"), mastodon_emoji("blob")])
        result = _run(remote, db_engine, clock, lambda s: s.sync("example.social", force=True))

        assert result.error.kind == "duplicate_key"
        with Session(db_engine) as session:
            assert session.get(Server, "example.social") is None
            assert session.query(Emoji).count() == 0


# ===========================================================================
# Cache gate
# ===========================================================================
class TestFreshnessGate:
    def test_fresh_catalog_served_without_network(self, remote, db_engine, clock):
        remote.mastodon("example.social", [mastodon_emoji("wave")])
        _run(remote, db_engine, clock, lambda s: s.register("example.social"))
        calls_after_register = len(remote.calls)

        clock.now = T0 + timedelta(hours=23, minutes=59)
        result = _run(remote, db_engine, clock, lambda s: s.sync("example.social"))

        assert result.ok
        assert result.refreshed is False
        assert [e.shortcode for e in result.catalog] == ["wave"]
        assert len(remote.calls) == calls_after_register

    def test_stale_catalog_refreshed(self, remote, db_engine, clock):
        remote.mastodon("example.social", [mastodon_emoji("wave")])
        _run(remote, db_engine, clock, lambda s: s.register("example.social"))

        remote.add(EMOJI_URL, [mastodon_emoji("wave"), mastodon_emoji("blob")])
        clock.now = T0 + timedelta(hours=24, minutes=1)
        result = _run(remote, db_engine, clock, lambda s: s.sync("example.social"))

        assert result.refreshed is True
        assert [e.shortcode for e in result.catalog] == ["blob", "wave"]
        assert get_server_state(db_engine, "example.social").last_synced_at == clock.now

    def test_sync_time_taken_after_fetch(self, remote, db_engine):
        remote.mastodon("example.social", [mastodon_emoji("wave")])
        readings = [T0, T0 + timedelta(minutes=5)]

        def ticking():
            return readings.pop(0) if len(readings) > 1 else readings[0]

        _run(remote, db_engine, ticking, lambda s: s.register("example.social"))

        stamp = get_server_state(db_engine, "example.social").last_synced_at
        assert stamp == T0 + timedelta(minutes=5)

    def test_empty_catalog_always_refetched(self, remote, db_engine, clock):
        remote.mastodon("example.social", [])
        _run(remote, db_engine, clock, lambda s: s.register("example.social"))
        before = remote.urls().count(EMOJI_URL)

        result = _run(remote, db_engine, clock, lambda s: s.sync("example.social"))
        assert result.refreshed is True
        assert remote.urls().count(EMOJI_URL) == before + 1

    def test_unknown_host_goes_to_network(self, remote, db_engine, clock):
        remote.mastodon("example.social", [mastodon_emoji("wave")])
        result = _run(remote, db_engine, clock, lambda s: s.sync("example.social"))
        assert result.refreshed is True
        assert len(result.catalog) == 1

    def test_custom_window(self, remote, db_engine, clock):
        remote.mastodon("example.social", [mastodon_emoji("wave")])

        async def go():
            async with remote.client() as client:
                service = CatalogService(
                    db_engine, client, clock=clock, freshness_window=timedelta(minutes=10),
                )
                await service.register("example.social")
                clock.now = T0 + timedelta(minutes=11)
                return await service.sync("example.social")

        assert run_async(go()).refreshed is True

    def test_curated_fields_survive_refresh(self, remote, db_engine, clock):
        remote.mastodon("example.social", [mastodon_emoji("wave")])
        _run(remote, db_engine, clock, lambda s: s.register("example.social"))
        _run(remote, db_engine, clock, lambda s: s.curate(
            "example.social", ["wave"], copyable=False, tags="a",
        ))

        clock.now = T0 + timedelta(days=2)
        result = _run(remote, db_engine, clock, lambda s: s.sync("example.social"))
        assert result.refreshed is True
        assert result.catalog[0].copyable is False
        assert result.catalog[0].tags == ["a"]


# ===========================================================================
# Degraded adapter
# ===========================================================================
class TestAdapterUnreachable:
    def test_serves_stored_catalog_without_stamp(self, remote, db_engine, clock):
        remote.mastodon("example.social", [mastodon_emoji("wave")])
        _run(remote, db_engine, clock, lambda s: s.register("example.social"))

        remote.fail(EMOJI_URL, httpx.ConnectError("connection refused"))
        clock.now = T0 + timedelta(days=3)
        result = _run(remote, db_engine, clock, lambda s: s.sync("example.social"))

        assert result.ok
        assert result.refreshed is False
        assert [e.shortcode for e in result.catalog] == ["wave"]
        assert get_server_state(db_engine, "example.social").last_synced_at == T0

    def test_first_sync_with_unreachable_endpoint(self, remote, db_engine, clock):
        remote.nodeinfo("example.social", "mastodon")
        remote.fail(EMOJI_URL, httpx.ReadTimeout("timed out"))
        result = _run(remote, db_engine, clock, lambda s: s.register("example.social"))
        assert result.ok
        assert result.catalog == []
        state = get_server_state(db_engine, "example.social")
        assert state is not None
        assert state.last_synced_at is None

    def test_discovery_unreachable_is_an_error(self, remote, db_engine, clock):
        remote.fail(
            "https://down.example/.well-known/nodeinfo", httpx.ConnectError("no route to host"),
        )
        result = _run(remote, db_engine, clock, lambda s: s.register("down.example"))
        assert result.error.kind == "connectivity"
        assert result.error.message == "Could not connect to server."


# ===========================================================================
# Family stays fixed
# ===========================================================================
class TestSameFamily:
    def test_stored_family_picks_adapter(self, remote, db_engine, clock):
        remote.mastodon("example.social", [mastodon_emoji("wave")])
        _run(remote, db_engine, clock, lambda s: s.register("example.social"))

        # The server now claims to be Misskey; the Mastodon adapter keeps running.
        remote.nodeinfo("example.social", "misskey", "Example Social")
        remote.calls.clear()
        result = _run(remote, db_engine, clock, lambda s: s.sync("example.social", force=True))

        assert result.ok
        assert EMOJI_URL in remote.urls()
        assert "https://example.social/api/emojis" not in remote.urls()
        assert get_server_state(db_engine, "example.social").software is ServerSoftware.MASTODON


# ===========================================================================
# Concurrency
# ===========================================================================
class TestConcurrentSyncs:
    def test_same_host_fetched_once(self, remote, db_engine, clock):
        remote.mastodon("example.social", [mastodon_emoji("wave")])

        async def both(service):
            return await asyncio.gather(
                service.sync("example.social"),
                service.sync("example.social"),
            )

        first, second = _run(remote, db_engine, clock, both)
        assert first.ok and second.ok
        assert remote.urls().count(EMOJI_URL) == 1
        assert {first.refreshed, second.refreshed} == {True, False}

    def test_different_hosts(self, remote, db_engine, clock):
        remote.mastodon("example.social", [mastodon_emoji("wave")])
        remote.misskey("misskey.example", [misskey_emoji("neko")])

        async def both(service):
            return await asyncio.gather(
                service.sync("example.social"),
                service.sync("misskey.example"),
            )

        a, b = _run(remote, db_engine, clock, both)
        assert [e.host for e in a.catalog] == ["example.social"]
        assert [e.host for e in b.catalog] == ["misskey.example"]


# ===========================================================================
# Stored reads
# ===========================================================================
class TestStoredReads:
    def test_list_servers_and_stored_catalog(self, remote, db_engine, clock):
        remote.mastodon("example.social", [mastodon_emoji("wave")], name="Example Social")
        _run(remote, db_engine, clock, lambda s: s.register("example.social"))
        remote.calls.clear()

        servers = _run(remote, db_engine, clock, lambda s: s.list_servers())
        catalog = _run(remote, db_engine, clock, lambda s: s.stored_catalog("example.social"))

        assert servers[0]["name"] == "Example Social"
        assert servers[0]["emojiCount"] == 1
        assert [e.shortcode for e in catalog] == ["wave"]
        assert remote.calls == []
