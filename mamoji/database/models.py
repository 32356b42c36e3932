"""
mamoji.database.models — SQLAlchemy 2.0 Data Models
====================================================

Tables:
- servers  — Registered remote instances (host URL PK)
- emojis   — Per-server custom emoji with curated moderation metadata
- authors  — Resolved federated author profiles (handle PK)

Remote-sourced columns on ``emojis`` are ``url`` and ``category`` (plus
``tags``/``sensitive`` when the backend supplies them).  Everything else is
operator-curated and never touched by a sync.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from mamoji.constants import ServerSoftware

# Plain JSON on SQLite (tests), JSONB on PostgreSQL.
JSONType = JSON().with_variant(JSONB(), "postgresql")


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Mamoji ORM models."""


# ---------------------------------------------------------------------------
# Servers — one row per registered remote instance
# ---------------------------------------------------------------------------
class Server(Base):
    __tablename__ = "servers"

    url: Mapped[str] = mapped_column(String(255), primary_key=True)  # bare host
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    software: Mapped[ServerSoftware] = mapped_column(
        Enum(ServerSoftware, name="server_software_enum"), nullable=False
    )
    last_synced_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    emojis: Mapped[list[Emoji]] = relationship(
        back_populates="server", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Server url={self.url!r} software={self.software}>"


# ---------------------------------------------------------------------------
# Authors — lazily resolved, append-only
# ---------------------------------------------------------------------------
class Author(Base):
    __tablename__ = "authors"

    handle: Mapped[str] = mapped_column(String(320), primary_key=True)  # name@host
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    avatar_url: Mapped[str | None] = mapped_column(Text, default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<Author handle={self.handle!r}>"


# ---------------------------------------------------------------------------
# Emojis — composite key (server_url, shortcode)
# ---------------------------------------------------------------------------
class Emoji(Base):
    __tablename__ = "emojis"

    server_url: Mapped[str] = mapped_column(
        String(255), ForeignKey("servers.url", ondelete="CASCADE"), primary_key=True
    )
    shortcode: Mapped[str] = mapped_column(String(255), primary_key=True)

    # Remote-sourced
    url: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str | None] = mapped_column(String(255), default=None)

    # Curated
    tags: Mapped[list[str]] = mapped_column(JSONType, default=list)
    sensitive: Mapped[bool] = mapped_column(Boolean, default=False)
    copyable: Mapped[bool] = mapped_column(Boolean, default=True)
    note: Mapped[str | None] = mapped_column(Text, default=None)
    author_handle: Mapped[str | None] = mapped_column(
        String(320), ForeignKey("authors.handle", ondelete="SET NULL"), default=None
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    server: Mapped[Server] = relationship(back_populates="emojis")

    __table_args__ = (
        Index("ix_emojis_author_handle", "author_handle"),
    )

    def __repr__(self) -> str:
        return f"<Emoji server={self.server_url!r} shortcode={self.shortcode!r}>"
