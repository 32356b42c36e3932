"""
mamoji.services.author_service — Author Rows
=============================================

Authors are append-only: a handle is stored the first time it is resolved
and never refreshed or deleted by the engine.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, select
from sqlalchemy.exc import IntegrityError

from mamoji.database.engine import get_session
from mamoji.database.models import Author
from mamoji.federation.actor import ActorProfile

logger = logging.getLogger(__name__)


def _to_dict(author: Author) -> dict:
    return {
        "handle": author.handle,
        "name": author.name,
        "avatarUrl": author.avatar_url,
    }


def get_author(engine: Engine, handle: str) -> dict | None:
    with get_session(engine) as session:
        author = session.get(Author, handle)
        return _to_dict(author) if author else None


def list_authors(engine: Engine) -> list[dict]:
    with get_session(engine) as session:
        rows = session.scalars(select(Author).order_by(Author.handle)).all()
        return [_to_dict(a) for a in rows]


def save_author(engine: Engine, profile: ActorProfile) -> dict:
    """Insert *profile* unless the handle is already stored.

    An existing row wins, including when a concurrent resolver inserted it
    first.
    """
    try:
        with get_session(engine) as session:
            author = session.get(Author, profile.handle)
            if author is None:
                author = Author(
                    handle=profile.handle,
                    name=profile.name,
                    avatar_url=profile.avatar_url,
                )
                session.add(author)
                logger.info("Stored author %s", profile.handle)
            return _to_dict(author)
    except IntegrityError:
        logger.info("Author %s was stored concurrently; keeping existing row", profile.handle)
        stored = get_author(engine, profile.handle)
        if stored is None:
            raise
        return stored
