"""
mamoji.engine.schemas — Remote Payload Validators
===================================================

Strict structural checks for every document the engine consumes.  Pure
functions over already-decoded JSON; no I/O.  Unknown keys are ignored,
required keys must be present with the right type, URL fields must be
absolute ``http(s)`` URLs.

:func:`parse_payload` converts pydantic's error into the engine's own
:class:`~mamoji.engine.errors.ValidationError` so callers deal with a
single exception family.
"""

from __future__ import annotations

from typing import Annotated, Any, TypeVar
from urllib.parse import urlparse

from pydantic import AfterValidator, BaseModel, Field, RootModel
from pydantic import ValidationError as PydanticValidationError

from mamoji.engine.errors import ValidationError

M = TypeVar("M", bound=BaseModel)


def _absolute_url(value: str) -> str:
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"not an absolute URL: {value!r}")
    return value


Url = Annotated[str, AfterValidator(_absolute_url)]


# ---------------------------------------------------------------------------
# NodeInfo discovery
# ---------------------------------------------------------------------------
class NodeInfoLink(BaseModel):
    rel: str
    href: Url


class NodeInfoWellKnown(BaseModel):
    """``GET /.well-known/nodeinfo``"""
    links: list[NodeInfoLink]

    def find(self, rel: str) -> str | None:
        for link in self.links:
            if link.rel == rel:
                return link.href
        return None


class NodeInfoSoftware(BaseModel):
    name: str


class NodeInfoMetadata(BaseModel):
    nodeName: str | None = None


class NodeInfo(BaseModel):
    """The NodeInfo 2.0 document the well-known link points at."""
    software: NodeInfoSoftware
    metadata: NodeInfoMetadata = Field(default_factory=NodeInfoMetadata)


# ---------------------------------------------------------------------------
# Mastodon: GET /api/v1/custom_emojis
# ---------------------------------------------------------------------------
class MastodonEmoji(BaseModel):
    shortcode: str
    url: Url
    category: str | None = None


MastodonEmojiList = RootModel[list[MastodonEmoji]]


# ---------------------------------------------------------------------------
# Misskey / CherryPick: GET /api/emojis
# ---------------------------------------------------------------------------
class MisskeyEmoji(BaseModel):
    name: str
    url: Url
    category: str | None
    aliases: list[str]
    isSensitive: bool | None = None


class MisskeyEmojiList(BaseModel):
    emojis: list[MisskeyEmoji]


# ---------------------------------------------------------------------------
# WebFinger + ActivityPub actor
# ---------------------------------------------------------------------------
class WebFingerLink(BaseModel):
    rel: str
    href: str | None = None
    type: str | None = None


class WebFinger(BaseModel):
    links: list[WebFingerLink] = Field(default_factory=list)

    def self_link(self, preferred_type: str) -> str | None:
        """Return the ``self`` link href, preferring *preferred_type*."""
        candidates = [link for link in self.links if link.rel == "self" and link.href]
        for link in candidates:
            if link.type == preferred_type:
                return link.href
        return candidates[0].href if candidates else None


class ActorIcon(BaseModel):
    url: Url


class Actor(BaseModel):
    name: str | None = None
    preferredUsername: str | None = None
    icon: ActorIcon | None = None


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------
def _summarize(exc: PydanticValidationError, limit: int = 5) -> list[str]:
    lines = []
    for err in exc.errors()[:limit]:
        loc = ".".join(str(part) for part in err["loc"]) or "<root>"
        lines.append(f"{loc}: {err['msg']}")
    return lines


def parse_payload(model: type[M], payload: Any, *, what: str) -> M:
    """Validate *payload* against *model* or raise :class:`ValidationError`.

    *what* names the document in the error message (e.g. ``"emoji list"``).
    """
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        errors = _summarize(exc)
        raise ValidationError(
            f"Malformed {what}: {errors[0] if errors else 'schema mismatch'}",
            errors=errors,
        ) from exc
