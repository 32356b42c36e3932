"""
mamoji.engine.errors — Error Taxonomy
======================================

Every failure the sync engine can surface is one of five kinds.  Components
raise these; the service layer hands them back inside result objects so the
presentation layer can map ``kind`` to a message or status code without
catching anything itself.

=====================  ==================  ===================================
Class                  kind                Effect
=====================  ==================  ===================================
DiscoveryError         discovery           none; caller may retry another host
ValidationError        validation          sync stops, nothing written
DuplicateKeyError      duplicate_key       server row deleted (cascade)
ConnectivityError      connectivity        none
ActorResolutionError   actor_resolution    none
=====================  ==================  ===================================
"""

from __future__ import annotations


class MamojiError(Exception):
    """Base class; ``message`` is always fit for an operator to read."""

    kind = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class DiscoveryError(MamojiError):
    kind = "discovery"


class ValidationError(MamojiError):
    """A remote payload failed its structural schema."""

    kind = "validation"

    def __init__(self, message: str, *, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []

    def to_dict(self) -> dict:
        return {**super().to_dict(), "errors": self.errors}


class DuplicateKeyError(MamojiError):
    """The inbound emoji set repeats one or more shortcodes."""

    kind = "duplicate_key"

    def __init__(self, host: str, shortcodes: list[str]) -> None:
        self.host = host
        self.shortcodes = sorted(shortcodes)
        super().__init__(
            f"{host}: emoji registration failed, duplicate shortcodes.\n"
            f"Duplicated: {', '.join(self.shortcodes)}"
        )

    def to_dict(self) -> dict:
        return {**super().to_dict(), "shortcodes": self.shortcodes}


class ConnectivityError(MamojiError):
    """Network failure, timeout or unreadable response at any hop."""

    kind = "connectivity"

    def __init__(self, message: str = "Could not connect to server.", *, cause: str | None = None) -> None:
        super().__init__(message)
        self.cause = cause

    def to_dict(self) -> dict:
        return {**super().to_dict(), "cause": self.cause}


class ActorResolutionError(MamojiError):
    """A handle or its profile could not be resolved."""

    kind = "actor_resolution"

    def __init__(self, message: str, *, status_code: int = 404) -> None:
        super().__init__(message)
        self.status_code = status_code


def innermost_cause(exc: BaseException) -> str:
    """Walk ``__cause__`` / ``__context__`` and return the deepest message."""
    current = exc
    seen: set[int] = set()
    while id(current) not in seen:
        seen.add(id(current))
        nxt = current.__cause__ or current.__context__
        if nxt is None:
            break
        current = nxt
    return str(current) or type(current).__name__
