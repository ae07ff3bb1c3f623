"""Exceptions shared by the store, the generation services and the HTTP layer."""

from __future__ import annotations

from typing import List, Optional, Tuple


class NovelMakerError(RuntimeError):
    """Base class for errors surfaced to callers."""


class NotFoundError(NovelMakerError):
    """Raised when a project or entity id does not exist.

    CRUD mutators on :class:`~novel_maker.store.ProjectStore` never raise this;
    a missing id is a silent no-op there. Generation services raise it because
    they cannot produce anything without the target episode.
    """


class PreconditionError(NovelMakerError):
    """Raised before any network call when a generation request cannot proceed."""


class ParseError(NovelMakerError):
    """Raised when a serialized project or snapshot is malformed."""


class GatewayError(NovelMakerError):
    """Raised after every model candidate failed to return text."""

    def __init__(self, message: str, attempts: Optional[List[Tuple[str, str]]] = None) -> None:
        super().__init__(message)
        self.attempts: List[Tuple[str, str]] = list(attempts or [])

    @property
    def models_attempted(self) -> List[str]:
        return [model for model, _ in self.attempts]


__all__ = [
    "GatewayError",
    "NotFoundError",
    "NovelMakerError",
    "ParseError",
    "PreconditionError",
]
