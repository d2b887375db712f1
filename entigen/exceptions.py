# File: entigen/exceptions.py
"""
entigen - Error Types
=====================

Every failure raised by the resolution pipeline derives from
``EntigenError`` (itself a ``ValueError``, so callers that already guard
``ValueError`` around configuration parsing keep working).

Each error carries a ``context`` mapping with the table, column and
configuration key involved so the CLI can print something a user can act on.
None of these are retried: they abort the current generation run.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class EntigenError(ValueError):
    """Base class for all fatal generation errors."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "context": self.context,
        }


class ModelIntegrityError(EntigenError):
    """Introspected metadata rows reference a table or column that does not exist."""


class ConfigShapeError(EntigenError):
    """The configuration document has the wrong shape (e.g. a manyToMany without two pivots)."""


class DanglingReferenceError(EntigenError):
    """A configured name points at nothing: missing column, or pivot column without a foreign key."""


class NameCollisionError(EntigenError):
    """
    Two output property (or entity) names coincide within one namespace.

    ``side`` tells which name of the pair lost: ``"forward"`` (the
    many-to-one property), ``"reciprocal"`` (the one-to-many property),
    ``"many_to_many"``, ``"column"`` or ``"entity"``.
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        *,
        side: str = "forward",
    ) -> None:
        super().__init__(message, context)
        self.side: str = side
        self.context.setdefault("side", side)


__all__: List[str] = [
    "EntigenError",
    "ModelIntegrityError",
    "ConfigShapeError",
    "DanglingReferenceError",
    "NameCollisionError",
]
