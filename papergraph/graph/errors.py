"""Exceptions raised by the graph query layer.

Only genuine failures are exceptions. "Nothing matched" and "no path" are
normal outcomes (see ``NoPath`` and the ``message`` field on search
results), and cap/deadline hits come back as partial results flagged
``truncated``.
"""

from __future__ import annotations

from typing import Iterable


class GraphQueryError(Exception):
    """Base class for query layer errors."""


class ValidationError(GraphQueryError, ValueError):
    """Query parameters rejected before any store access."""

    def __init__(self, message: str, field: str = "") -> None:
        super().__init__(message)
        self.field = field


class EntityNotFound(GraphQueryError, LookupError):
    """One or more requested entities are absent from the store."""

    def __init__(self, entity_ids: Iterable[str]) -> None:
        self.entity_ids = sorted(entity_ids)
        super().__init__(f"Entity not found: {', '.join(self.entity_ids)}")


class StoreUnavailable(GraphQueryError):
    """The backing store failed. Propagated to the caller without retry."""

    def __init__(self, store: str, message: str = "") -> None:
        self.store = store
        super().__init__(f"{store} unavailable" + (f": {message}" if message else ""))
