"""Explicit state container for the pipeline working set.

The working set is an immutable tuple of frozen Deal records. It changes
only by whole-snapshot replacement:

- ``replace(deals)``: install a freshly loaded set
- ``apply(transform)``: install ``transform(current)``, return the previous snapshot
- ``rollback(snapshot)``: reinstate a previously captured snapshot

Because replacements are whole-snapshot, overlapping optimistic moves are
not merged: rolling back an earlier move also discards any later move
applied on top of it. Callers that need multi-drag safety must serialize
drags (see ``pending_commits``).
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from enum import Enum

import structlog

from src.salesboard.deals.schemas import Deal

logger = structlog.get_logger(__name__)

Snapshot = tuple[Deal, ...]


class WorkingSet:
    """Single in-memory set of deals shown on the board."""

    def __init__(self, deals: Iterable[Deal] = ()) -> None:
        self._snapshot: Snapshot = tuple(deals)
        self._version = 0
        self.pending_commits = 0

    @property
    def version(self) -> int:
        """Incremented on every replacement (for change detection by views)."""
        return self._version

    def snapshot(self) -> Snapshot:
        return self._snapshot

    def replace(self, deals: Iterable[Deal]) -> Snapshot:
        """Install a new set, return the previous snapshot."""
        previous = self._snapshot
        self._snapshot = tuple(deals)
        self._version += 1
        return previous

    def apply(self, transform: Callable[[Snapshot], Sequence[Deal]]) -> Snapshot:
        """Install ``transform(current)`` atomically, return the previous snapshot."""
        return self.replace(transform(self._snapshot))

    def rollback(self, snapshot: Snapshot) -> None:
        """Reinstate a previously captured snapshot."""
        self.replace(snapshot)
        logger.debug("working_set.rolled_back", version=self._version, size=len(snapshot))

    def find(self, deal_id: str) -> Deal | None:
        return next((deal for deal in self._snapshot if deal.id == deal_id), None)


class DragPhase(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"


class DragState:
    """Which deal, if any, is being dragged (drives the drag preview)."""

    def __init__(self) -> None:
        self.active_id: str | None = None

    @property
    def phase(self) -> DragPhase:
        return DragPhase.IDLE if self.active_id is None else DragPhase.DRAGGING

    def start(self, deal_id: str) -> None:
        self.active_id = deal_id

    def clear(self) -> None:
        self.active_id = None
