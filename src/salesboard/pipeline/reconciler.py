"""Pipeline reconciler -- optimistic stage/position moves with rollback.

Keeps the stage-grouped working set consistent with drag gestures and with
the remote store:

1. ``apply_optimistic`` installs the reordered set synchronously (one
   snapshot replacement) and returns the pre-drag snapshot.
2. ``commit`` awaits the store write. On failure the pre-drag snapshot is
   reinstated exactly once and the user is notified; nothing is retried.
   On success the optimistic state stays authoritative until the next
   ``load_snapshot``.
3. A successful commit that moves a deal into the won stage fires every
   ``on_won`` hook once with the updated deal. Rolled-back commits never do.

The reconciler does not enforce stage-transition rules: any stage-to-stage
move is accepted.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Iterable, Sequence
from enum import Enum

import structlog
from pydantic import BaseModel

from src.salesboard.deals.schemas import Deal
from src.salesboard.deals.store.adapter import DealStore
from src.salesboard.pipeline import reorder
from src.salesboard.pipeline.notifications import LogNotifier, Notifier
from src.salesboard.pipeline.state import DragState, Snapshot, WorkingSet

logger = structlog.get_logger(__name__)

WonHook = Callable[[Deal], Awaitable[None] | None]

MOVE_FAILED_MESSAGE = "Could not move deal"
WON_HOOK_FAILED_MESSAGE = "Deal won, but its follow-up actions failed"


class CommitStatus(str, Enum):
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    NOOP = "noop"


class CommitOutcome(BaseModel):
    """Result of persisting one move."""

    status: CommitStatus
    deal_id: str
    writes: int = 0
    won: bool = False
    error: str | None = None


class PipelineReconciler:
    """Client-side ordered-by-stage view of deals with optimistic moves.

    Args:
        store: Remote store receiving stage/position writes.
        stage_order: Configured stage ids, in column order.
        won_stage_id: Terminal stage whose entry fires ``on_won`` hooks (None disables).
        notifier: Sink for user-visible failure notifications.
        persist_sibling_positions: Also write renumbered positions of the
            other deals in the affected stages. Needed whenever the store
            orders its fetch by ``position``.
    """

    def __init__(
        self,
        store: DealStore,
        stage_order: Sequence[str],
        won_stage_id: str | None = "closed_won",
        notifier: Notifier | None = None,
        persist_sibling_positions: bool = True,
    ) -> None:
        self._store = store
        self._stage_order: tuple[str, ...] = tuple(stage_order)
        self._won_stage_id = won_stage_id
        self._notifier = notifier or LogNotifier()
        self._persist_siblings = persist_sibling_positions
        self._working = WorkingSet()
        self._drag = DragState()
        self._won_hooks: list[WonHook] = []
        # id -> stored stage of deals shown in the first stage by fallback
        self._fallback: dict[str, str] = {}

    # ── Read access ─────────────────────────────────────────────────────────

    @property
    def stage_order(self) -> tuple[str, ...]:
        return self._stage_order

    @property
    def working_set(self) -> WorkingSet:
        return self._working

    @property
    def deals(self) -> Snapshot:
        return self._working.snapshot()

    @property
    def drag(self) -> DragState:
        return self._drag

    @property
    def active_deal(self) -> Deal | None:
        """The deal being dragged, for the drag preview."""
        if self._drag.active_id is None:
            return None
        return self._working.find(self._drag.active_id)

    @property
    def fallback_stages(self) -> dict[str, str]:
        """Stored stage of each deal displayed in the first stage by fallback."""
        return dict(self._fallback)

    @property
    def commit_pending(self) -> bool:
        return self._working.pending_commits > 0

    def grouped(self) -> dict[str, list[Deal]]:
        return reorder.group_by_stage(self.deals, self._stage_order)

    # ── Hooks ───────────────────────────────────────────────────────────────

    def on_won(self, hook: WonHook) -> WonHook:
        """Register a hook fired once per successful move into the won stage."""
        self._won_hooks.append(hook)
        return hook

    # ── State replacement ───────────────────────────────────────────────────

    def load_snapshot(self, deals: Iterable[Deal]) -> None:
        """Replace the working set (after a fetch or confirmed mutation).

        Deals in stages that are not configured are shown in the first
        configured stage; none are dropped. Their stored stage is remembered
        and never written back unless the deal itself is moved.
        """
        deals = list(deals)
        self._fallback = reorder.fallback_stages(deals, self._stage_order)
        ordered = reorder.order_snapshot(deals, self._stage_order)
        self._working.replace(ordered)
        logger.info("reconciler.snapshot_loaded", deals=len(ordered))

    def set_stage_order(self, stage_order: Sequence[str]) -> None:
        """Apply an edited stage configuration to the current working set."""
        stored = [
            deal.model_copy(update={"stage": self._fallback[deal.id]})
            if deal.id in self._fallback
            else deal
            for deal in self.deals
        ]
        self._stage_order = tuple(stage_order)
        self._fallback = reorder.fallback_stages(stored, self._stage_order)
        self._working.replace(reorder.order_snapshot(stored, self._stage_order))

    # ── Drag tracking ───────────────────────────────────────────────────────

    def begin_drag(self, deal_id: str) -> None:
        """Record the deal being manipulated; unknown ids are ignored."""
        if self._working.find(deal_id) is None:
            logger.debug("reconciler.drag_unknown_deal", deal_id=deal_id)
            return
        self._drag.start(deal_id)

    def cancel_drag(self) -> None:
        self._drag.clear()

    # ── Moves ───────────────────────────────────────────────────────────────

    def compute_reorder(
        self,
        deals: Sequence[Deal],
        dragged_id: str,
        target_stage: str,
        target_position: int,
    ) -> list[Deal]:
        """Pure reorder under this reconciler's stage order."""
        return reorder.compute_reorder(
            deals, dragged_id, target_stage, target_position, self._stage_order
        )

    def apply_optimistic(
        self, dragged_id: str, target_stage: str, target_position: int
    ) -> Snapshot:
        """Install the reordered set immediately; return the pre-drag snapshot."""
        previous = self._working.apply(
            lambda current: self.compute_reorder(
                current, dragged_id, target_stage, target_position
            )
        )
        logger.debug(
            "reconciler.optimistic_applied",
            deal_id=dragged_id,
            target_stage=target_stage,
            target_position=target_position,
        )
        return previous

    async def commit(
        self,
        deal_id: str,
        target_stage: str,
        target_position: int,
        previous_snapshot: Snapshot,
    ) -> CommitOutcome:
        """Persist a move already applied optimistically.

        Writes the moved deal's stage/position (and, when enabled, the
        renumbered siblings, except deals shown by the unknown-stage fallback).
        A failure rolls back to ``previous_snapshot`` once and notifies the
        user; no exception propagates.
        """
        before = next((d for d in previous_snapshot if d.id == deal_id), None)
        after = self._working.find(deal_id)
        if before is None or after is None:
            logger.debug("reconciler.commit_unknown_deal", deal_id=deal_id)
            return CommitOutcome(status=CommitStatus.NOOP, deal_id=deal_id)

        if reorder.locate(previous_snapshot, deal_id) == reorder.locate(self.deals, deal_id):
            logger.debug("reconciler.commit_noop", deal_id=deal_id)
            return CommitOutcome(status=CommitStatus.NOOP, deal_id=deal_id)

        writes = reorder.position_changes(
            previous_snapshot,
            self.deals,
            deal_id,
            skip=self._fallback.keys() - {deal_id},
        )
        if not self._persist_siblings:
            writes = [w for w in writes if w.deal_id == deal_id]

        self._working.pending_commits += 1
        try:
            await self._store.update_positions(writes)
        except Exception as exc:
            self._working.rollback(previous_snapshot)
            logger.warning(
                "reconciler.commit_failed",
                deal_id=deal_id,
                target_stage=target_stage,
                target_position=target_position,
                error=str(exc),
                exc_info=True,
            )
            self._notifier.error(MOVE_FAILED_MESSAGE)
            return CommitOutcome(
                status=CommitStatus.ROLLED_BACK,
                deal_id=deal_id,
                writes=len(writes),
                error=str(exc),
            )
        finally:
            self._working.pending_commits -= 1

        from_stage = self._fallback.pop(deal_id, before.stage)
        won = (
            self._won_stage_id is not None
            and after.stage == self._won_stage_id
            and from_stage != self._won_stage_id
        )
        logger.info(
            "reconciler.committed",
            deal_id=deal_id,
            from_stage=from_stage,
            to_stage=after.stage,
            position=after.position,
            writes=len(writes),
            won=won,
        )
        if won:
            await self._fire_won(after)

        return CommitOutcome(
            status=CommitStatus.COMMITTED,
            deal_id=deal_id,
            writes=len(writes),
            won=won,
        )

    async def move(
        self, dragged_id: str, target_stage: str, target_position: int
    ) -> CommitOutcome:
        """Apply a move optimistically and commit it.

        Unknown deals and moves to the deal's own stage and index are no-ops
        and never reach the store.
        """
        if reorder.is_noop_move(self.deals, dragged_id, target_stage, target_position):
            return CommitOutcome(status=CommitStatus.NOOP, deal_id=dragged_id)

        previous = self.apply_optimistic(dragged_id, target_stage, target_position)
        return await self.commit(dragged_id, target_stage, target_position, previous)

    async def _fire_won(self, deal: Deal) -> None:
        for hook in self._won_hooks:
            try:
                result = hook(deal)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                # The move itself is committed; only the follow-up failed.
                logger.error(
                    "reconciler.won_hook_failed",
                    deal_id=deal.id,
                    hook=getattr(hook, "__name__", type(hook).__name__),
                    error=str(exc),
                    exc_info=True,
                )
                self._notifier.error(WON_HOOK_FAILED_MESSAGE)
