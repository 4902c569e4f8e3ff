"""Pipeline board -- wires the remote store, stage configuration and reconciler.

Translates drag controller events into reconciler moves:

- drag start: track the dragged deal (ignored while a commit is pending when
  drags are serialized)
- drag end over a stage column: append to the end of that stage
- drag end over another deal: take that deal's stage and index
- drag end over nothing, or drag cancel: back to idle, no state change

Also exposes the per-column view (ordered deals, count, summed value).
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

import structlog
from pydantic import BaseModel

from src.salesboard.config import Settings, get_settings
from src.salesboard.deals.schemas import Deal
from src.salesboard.deals.store import DealStore, build_deal_store
from src.salesboard.pipeline import reorder
from src.salesboard.pipeline.config_store import StageConfigStore
from src.salesboard.pipeline.notifications import Notifier
from src.salesboard.pipeline.reconciler import CommitOutcome, PipelineReconciler
from src.salesboard.pipeline.reorder import StageTotals
from src.salesboard.pipeline.stages import StageDefinition

logger = structlog.get_logger(__name__)


class StageColumn(BaseModel):
    """One Kanban column: its stage, ordered deals and totals."""

    stage: StageDefinition
    deals: list[Deal]
    totals: StageTotals


class PipelineBoard:
    """Stage-grouped deal board for one tenant.

    Args:
        store: Remote deal store.
        stages: Configured stages, in column order.
        company_id: Tenant scope for fetches (None = unscoped).
        won_stage_id: Terminal stage that fires ``on_won`` hooks.
        notifier: User notification sink.
        persist_sibling_positions: Forwarded to the reconciler.
        serialize_drags: Ignore new drags while a commit is in flight.
    """

    def __init__(
        self,
        store: DealStore,
        stages: Sequence[StageDefinition],
        company_id: str | None = None,
        won_stage_id: str | None = "closed_won",
        notifier: Notifier | None = None,
        persist_sibling_positions: bool = True,
        serialize_drags: bool = True,
    ) -> None:
        self._store = store
        self._stages: list[StageDefinition] = list(stages)
        self._company_id = company_id
        self._serialize_drags = serialize_drags
        self._reconciler = PipelineReconciler(
            store,
            [stage.id for stage in self._stages],
            won_stage_id=won_stage_id,
            notifier=notifier,
            persist_sibling_positions=persist_sibling_positions,
        )

    @classmethod
    async def from_settings(
        cls,
        company_id: str | None,
        settings: Settings | None = None,
        config_store: StageConfigStore | None = None,
        notifier: Notifier | None = None,
    ) -> PipelineBoard:
        """Build a board from settings: store backend, saved stages, flags."""
        settings = settings or get_settings()
        config_store = config_store or StageConfigStore.from_settings(settings)
        return cls(
            await build_deal_store(settings),
            config_store.load(settings.PIPELINE_CONFIG_KEY),
            company_id=company_id,
            won_stage_id=settings.WON_STAGE_ID,
            notifier=notifier,
            persist_sibling_positions=settings.PERSIST_SIBLING_POSITIONS,
            serialize_drags=settings.SERIALIZE_DRAGS,
        )

    @property
    def reconciler(self) -> PipelineReconciler:
        return self._reconciler

    @property
    def stages(self) -> list[StageDefinition]:
        return list(self._stages)

    # ── Data ────────────────────────────────────────────────────────────────

    async def refresh(self) -> None:
        """Fetch the tenant's deals and replace the working set.

        Store failures propagate; the current working set is left untouched.
        """
        deals = await self._store.list_deals(self._company_id)
        self._reconciler.load_snapshot(deals)

    def update_stages(
        self,
        stages: Sequence[StageDefinition],
        config_store: StageConfigStore | None = None,
        key: str | None = None,
    ) -> None:
        """Apply an edited pipeline configuration, persisting it if a store is given."""
        self._stages = list(stages)
        self._reconciler.set_stage_order([stage.id for stage in self._stages])
        if config_store is not None and key is not None:
            config_store.save(key, self._stages)
        logger.info("board.stages_updated", stages=[stage.id for stage in self._stages])

    # ── Drag controller events ──────────────────────────────────────────────

    def on_drag_start(self, deal_id: str) -> None:
        if self._serialize_drags and self._reconciler.commit_pending:
            logger.debug("board.drag_ignored_commit_pending", deal_id=deal_id)
            return
        self._reconciler.begin_drag(deal_id)

    def on_drag_cancel(self) -> None:
        self._reconciler.cancel_drag()

    def resolve_drop_target(self, over_id: str) -> tuple[str, int] | None:
        """Map a drop-target id to (stage, index).

        A stage column appends to its end; a deal yields its own stage and
        index. Unknown ids resolve to None.
        """
        if over_id in self._reconciler.stage_order:
            return over_id, len(self._reconciler.grouped()[over_id])
        return reorder.locate(self._reconciler.deals, over_id)

    async def on_drag_end(
        self, dragged_id: str, over_id: str | None
    ) -> CommitOutcome | None:
        """Finish a drag: resolve the target and move. None if nothing moved."""
        self._reconciler.cancel_drag()
        if over_id is None:
            return None
        if self._serialize_drags and self._reconciler.commit_pending:
            logger.debug("board.drop_ignored_commit_pending", deal_id=dragged_id)
            return None

        target = self.resolve_drop_target(over_id)
        if target is None:
            logger.debug("board.drop_target_unknown", over_id=over_id)
            return None

        target_stage, target_position = target
        return await self._reconciler.move(dragged_id, target_stage, target_position)

    # ── View ────────────────────────────────────────────────────────────────

    def columns(self) -> list[StageColumn]:
        grouped = self._reconciler.grouped()
        totals = reorder.stage_totals(
            self._reconciler.deals,
            self._reconciler.stage_order,
            exclude=self._reconciler.fallback_stages,
        )
        return [
            StageColumn(stage=stage, deals=grouped[stage.id], totals=totals[stage.id])
            for stage in self._stages
        ]

    def pipeline_total(self) -> Decimal:
        return reorder.pipeline_total(self._reconciler.deals)
