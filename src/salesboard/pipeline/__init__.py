"""Pipeline board -- stage configuration, optimistic reordering and reconciliation.

Provides the PipelineReconciler (optimistic move + rollback over an explicit
WorkingSet container), pure reorder functions, the versioned stage
configuration with its local key-value store, and the PipelineBoard facade
that turns drag controller events into moves.
"""

from src.salesboard.pipeline.board import PipelineBoard, StageColumn
from src.salesboard.pipeline.config_store import StageConfigStore
from src.salesboard.pipeline.notifications import LogNotifier, Notifier
from src.salesboard.pipeline.reconciler import (
    CommitOutcome,
    CommitStatus,
    PipelineReconciler,
)
from src.salesboard.pipeline.reorder import StageTotals, compute_reorder
from src.salesboard.pipeline.stages import (
    DEFAULT_STAGES,
    StageDefinition,
    dump_stage_config,
    load_stage_config,
)
from src.salesboard.pipeline.state import DragPhase, WorkingSet

__all__ = [
    "CommitOutcome",
    "CommitStatus",
    "DEFAULT_STAGES",
    "DragPhase",
    "LogNotifier",
    "Notifier",
    "PipelineBoard",
    "PipelineReconciler",
    "StageColumn",
    "StageConfigStore",
    "StageDefinition",
    "StageTotals",
    "WorkingSet",
    "compute_reorder",
    "dump_stage_config",
    "load_stage_config",
]
